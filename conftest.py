import base64
from types import SimpleNamespace

import pytest

from backend.app import create_app
from backend.ipn.config import Config, Credential
from backend.supabase_client import SupabaseRecorder


BASIC_USER = "coopbank_ipn"
BASIC_PASS = "basic-secret:with-colon"
HEADER_USER = "coop_header_user"
HEADER_PASS = "header-secret"


class FakeQuery:
    def __init__(self, store, rows):
        self.store = store
        self.rows = rows
        self.on_conflict = None
        self.ignore_duplicates = False

    def upsert(self, json, on_conflict="", ignore_duplicates=False, **kwargs):
        self.on_conflict = on_conflict
        self.ignore_duplicates = ignore_duplicates
        self.pending = json if isinstance(json, list) else [json]
        return self

    def execute(self):
        if self.store.error:
            raise self.store.error
        self.store.calls.append(self)
        inserted = []
        for row in self.pending:
            key = row[self.on_conflict]
            if key in self.rows and self.ignore_duplicates:
                continue
            self.rows[key] = dict(row)
            inserted.append(dict(row))
        return SimpleNamespace(data=inserted, count=None)


class FakeSupabase:
    """Mimics client.table(...).upsert(...).execute() with a unique key."""

    def __init__(self):
        self.tables = {}
        self.calls = []
        self.error = None

    def table(self, name):
        return FakeQuery(self, self.tables.setdefault(name, {}))

    def rows(self, name="coop_bank_transactions"):
        return list(self.tables.get(name, {}).values())


def basic_header(username, password):
    token = base64.b64encode(f"{username}:{password}".encode()).decode()
    return {"Authorization": f"Basic {token}"}


@pytest.fixture
def config():
    return Config(
        supabase_url="https://example.supabase.co",
        supabase_key="service-role-key",
        basic_credential=Credential(BASIC_USER, BASIC_PASS),
        header_credential=Credential(HEADER_USER, HEADER_PASS),
    )


@pytest.fixture
def fake_supabase():
    return FakeSupabase()


@pytest.fixture
def recorder(fake_supabase, config):
    return SupabaseRecorder(fake_supabase, config.table)


@pytest.fixture
def client(config, recorder):
    app = create_app(config, recorder=recorder)
    app.config["TESTING"] = True
    return app.test_client()


@pytest.fixture
def auth_headers():
    return basic_header(BASIC_USER, BASIC_PASS)
