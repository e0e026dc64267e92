"""End-to-end through the Flask test client: status contract and dedup."""
import json
from dataclasses import replace
from unittest.mock import patch

from backend.app import LIVENESS_TEXT, create_app
from backend.ipn.config import ResponseShape
from conftest import HEADER_PASS, HEADER_USER, basic_header


TX1 = {"TransactionId": "TX1", "Narration": "POSAG1~999888777666"}


def _post(client, headers, body=None, path="/ipn", raw=None):
    data = raw if raw is not None else (json.dumps(body) if body is not None else b"")
    return client.post(path, data=data, headers=headers, content_type="application/json")


def test_liveness_route_needs_no_auth(client):
    res = client.get("/")
    assert res.status_code == 200
    assert res.get_data(as_text=True) == LIVENESS_TEXT


def test_unauthenticated_request_gets_401(client, fake_supabase):
    res = _post(client, {}, TX1)
    assert res.status_code == 401
    assert res.get_json() == {"MessageCode": "401", "Message": "Unauthorized"}
    assert fake_supabase.calls == []


def test_wrong_credentials_get_same_401(client):
    res = _post(client, basic_header("coopbank_ipn", "wrong"), TX1)
    assert res.status_code == 401
    assert res.get_json() == {"MessageCode": "401", "Message": "Unauthorized"}


def test_empty_body_is_a_probe(client, auth_headers, fake_supabase):
    for body in (None, {}, []):
        res = _post(client, auth_headers, body)
        assert res.status_code == 200
        assert res.get_json()["Message"] == "Ping received"
    assert fake_supabase.calls == []


def test_probe_succeeds_even_when_backend_is_down(client, auth_headers, fake_supabase):
    fake_supabase.error = ConnectionError("down")
    assert _post(client, auth_headers, {}).status_code == 200


def test_body_without_transaction_id_is_400(client, auth_headers, fake_supabase):
    res = _post(client, auth_headers, {"Narration": "TI28ZF3AQY~631412"})
    assert res.status_code == 400
    assert res.get_json() == {"MessageCode": "400", "Message": "Missing required field TransactionId"}
    assert fake_supabase.rows() == []


def test_invalid_json_is_400(client, auth_headers):
    assert _post(client, auth_headers, raw="{not json").status_code == 400


def test_notification_is_stored_with_reference(client, auth_headers, fake_supabase):
    res = _post(client, auth_headers, TX1)

    assert res.status_code == 200
    assert res.get_json() == {
        "MessageCode": "200",
        "Message": "Successfully received data",
        "TransactionId": "TX1",
        "Reference": "999888777666",
    }
    rows = fake_supabase.rows()
    assert len(rows) == 1
    assert rows[0]["transaction_id"] == "TX1"
    assert rows[0]["final_reference"] == "999888777666"


def test_redelivery_is_still_200_and_one_row(client, auth_headers, fake_supabase):
    assert _post(client, auth_headers, TX1).status_code == 200
    assert _post(client, auth_headers, TX1).status_code == 200
    assert [r["transaction_id"] for r in fake_supabase.rows()] == ["TX1"]


def test_header_pair_scheme_end_to_end(client, fake_supabase):
    headers = {"username": HEADER_USER, "password": HEADER_PASS}
    res = _post(client, headers, {"TransactionId": "TX7", "Narration": "TI28ZF3AQY~254712345678"})
    assert res.status_code == 200
    row = fake_supabase.rows()[0]
    assert row["final_reference"] == "TI28ZF3AQY"
    assert row["phone_number"] == "0712345678"


def test_unrecognized_fields_are_ignored(client, auth_headers, fake_supabase):
    res = _post(client, auth_headers, {"TransactionId": "TX3", "SomethingNew": {"a": 1}})
    assert res.status_code == 200
    assert "SomethingNew" not in fake_supabase.rows()[0]


def test_unparseable_narration_still_stored(client, auth_headers, fake_supabase):
    res = _post(client, auth_headers, {"TransactionId": "TX4", "Narration": "   "})
    assert res.status_code == 200
    assert fake_supabase.rows()[0]["final_reference"] is None


def test_backend_down_returns_retryable_500(client, auth_headers, fake_supabase):
    fake_supabase.error = ConnectionError("connection refused")
    res = _post(client, auth_headers, TX1)
    assert res.status_code == 500
    assert res.get_json() == {"MessageCode": "500", "Message": "Database error"}


def test_unexpected_fault_returns_500(client, auth_headers):
    with patch("backend.ipn.pipeline.build_record", side_effect=KeyError("boom")):
        res = _post(client, auth_headers, TX1)
    assert res.status_code == 500
    assert res.get_json() == {"MessageCode": "500", "Message": "Internal server error"}


def test_ipn_mount_paths_are_configurable(config, recorder, auth_headers):
    app = create_app(replace(config, ipn_paths=("/", "/coop/ipn")), recorder=recorder)
    client = app.test_client()

    assert _post(client, auth_headers, {}, path="/").status_code == 200
    assert _post(client, auth_headers, {}, path="/coop/ipn").status_code == 200
    assert _post(client, auth_headers, {}, path="/ipn").status_code == 404
    assert client.get("/").status_code == 200


def test_response_field_names_come_from_config(config, recorder, auth_headers):
    shape = ResponseShape(code_field="code", message_field="text")
    client = create_app(replace(config, response_shape=shape), recorder=recorder).test_client()
    assert _post(client, auth_headers, {}).get_json() == {"code": "200", "text": "Ping received"}


def test_error_escaping_the_pipeline_gets_fixed_500_body(config, recorder, auth_headers):
    client = create_app(config, recorder=recorder).test_client()
    with patch("backend.ipn.pipeline.IPNPipeline.process", side_effect=RuntimeError("boom")):
        res = _post(client, auth_headers, TX1)
    assert res.status_code == 500
    assert res.get_json() == {"MessageCode": "500", "Message": "Internal server error"}
