"""
IPN Configuration - Built once at process start, read-only afterwards.

Every setting comes from the environment. Missing backend settings or an
absent credential set fail loudly so the relay never accepts traffic
unauthenticated.
"""
import os
from dataclasses import dataclass, field
from typing import Mapping, Optional, Tuple

from .errors import ConfigError


DEFAULT_TABLE = "coop_bank_transactions"
DEFAULT_PORT = 3000
DEFAULT_KEEPALIVE_INTERVAL = 600


@dataclass(frozen=True)
class Credential:
    """One accepted (identity, secret) pair."""
    username: str
    password: str


@dataclass(frozen=True)
class ResponseShape:
    """
    Field names of the response body.

    These are a contract with the sender's downstream parser, so they are
    configured rather than hardcoded at each call site.
    """
    code_field: str = "MessageCode"
    message_field: str = "Message"
    transaction_field: str = "TransactionId"
    reference_field: str = "Reference"


@dataclass(frozen=True)
class Config:
    supabase_url: str
    supabase_key: str
    table: str = DEFAULT_TABLE
    port: int = DEFAULT_PORT
    ipn_paths: Tuple[str, ...] = ("/ipn",)
    basic_credential: Optional[Credential] = None
    header_credential: Optional[Credential] = None
    username_header: str = "username"
    password_header: str = "password"
    response_shape: ResponseShape = field(default_factory=ResponseShape)
    keepalive_url: Optional[str] = None
    keepalive_interval: int = DEFAULT_KEEPALIVE_INTERVAL
    cors_origins: Tuple[str, ...] = ("*",)

    def __post_init__(self):
        if not self.supabase_url or not self.supabase_key:
            raise ConfigError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set")
        if self.basic_credential is None and self.header_credential is None:
            raise ConfigError("No IPN credentials configured; refusing to start unauthenticated")
        if not self.ipn_paths:
            raise ConfigError("IPN_PATHS must name at least one path")
        for path in self.ipn_paths:
            if not path.startswith("/"):
                raise ConfigError(f"IPN path must start with '/': {path!r}")
        if self.keepalive_interval <= 0:
            raise ConfigError("KEEPALIVE_INTERVAL_SECONDS must be positive")

    @property
    def schemes(self) -> Tuple[str, ...]:
        """Names of the active credential schemes, for startup logs."""
        names = []
        if self.basic_credential:
            names.append("basic")
        if self.header_credential:
            names.append("header")
        return tuple(names)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Config":
        env = os.environ if environ is None else environ

        return cls(
            supabase_url=env.get("SUPABASE_URL", ""),
            supabase_key=env.get("SUPABASE_SERVICE_ROLE_KEY", ""),
            table=env.get("IPN_TABLE", DEFAULT_TABLE),
            port=_int(env, "PORT", DEFAULT_PORT),
            ipn_paths=_split(env.get("IPN_PATHS", "/ipn")),
            basic_credential=_credential(env, "IPN_BASIC_USERNAME", "IPN_BASIC_PASSWORD"),
            header_credential=_credential(env, "IPN_HEADER_USERNAME", "IPN_HEADER_PASSWORD"),
            username_header=env.get("IPN_USERNAME_HEADER", "username"),
            password_header=env.get("IPN_PASSWORD_HEADER", "password"),
            response_shape=ResponseShape(
                code_field=env.get("IPN_CODE_FIELD", "MessageCode"),
                message_field=env.get("IPN_MESSAGE_FIELD", "Message"),
            ),
            keepalive_url=env.get("KEEPALIVE_URL") or None,
            keepalive_interval=_int(env, "KEEPALIVE_INTERVAL_SECONDS", DEFAULT_KEEPALIVE_INTERVAL),
            cors_origins=_split(env.get("CORS_ORIGINS", "*")),
        )


# ─────────────────────────────────────────────────────────────
# Environment Parsing Helpers
# ─────────────────────────────────────────────────────────────

def _credential(env: Mapping[str, str], user_key: str, pass_key: str) -> Optional[Credential]:
    username = env.get(user_key)
    password = env.get(pass_key)
    if not username and not password:
        return None
    if not username or not password:
        raise ConfigError(f"{user_key} and {pass_key} must be set together")
    return Credential(username=username, password=password)


def _int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{key} must be an integer, got {raw!r}")


def _split(raw: str) -> Tuple[str, ...]:
    return tuple(part.strip() for part in raw.split(",") if part.strip())
