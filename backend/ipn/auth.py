"""
Authenticator - Credential strategies for inbound IPN requests.

The bank delivers credentials in one of two conventions depending on the
deployment, so every configured scheme is tried in order and the first
match wins:
1. Basic: Authorization: Basic base64(identity:secret)
2. Header pair: raw identity and secret headers

Missing and mismatched credentials are told apart for logs only; the caller
always receives the same 401.
"""
import base64
import binascii
import hmac
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Tuple

from werkzeug.datastructures import Headers

from .config import Config, Credential


REDACTED = "[REDACTED]"

MISSING = "missing_credentials"
INVALID = "invalid_credentials"


@dataclass(frozen=True)
class AuthResult:
    authenticated: bool
    scheme: Optional[str] = None
    reason: Optional[str] = None


def _matches(expected: Credential, username: str, password: str) -> bool:
    # Both comparisons always run so timing does not reveal which half failed.
    user_ok = hmac.compare_digest(username.encode("utf-8"), expected.username.encode("utf-8"))
    pass_ok = hmac.compare_digest(password.encode("utf-8"), expected.password.encode("utf-8"))
    return user_ok and pass_ok


class AuthStrategy(ABC):
    name = "base"

    @abstractmethod
    def present(self, headers: Mapping[str, str]) -> bool:
        """Whether the request carries any material for this scheme."""

    @abstractmethod
    def verify(self, headers: Mapping[str, str]) -> bool:
        pass


class BasicAuthStrategy(AuthStrategy):
    name = "basic"

    def __init__(self, credential: Credential):
        self.credential = credential

    def present(self, headers: Mapping[str, str]) -> bool:
        return bool(headers.get("Authorization"))

    def verify(self, headers: Mapping[str, str]) -> bool:
        pair = self._decode(headers.get("Authorization") or "")
        if pair is None:
            return False
        return _matches(self.credential, *pair)

    @staticmethod
    def _decode(header: str) -> Optional[Tuple[str, str]]:
        """Decode 'Basic <token>' into (identity, secret), split on the first colon."""
        parts = header.strip().split(None, 1)
        if len(parts) != 2 or parts[0].lower() != "basic":
            return None
        try:
            decoded = base64.b64decode(parts[1].strip(), validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError):
            return None
        if ":" not in decoded:
            return None
        username, password = decoded.split(":", 1)
        return username, password


class HeaderPairStrategy(AuthStrategy):
    name = "header"

    def __init__(self, credential: Credential, username_header: str = "username",
                 password_header: str = "password"):
        self.credential = credential
        self.username_header = username_header
        self.password_header = password_header

    def present(self, headers: Mapping[str, str]) -> bool:
        return bool(headers.get(self.username_header) or headers.get(self.password_header))

    def verify(self, headers: Mapping[str, str]) -> bool:
        username = headers.get(self.username_header)
        password = headers.get(self.password_header)
        if username is None or password is None:
            return False
        return _matches(self.credential, username, password)


class Authenticator:
    """
    Evaluates strategies in sequence; first success wins.

    Usage:
        auth = Authenticator.from_config(config)
        result = auth.authenticate(request.headers)
    """

    def __init__(self, strategies: List[AuthStrategy], secret_headers: Tuple[str, ...] = ()):
        self.strategies = list(strategies)
        self.secret_headers = {"authorization", "cookie"} | {h.lower() for h in secret_headers}

    @classmethod
    def from_config(cls, config: Config) -> "Authenticator":
        strategies: List[AuthStrategy] = []
        if config.basic_credential:
            strategies.append(BasicAuthStrategy(config.basic_credential))
        if config.header_credential:
            strategies.append(HeaderPairStrategy(
                config.header_credential,
                username_header=config.username_header,
                password_header=config.password_header,
            ))
        return cls(strategies, secret_headers=(config.password_header,))

    def authenticate(self, headers: Mapping[str, str]) -> AuthResult:
        if not isinstance(headers, Headers):
            headers = Headers(headers)

        seen_material = False
        for strategy in self.strategies:
            if not strategy.present(headers):
                continue
            seen_material = True
            if strategy.verify(headers):
                return AuthResult(authenticated=True, scheme=strategy.name)

        result = AuthResult(authenticated=False, reason=INVALID if seen_material else MISSING)
        logging.warning(f"IPN auth failed ({result.reason}). Headers: {self.redact(headers)}")
        return result

    def redact(self, headers: Mapping[str, str]) -> Dict[str, str]:
        """Copy of the headers with secret-bearing values masked."""
        return {
            key: (REDACTED if key.lower() in self.secret_headers else value)
            for key, value in headers.items()
        }
