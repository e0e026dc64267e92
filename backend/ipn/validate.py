"""
Payload Validator - Liveness probe vs. real notification.

A body without a transaction id is never recorded. An empty body (nothing,
null, {} or []) is the sender's keepalive and succeeds; anything else
without an id is a broken notification and is rejected.
"""
from enum import Enum
from typing import Any

from .schema import transaction_id_of


class PayloadKind(Enum):
    LIVENESS_PROBE = "liveness_probe"
    VALID_NOTIFICATION = "valid_notification"
    MALFORMED = "malformed"


class PayloadValidator:
    """Classifies a decoded JSON body. `None` means the raw body was empty."""

    def classify(self, body: Any) -> PayloadKind:
        if body is None or body == {} or body == []:
            return PayloadKind.LIVENESS_PROBE
        if not isinstance(body, dict):
            return PayloadKind.MALFORMED
        if transaction_id_of(body) is None:
            return PayloadKind.MALFORMED
        return PayloadKind.VALID_NOTIFICATION
