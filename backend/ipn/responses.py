"""
Response Policy - Outcome to status/body mapping.

The bank retries on 5xx only, so the status code is the retry signal:

    Outcome                      Status   Sender retries
    unauthorized                 401      no
    liveness probe               200      -
    missing transaction id       400      no
    stored (or duplicate)        200      no
    persistence failure          500      yes
    unexpected fault             500      yes
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .config import ResponseShape


UNAUTHORIZED = "unauthorized"
PROBE = "probe"
MISSING_ID = "missing_id"
STORED = "stored"
PERSISTENCE_FAILED = "persistence_failed"
FAULT = "fault"

POLICY = {
    UNAUTHORIZED: (401, "Unauthorized"),
    PROBE: (200, "Ping received"),
    MISSING_ID: (400, "Missing required field TransactionId"),
    STORED: (200, "Successfully received data"),
    PERSISTENCE_FAILED: (500, "Database error"),
    FAULT: (500, "Internal server error"),
}


@dataclass(frozen=True)
class IPNResponse:
    status: int
    body: Dict[str, Any] = field(default_factory=dict)

    @property
    def retryable(self) -> bool:
        return self.status >= 500


class ResponsePolicy:

    def __init__(self, shape: Optional[ResponseShape] = None):
        self.shape = shape or ResponseShape()

    def respond(self, outcome: str, transaction_id: Optional[str] = None,
                reference: Optional[str] = None) -> IPNResponse:
        status, message = POLICY[outcome]
        body = {
            self.shape.code_field: str(status),
            self.shape.message_field: message,
        }
        if outcome == STORED:
            body[self.shape.transaction_field] = transaction_id
            body[self.shape.reference_field] = reference
        return IPNResponse(status=status, body=body)
