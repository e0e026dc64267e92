"""
IPN Pipeline Orchestrator - Coordinates Auth, Validate, Extract, Record, Respond.

Flow: Authenticate → Validate → Extract Reference → Record → Response Policy

Every stage may short-circuit, and every path ends in an IPNResponse so the
sender always gets an explicit status.
"""
import json
import logging
from typing import Any, Mapping, Optional

from .auth import Authenticator
from .config import Config
from .errors import AuthenticationFailure, PersistenceFailure, UnexpectedFault, ValidationFailure
from .reference import ReferenceExtractor
from .responses import (
    FAULT, MISSING_ID, PERSISTENCE_FAILED, PROBE, STORED, UNAUTHORIZED,
    IPNResponse, ResponsePolicy,
)
from .schema import build_record, get_field
from .validate import PayloadKind, PayloadValidator


class IPNPipeline:
    """
    Single-purpose ingestion boundary for bank payment notifications.

    The recorder is anything with a record(TransactionRecord) method that
    raises PersistenceFailure on backend errors (see SupabaseRecorder).
    """

    def __init__(self, config: Config, recorder: Any,
                 authenticator: Optional[Authenticator] = None):
        self.config = config
        self.recorder = recorder
        self.authenticator = authenticator or Authenticator.from_config(config)
        self.validator = PayloadValidator()
        self.extractor = ReferenceExtractor()
        self.policy = ResponsePolicy(config.response_shape)

    def process(self, headers: Mapping[str, str], raw_body: Optional[bytes]) -> IPNResponse:
        """
        Handle one notification request end to end.

        Args:
            headers: Request headers (credential-bearing)
            raw_body: Undecoded request body

        Returns:
            IPNResponse with the status and fixed-shape body
        """
        try:
            return self._process(headers, raw_body)
        except AuthenticationFailure:
            return self.policy.respond(UNAUTHORIZED)
        except ValidationFailure as e:
            logging.warning(f"Rejected IPN body: {e}")
            return self.policy.respond(MISSING_ID)
        except PersistenceFailure:
            return self.policy.respond(PERSISTENCE_FAILED)
        except Exception as e:
            fault = UnexpectedFault(f"{type(e).__name__}: {e}")
            logging.exception(f"IPN_PIPELINE_ERROR: {fault}")
            return self.policy.respond(FAULT)

    def _process(self, headers: Mapping[str, str], raw_body: Optional[bytes]) -> IPNResponse:
        # ─── 1. Authenticate ───
        result = self.authenticator.authenticate(headers)
        if not result.authenticated:
            raise AuthenticationFailure(result.reason)

        # ─── 2. Validate ───
        body = self._decode(raw_body)

        kind = self.validator.classify(body)
        if kind is PayloadKind.LIVENESS_PROBE:
            logging.debug("IPN liveness probe received.")
            return self.policy.respond(PROBE)
        if kind is PayloadKind.MALFORMED:
            keys = sorted(body) if isinstance(body, dict) else type(body).__name__
            raise ValidationFailure(f"missing TransactionId, keys: {keys}")

        # ─── 3. Extract Reference ───
        reference, phone = self.extractor.extract(
            narration=get_field(body, "narration"),
            memo_line=get_field(body, "memo_line_1"),
            extra_lines=(get_field(body, "memo_line_2"), get_field(body, "memo_line_3")),
        )
        record = build_record(body, final_reference=reference, phone_number=phone)

        # ─── 4. Record ───
        self.recorder.record(record)

        # ─── 5. Respond ───
        return self.policy.respond(STORED, transaction_id=record["transaction_id"], reference=reference)

    @staticmethod
    def _decode(raw_body: Optional[bytes]) -> Any:
        """Decode the JSON body; an empty body decodes to None."""
        if raw_body is None or not raw_body.strip():
            return None
        try:
            return json.loads(raw_body)
        except (ValueError, UnicodeDecodeError) as e:
            raise ValidationFailure(f"Body is not valid JSON: {e}") from e
