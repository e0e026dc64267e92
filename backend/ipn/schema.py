"""
Transaction Schema - Wire payload to canonical record mapping.

The bank posts PascalCase keys; the table stores snake_case columns. Each
field is looked up under its wire key first, then under its canonical name,
so sender revisions using either convention are accepted. Unknown keys are
dropped silently.
"""
import logging
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional, TypedDict


class TransactionRecord(TypedDict):
    """One row of the transactions table, keyed by transaction_id."""
    transaction_id: str
    account_no: Optional[str]
    currency: Optional[str]
    amount: Optional[str]           # Decimal serialized as string for numeric columns
    booked_balance: str
    cleared_balance: str
    exchange_rate: Optional[str]
    narration: Optional[str]
    memo_line_1: Optional[str]
    memo_line_2: Optional[str]
    memo_line_3: Optional[str]
    event_type: Optional[str]
    payment_ref: Optional[str]
    posting_date: Optional[str]
    value_date: Optional[str]
    transaction_date: Optional[str]
    final_reference: Optional[str]  # Reference Extractor output
    phone_number: Optional[str]     # Optional mobile enrichment
    received_at: str                # ISO 8601, UTC


# canonical column -> wire key
WIRE_KEYS = {
    "transaction_id": "TransactionId",
    "account_no": "AcctNo",
    "currency": "Currency",
    "amount": "Amount",
    "booked_balance": "BookedBalance",
    "cleared_balance": "ClearedBalance",
    "exchange_rate": "ExchangeRate",
    "narration": "Narration",
    "memo_line_1": "CustMemoLine1",
    "memo_line_2": "CustMemoLine2",
    "memo_line_3": "CustMemoLine3",
    "event_type": "EventType",
    "payment_ref": "PaymentRef",
    "posting_date": "PostingDate",
    "value_date": "ValueDate",
    "transaction_date": "TransactionDate",
}

TEXT_FIELDS = [
    "account_no", "currency", "narration", "memo_line_1", "memo_line_2", "memo_line_3",
    "event_type", "payment_ref", "posting_date", "value_date", "transaction_date",
]

ZERO = Decimal("0")

# Postgres numeric limits: 131072 digits before the point, 16383 after
NUMERIC_MAX_ADJUSTED = 131071
NUMERIC_MAX_SCALE = 16383


def get_field(payload: Dict[str, Any], column: str) -> Any:
    wire_key = WIRE_KEYS[column]
    value = payload.get(wire_key)
    if value is None:
        value = payload.get(column)
    return value


def transaction_id_of(payload: Dict[str, Any]) -> Optional[str]:
    """Trimmed transaction id, or None when absent/blank."""
    value = get_field(payload, "transaction_id")
    if value is None or isinstance(value, (bool, dict, list)):
        return None
    value = str(value).strip()
    return value or None


def parse_decimal(value: Any, default: Optional[Decimal] = None) -> Optional[Decimal]:
    """Parse a sender-formatted number ("1,250.00", 1250, " 12.5 ")."""
    if value is None or isinstance(value, bool):
        return default
    text = str(value).replace(",", "").strip()
    if not text:
        return default
    try:
        parsed = Decimal(text)
    except InvalidOperation:
        return default
    if not parsed.is_finite():
        return default
    if parsed.adjusted() > NUMERIC_MAX_ADJUSTED or -parsed.as_tuple().exponent > NUMERIC_MAX_SCALE:
        return default
    return parsed


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    return value if isinstance(value, str) else str(value)


def _decimal_str(value: Optional[Decimal]) -> Optional[str]:
    return None if value is None else str(value)


def build_record(payload: Dict[str, Any], final_reference: Optional[str],
                 phone_number: Optional[str], received_at: Optional[datetime] = None) -> TransactionRecord:
    """Assemble the canonical record from a validated payload."""
    transaction_id = transaction_id_of(payload)

    raw_amount = get_field(payload, "amount")
    amount = parse_decimal(raw_amount)
    if amount is None and raw_amount not in (None, ""):
        logging.warning(f"Unparseable amount {raw_amount!r} on transaction {transaction_id}; storing null")

    record = {column: _text(get_field(payload, column)) for column in TEXT_FIELDS}
    record.update({
        "transaction_id": transaction_id,
        "amount": _decimal_str(amount),
        "booked_balance": _decimal_str(parse_decimal(get_field(payload, "booked_balance"), ZERO)),
        "cleared_balance": _decimal_str(parse_decimal(get_field(payload, "cleared_balance"), ZERO)),
        "exchange_rate": _decimal_str(parse_decimal(get_field(payload, "exchange_rate"))),
        "final_reference": final_reference,
        "phone_number": phone_number,
        "received_at": (received_at or datetime.now(timezone.utc)).isoformat(),
    })
    return record
