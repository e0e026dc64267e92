"""
Supabase Recorder - Idempotent persistence for IPN transactions.

One upsert per notification, keyed on transaction_id. Duplicate delivery is
resolved by the table's unique constraint with ignore_duplicates, so the
first stored row wins and later redeliveries are no-ops. No state is kept
in-process; any number of relay instances can share the table.
"""
import logging
from typing import Any

from supabase import Client, create_client

from backend.ipn.config import Config
from backend.ipn.errors import PersistenceFailure
from backend.ipn.schema import TransactionRecord


CONFLICT_KEY = "transaction_id"

STORED = "stored"
DUPLICATE = "duplicate"


class SupabaseRecorder:
    """
    Writes canonical transaction records to Supabase.

    Usage:
        recorder = SupabaseRecorder.from_config(config)
        recorder.record(record)
    """

    def __init__(self, client: Client, table: str):
        self.client = client
        self.table = table

    @classmethod
    def from_config(cls, config: Config) -> "SupabaseRecorder":
        client = create_client(config.supabase_url, config.supabase_key)
        logging.info(f"Supabase client initialized for table '{config.table}'.")
        return cls(client, config.table)

    def record(self, record: TransactionRecord) -> str:
        """
        Upsert a record, ignoring it if the transaction_id already exists.

        Returns:
            STORED if a new row was written, DUPLICATE if the id already existed

        Raises:
            PersistenceFailure: the backend call failed; nothing was written
        """
        transaction_id = record["transaction_id"]
        try:
            res = (
                self.client.table(self.table)
                .upsert(dict(record), on_conflict=CONFLICT_KEY, ignore_duplicates=True)
                .execute()
            )
        except Exception as e:
            logging.error(f"Supabase upsert failed for transaction {transaction_id}: {e}")
            raise PersistenceFailure(e) from e

        inserted = self._rows(res) > 0
        if inserted:
            logging.info(f"Stored transaction {transaction_id} (ref: {record.get('final_reference')}).")
        else:
            logging.info(f"Duplicate delivery of transaction {transaction_id} ignored.")
        return STORED if inserted else DUPLICATE

    @staticmethod
    def _rows(res: Any) -> int:
        # With ignore_duplicates PostgREST returns only the rows it inserted
        data = getattr(res, "data", None)
        return len(data) if data else 0
