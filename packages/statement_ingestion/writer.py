"""Stage 7: write transaction records to the store in fixed-size batches.

Writes are keyed on ``(org_id, transaction_hash)`` and colliding rows are
skipped, so a batch can be replayed any number of times. A failed batch
stops the run but earlier batches stay committed; the error carries the
offset to resume from.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Sequence

from .context import IngestionContext
from .errors import UpsertFailedError

DEFAULT_BATCH_SIZE = 200
TRANSACTIONS_TABLE = "finance_transactions"
CONFLICT_KEY = "org_id,transaction_hash"


class TransactionStore(Protocol):
    def upsert(self, records: List[Dict[str, Any]]) -> int:
        """Insert ``records`` that are not stored yet; return how many were new."""
        ...


class SupabaseTransactionStore:
    """``TransactionStore`` backed by a Supabase (PostgREST) table."""

    def __init__(self, client, table: str = TRANSACTIONS_TABLE):
        self.client = client
        self.table = table

    def upsert(self, records: List[Dict[str, Any]]) -> int:
        response = (
            self.client.table(self.table)
            .upsert(records, on_conflict=CONFLICT_KEY, ignore_duplicates=True)
            .execute()
        )
        return len(response.data or [])


@dataclass
class WriteResult:
    upserted: int = 0
    batches: int = 0
    next_offset: int = 0


class BatchedWriter:
    def __init__(self, store: TransactionStore, batch_size: int = DEFAULT_BATCH_SIZE):
        if batch_size < 1:
            raise ValueError("batch_size must be positive")
        self.store = store
        self.batch_size = batch_size

    def write(
        self,
        records: Sequence[Dict[str, Any]],
        start_offset: int = 0,
        context: Optional[IngestionContext] = None,
    ) -> WriteResult:
        """Write ``records[start_offset:]`` batch by batch.

        Raises:
            UpsertFailedError: a batch was rejected. ``extra`` holds the rows
                confirmed so far, the failing batch number and
                ``resume_offset`` for the next attempt.
        """
        context = context or IngestionContext()
        log = context.logger(__name__)
        result = WriteResult(next_offset=start_offset)

        for offset in range(start_offset, len(records), self.batch_size):
            batch = list(records[offset:offset + self.batch_size])
            batch_number = result.batches + 1
            try:
                written = self.store.upsert(batch)
            except Exception as e:
                log.error(
                    "batch_upsert_failed",
                    batch=batch_number,
                    offset=offset,
                    size=len(batch),
                    error=str(e),
                )
                raise UpsertFailedError(
                    f"Upsert failed on batch {batch_number}: {e}",
                    extra={
                        "upserted": result.upserted,
                        "failed_batch": batch_number,
                        "resume_offset": offset,
                    },
                ) from e

            result.upserted += written
            result.batches = batch_number
            result.next_offset = offset + len(batch)
            log.info(
                "batch_upserted",
                batch=batch_number,
                size=len(batch),
                inserted=written,
                total_upserted=result.upserted,
            )

        return result
