"""Pydantic schemas for the ingestion domain."""

from pydantic import BaseModel, Field
from typing import Optional

from packages.statement_ingestion.models import ImportResult, NormalizedTransaction
from packages.statement_ingestion.pipeline import StatementPreview


class ImportSummary(BaseModel):
    """Counts from a finished bank statement import."""

    ok: bool = True
    document_id: str
    parsed: int
    valid: int
    invalid: int
    upserted: int
    duplicates_skipped: int = 0

    @classmethod
    def from_result(cls, result: ImportResult) -> "ImportSummary":
        return cls(**result.to_dict())


class TransactionOut(BaseModel):
    """A normalised, fingerprinted transaction as it would be stored."""

    booking_date: str
    value_date: Optional[str] = None
    amount: str  # exact decimal as text
    currency: str
    direction: str  # "in" or "out"
    description: str
    counterparty_name: Optional[str] = None
    counterparty_account: Optional[str] = None
    category: str = "uncategorised"
    transaction_hash: str
    raw: dict = Field(default_factory=dict)

    @classmethod
    def from_transaction(cls, tx: NormalizedTransaction) -> "TransactionOut":
        record = tx.to_record()
        return cls(**{name: record[name] for name in cls.model_fields})


class PreviewResponse(BaseModel):
    """Dry-run parse of an uploaded statement; nothing is written."""

    delimiter: str
    header_line_index: int
    headers: list[str]
    header_map: dict[str, Optional[str]]
    strategy: str
    parsed: int
    valid: int
    invalid: int
    duplicates_in_file: int = 0
    invalid_samples: list[dict] = Field(default_factory=list)
    transactions: list[TransactionOut]
    count: int

    @classmethod
    def from_preview(cls, preview: StatementPreview) -> "PreviewResponse":
        transactions = [TransactionOut.from_transaction(tx) for tx in preview.transactions]
        return cls(
            delimiter=preview.dialect.delimiter,
            header_line_index=preview.dialect.header_line_index,
            headers=preview.headers,
            header_map=preview.header_map.to_dict(),
            strategy=preview.strategy,
            parsed=preview.parsed,
            valid=preview.valid,
            invalid=preview.invalid,
            duplicates_in_file=preview.duplicates_in_file,
            invalid_samples=preview.invalid_samples,
            transactions=transactions,
            count=len(transactions),
        )
