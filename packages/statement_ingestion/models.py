"""Data shapes passed between the ingestion stages."""

from dataclasses import asdict, dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional

RawRow = Dict[str, str]

REQUIRED_FIELDS = ("booking_date", "amount", "description")
UNCATEGORISED = "uncategorised"
BANK_CONFIRMATION = "BANK_CONFIRMATION"


@dataclass(frozen=True)
class Dialect:
    """Field delimiter and position of the header line in the normalised lines."""

    delimiter: str
    header_line_index: int

    def to_dict(self) -> Dict[str, Any]:
        return {"delimiter": self.delimiter, "header_line_index": self.header_line_index}


@dataclass
class HeaderMap:
    """Canonical field -> raw header text as it appears in the statement."""

    booking_date: Optional[str] = None
    value_date: Optional[str] = None
    amount: Optional[str] = None
    currency: Optional[str] = None
    description: Optional[str] = None
    counterparty_name: Optional[str] = None
    counterparty_account: Optional[str] = None

    def missing_required(self) -> List[str]:
        return [name for name in REQUIRED_FIELDS if getattr(self, name) is None]

    def claimed_headers(self) -> List[str]:
        return [v for v in asdict(self).values() if v is not None]

    def to_dict(self) -> Dict[str, Optional[str]]:
        return asdict(self)


@dataclass(frozen=True)
class NormalizedTransaction:
    """One canonical transaction row, ready for the store."""

    org_id: str
    source_document_id: str
    booking_date: str
    amount: Decimal
    currency: str
    description: str
    transaction_hash: str
    value_date: Optional[str] = None
    counterparty_name: Optional[str] = None
    counterparty_account: Optional[str] = None
    category: str = UNCATEGORISED
    raw: RawRow = field(default_factory=dict)

    @property
    def direction(self) -> str:
        return "in" if self.amount >= 0 else "out"

    def to_record(self) -> Dict[str, Any]:
        """Row shape of the ``finance_transactions`` table."""
        return {
            "org_id": self.org_id,
            "source_document_id": self.source_document_id,
            "booking_date": self.booking_date,
            "value_date": self.value_date,
            # numeric column; a string keeps the exact decimal through JSON
            "amount": format(self.amount, "f"),
            "currency": self.currency,
            "description": self.description,
            "counterparty_name": self.counterparty_name,
            "counterparty_account": self.counterparty_account,
            "direction": self.direction,
            "category": self.category,
            "transaction_hash": self.transaction_hash,
            "raw": dict(self.raw),
        }


@dataclass(frozen=True)
class StatementDocument:
    """A ``documents`` row that passed validation for import."""

    id: str
    org_id: str
    storage_path: str
    declared_type: str
    file_url: Optional[str] = None
    file_name: Optional[str] = None


@dataclass
class ImportResult:
    document_id: str
    parsed: int
    valid: int
    invalid: int
    upserted: int
    duplicates_skipped: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"ok": True, **asdict(self)}
