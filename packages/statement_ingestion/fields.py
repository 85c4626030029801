"""Stage 5: convert raw cells into canonical typed values.

Dates: ``YYYY-MM-DD`` or ``DD.MM.YYYY``, nothing else.
Amounts: locale-tolerant decimal parsing (see ``parse_amount``).
Currency: the currency column, else a code next to the amount, else the
organisation's home currency.
"""

import re
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import List, Optional, Sequence

from .context import IngestionContext
from .fingerprint import compute_transaction_hash
from .models import HeaderMap, NormalizedTransaction, RawRow

DEFAULT_HOME_CURRENCY = "PLN"
INVALID_SAMPLE_LIMIT = 5

_ISO_DATE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_DOTTED_DATE = re.compile(r"^(\d{2})\.(\d{2})\.(\d{4})$")

_WHITESPACE = re.compile(r"\s+")
_CURRENCY_SYMBOLS = re.compile(r"zł|€|\$|£", re.IGNORECASE)
_CURRENCY_CODE_EDGES = re.compile(r"^[A-Za-z]{3}|[A-Za-z]{3}$")
# A dot followed by exactly three digits and then a non-digit (or the end)
# separates thousands: 1.234,56 / 1.234.567
_THOUSANDS_DOT = re.compile(r"\.(?=\d{3}(?:\D|$))")
_DECIMAL = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)$")

_TRAILING_CODE = re.compile(r"(?<![A-Za-z])([A-Z]{3})$")
_LEADING_CODE = re.compile(r"^([A-Z]{3})(?![A-Za-z])")


def parse_date(text: Optional[str]) -> Optional[str]:
    """Return an ISO date string, or ``None`` for any other shape."""
    if not text:
        return None
    text = text.strip()

    match = _ISO_DATE.match(text)
    if match:
        year, month, day = match.groups()
    else:
        match = _DOTTED_DATE.match(text)
        if not match:
            return None
        day, month, year = match.groups()

    try:
        date(int(year), int(month), int(day))
    except ValueError:
        return None
    return f"{year}-{month}-{day}"


def parse_amount(text: Optional[str]) -> Optional[Decimal]:
    """Parse a signed amount written in any of the usual bank locales.

    ``"1 234,56 PLN"`` -> 1234.56, ``"1234.56"`` -> 1234.56,
    ``"-120,00"`` -> -120.00. Anything that is not a number once currency
    markers and separators are gone gives ``None``.
    """
    if text is None:
        return None

    s = _WHITESPACE.sub("", text.replace("\u00a0", ""))
    s = _CURRENCY_SYMBOLS.sub("", s)
    s = _CURRENCY_CODE_EDGES.sub("", s)
    s = _THOUSANDS_DOT.sub("", s)

    if "," in s and "." in s:
        s = s.replace(",", "")
    elif s.count(",") > 1:
        s = s.replace(",", "")
    else:
        s = s.replace(",", ".")

    if not _DECIMAL.match(s):
        return None
    try:
        return Decimal(s)
    except InvalidOperation:
        return None


def extract_currency(amount_text: Optional[str]) -> Optional[str]:
    """Currency code written next to the amount, e.g. ``-120,00 PLN``."""
    if not amount_text:
        return None
    text = amount_text.strip()
    match = _TRAILING_CODE.search(text) or _LEADING_CODE.search(text)
    return match.group(1) if match else None


def clean_text(value: Optional[str]) -> Optional[str]:
    """Collapse whitespace (including embedded newlines); blank -> None."""
    if value is None:
        return None
    cleaned = _WHITESPACE.sub(" ", value).strip()
    return cleaned or None


def _cell(row: RawRow, header: Optional[str]) -> Optional[str]:
    if header is None:
        return None
    value = row.get(header)
    if value is None:
        return None
    value = value.strip()
    return value or None


def normalize_row(
    row: RawRow,
    header_map: HeaderMap,
    *,
    org_id: str,
    document_id: str,
    home_currency: str = DEFAULT_HOME_CURRENCY,
) -> Optional[NormalizedTransaction]:
    """Build a ``NormalizedTransaction`` or return ``None`` for an invalid row.

    A row is invalid when its booking date, amount or description does not
    survive normalisation.
    """
    booking_date = parse_date(_cell(row, header_map.booking_date))
    amount_text = _cell(row, header_map.amount)
    amount = parse_amount(amount_text)
    description = clean_text(_cell(row, header_map.description))

    if booking_date is None or amount is None or not description:
        return None

    currency = (
        _cell(row, header_map.currency)
        or extract_currency(amount_text)
        or home_currency
    ).upper()
    counterparty_name = clean_text(_cell(row, header_map.counterparty_name))
    counterparty_account = clean_text(_cell(row, header_map.counterparty_account))

    return NormalizedTransaction(
        org_id=org_id,
        source_document_id=document_id,
        booking_date=booking_date,
        value_date=parse_date(_cell(row, header_map.value_date)),
        amount=amount,
        currency=currency,
        description=description,
        counterparty_name=counterparty_name,
        counterparty_account=counterparty_account,
        transaction_hash=compute_transaction_hash(
            booking_date,
            amount,
            currency,
            description,
            counterparty_account,
            counterparty_name,
        ),
        raw=dict(row),
    )


@dataclass
class MappingResult:
    transactions: List[NormalizedTransaction] = field(default_factory=list)
    invalid: int = 0
    invalid_samples: List[RawRow] = field(default_factory=list)


def map_rows(
    rows: Sequence[RawRow],
    header_map: HeaderMap,
    *,
    org_id: str,
    document_id: str,
    home_currency: str = DEFAULT_HOME_CURRENCY,
    context: Optional[IngestionContext] = None,
) -> MappingResult:
    """Normalise every row; invalid rows are counted, never fatal."""
    context = context or IngestionContext()
    log = context.logger(__name__)
    result = MappingResult()
    for row in rows:
        tx = normalize_row(
            row,
            header_map,
            org_id=org_id,
            document_id=document_id,
            home_currency=home_currency,
        )
        if tx is None:
            result.invalid += 1
            if len(result.invalid_samples) < INVALID_SAMPLE_LIMIT:
                result.invalid_samples.append(row)
            continue
        result.transactions.append(tx)

    log.info(
        "rows_mapped",
        valid=len(result.transactions),
        invalid=result.invalid,
        invalid_samples=result.invalid_samples,
    )
    return result
