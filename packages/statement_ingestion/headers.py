"""Stage 3: map raw statement headers onto canonical transaction fields.

Header names are matched after normalisation (case, whitespace and
punctuation are ignored; diacritics are kept). An exact pass runs first over
every field, then a containment pass fills whatever is still unresolved.
"""

import re
from typing import Dict, List, Optional

from .context import IngestionContext
from .dialect import split_fields
from .errors import MissingRequiredHeadersError
from .models import HeaderMap

# Ordered by priority: the first candidate found wins.
HEADER_CANDIDATES: Dict[str, List[str]] = {
    "booking_date": [
        "Data księgowania",
        "Data ksiegowania",
        "Data operacji",
        "Data transakcji",
        "Booking date",
        "Transaction date",
        "Posting date",
        "Date",
        "Data",
    ],
    "value_date": [
        "Data waluty",
        "Data wartości",
        "Data wartosci",
        "Value date",
    ],
    "amount": [
        "Kwota",
        "Kwota operacji",
        "Kwota transakcji",
        "Amount",
        "Transaction amount",
    ],
    "currency": [
        "Waluta",
        "Currency",
    ],
    "description": [
        "Opis operacji",
        "Tytuł",
        "Tytul",
        "Opis",
        "Description",
        "Title",
        "Details",
    ],
    "counterparty_name": [
        "Kontrahent",
        "Nadawca/Odbiorca",
        "Odbiorca",
        "Nadawca",
        "Nazwa kontrahenta",
        "Counterparty",
        "Counterparty name",
        "Payee",
        "Beneficiary",
    ],
    "counterparty_account": [
        "Rachunek kontrahenta",
        "Numer rachunku",
        "Nr rachunku",
        "Konto",
        "Counterparty account",
        "Account number",
        "IBAN",
    ],
}

# Containment matches on very short strings ("nr", "id") are noise.
MIN_PARTIAL_LENGTH = 4

_NOT_WORD = re.compile(r"[^\w ]|_")
_SPACES = re.compile(r"\s+")


def normalise_header(text: str) -> str:
    text = text.replace("\u00a0", " ").strip().lower()
    text = _SPACES.sub(" ", text)
    return _NOT_WORD.sub("", text).strip()


def split_header(line: str, delimiter: str) -> List[str]:
    """Split the header line into trimmed, unique names.

    mBank prefixes every header with ``#``; that marker is dropped. Trailing
    blank cells are removed; a blank cell in the middle becomes ``column_N``
    so the data columns keep their positions.
    """
    names = []
    for cell in split_fields(line, delimiter):
        name = cell.strip()
        if name.startswith("#"):
            name = name[1:].strip()
        names.append(name)
    while names and not names[-1]:
        names.pop()

    headers: List[str] = []
    seen: Dict[str, int] = {}
    for position, name in enumerate(names, start=1):
        if not name:
            name = f"column_{position}"
        if name in seen:
            seen[name] += 1
            name = f"{name} ({seen[name]})"
        else:
            seen[name] = 1
        headers.append(name)
    return headers


def _partial_match(normalised: str, candidate: str) -> bool:
    shorter = min(len(normalised), len(candidate))
    if shorter < MIN_PARTIAL_LENGTH:
        return False
    return candidate in normalised or normalised in candidate


def find_header(
    lookup: Dict[str, str],
    candidates: List[str],
    claimed: Optional[set] = None,
    exact: bool = True,
) -> Optional[str]:
    """Return the original header matching the first possible candidate."""
    claimed = claimed or set()
    for candidate in candidates:
        key = normalise_header(candidate)
        if exact:
            original = lookup.get(key)
            if original is not None and original not in claimed:
                return original
            continue
        for normalised, original in lookup.items():
            if original in claimed:
                continue
            if _partial_match(normalised, key):
                return original
    return None


def resolve_headers(
    headers: List[str], context: Optional[IngestionContext] = None
) -> HeaderMap:
    """Resolve canonical fields against ``headers``.

    Raises:
        MissingRequiredHeadersError: booking date, amount or description
            could not be matched. The payload lists the raw headers and the
            partial matches for the operator.
    """
    context = context or IngestionContext()
    log = context.logger(__name__)
    lookup: Dict[str, str] = {}
    for header in headers:
        lookup.setdefault(normalise_header(header), header)

    header_map = HeaderMap()
    claimed: set = set()

    for exact in (True, False):
        for name, candidates in HEADER_CANDIDATES.items():
            if getattr(header_map, name) is not None:
                continue
            hit = find_header(lookup, candidates, claimed, exact=exact)
            if hit is not None:
                setattr(header_map, name, hit)
                claimed.add(hit)

    missing = header_map.missing_required()
    log.info("headers_resolved", headers=headers, matched=header_map.to_dict(), missing=missing)

    if missing:
        raise MissingRequiredHeadersError(
            f"Missing required headers: {', '.join(missing)}",
            extra={"headers": headers, "matched": header_map.to_dict(), "missing": missing},
        )
    return header_map
