"""Stage 6: stable content fingerprints and in-file deduplication.

The fingerprint is the idempotency key of ``finance_transactions``:

    SHA256(booking_date|amount|currency|description|counterparty_account|counterparty_name)

``value_date``, the raw row and provenance are left out on purpose, so a
re-export of the same period in a different layout collapses onto the rows
already stored.
"""

import hashlib
from decimal import Decimal
from typing import List, Optional, Sequence, Tuple

from .models import NormalizedTransaction


def amount_key(amount: Decimal) -> str:
    """Plain decimal string without trailing zeros: 1234.56, -120, 100."""
    if amount == 0:
        return "0"
    return format(amount.normalize(), "f")


def compute_transaction_hash(
    booking_date: str,
    amount: Decimal,
    currency: str,
    description: str,
    counterparty_account: Optional[str] = None,
    counterparty_name: Optional[str] = None,
) -> str:
    raw = "|".join(
        [
            booking_date,
            amount_key(amount),
            currency,
            description,
            counterparty_account or "",
            counterparty_name or "",
        ]
    )
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


def dedupe(
    transactions: Sequence[NormalizedTransaction],
) -> Tuple[List[NormalizedTransaction], int]:
    """Keep the first occurrence of every fingerprint, preserving order.

    Returns the unique transactions and how many duplicates were dropped.
    """
    seen = set()
    unique = []
    for tx in transactions:
        if tx.transaction_hash in seen:
            continue
        seen.add(tx.transaction_hash)
        unique.append(tx)
    return unique, len(transactions) - len(unique)
