from decimal import Decimal

import pytest

from packages.statement_ingestion.fields import (
    INVALID_SAMPLE_LIMIT,
    extract_currency,
    map_rows,
    normalize_row,
    parse_amount,
    parse_date,
)
from packages.statement_ingestion.models import HeaderMap


HEADER_MAP = HeaderMap(
    booking_date="Data",
    amount="Kwota",
    description="Opis",
    currency="Waluta",
    counterparty_name="Kontrahent",
)


@pytest.mark.parametrize(
    "text, expected",
    [
        ("1 234,56 PLN", Decimal("1234.56")),
        ("1234.56", Decimal("1234.56")),
        ("-120,00", Decimal("-120.00")),
        ("1.234,56", Decimal("1234.56")),
        ("1,234.56", Decimal("1234.56")),
        ("1.234.567", Decimal("1234567")),
        ("-1\u00a0234,56 zł", Decimal("-1234.56")),
        ("€12.50", Decimal("12.50")),
        ("EUR -3,10", Decimal("-3.10")),
        ("+15,5", Decimal("15.5")),
        ("0,00", Decimal("0.00")),
    ],
)
def test_parse_amount_locales(text, expected):
    assert parse_amount(text) == expected


@pytest.mark.parametrize("text", [None, "", "abc", "12-34", "1,2.3.4,5", "--5"])
def test_parse_amount_rejects_garbage(text):
    assert parse_amount(text) is None


def test_parse_date_formats():
    assert parse_date("2024-03-01") == "2024-03-01"
    assert parse_date(" 01.03.2024 ") == "2024-03-01"


@pytest.mark.parametrize("text", [None, "", "2024-02-30", "03/01/2024", "1.3.2024", "31.13.2024"])
def test_parse_date_rejects_other_shapes(text):
    assert parse_date(text) is None


def test_extract_currency():
    assert extract_currency("-120,00 PLN") == "PLN"
    assert extract_currency("EUR 12,00") == "EUR"
    assert extract_currency("12,00") is None
    assert extract_currency(None) is None


def test_normalize_row_builds_transaction():
    row = {
        "Data": "01.03.2024",
        "Kwota": "1 234,56",
        "Opis": "  Przelew\n przychodzący ",
        "Waluta": "eur",
        "Kontrahent": "",
    }

    tx = normalize_row(row, HEADER_MAP, org_id="org-1", document_id="doc-1")

    assert tx.booking_date == "2024-03-01"
    assert tx.amount == Decimal("1234.56")
    assert tx.direction == "in"
    assert tx.currency == "EUR"
    assert tx.description == "Przelew przychodzący"
    assert tx.counterparty_name is None
    assert tx.value_date is None
    assert tx.category == "uncategorised"
    assert tx.raw == row
    assert len(tx.transaction_hash) == 64


def test_normalize_row_currency_from_amount_then_home():
    header_map = HeaderMap(booking_date="Data", amount="Kwota", description="Opis")

    from_amount = normalize_row(
        {"Data": "2024-03-01", "Kwota": "-120,00 USD", "Opis": "Hotel"},
        header_map,
        org_id="org-1",
        document_id="doc-1",
    )
    from_home = normalize_row(
        {"Data": "2024-03-01", "Kwota": "-120,00", "Opis": "Hotel"},
        header_map,
        org_id="org-1",
        document_id="doc-1",
        home_currency="CHF",
    )

    assert from_amount.currency == "USD"
    assert from_amount.direction == "out"
    assert from_home.currency == "CHF"


def test_normalize_row_invalid_returns_none():
    base = {"Data": "2024-03-01", "Kwota": "-10,00", "Opis": "Sklep", "Waluta": "PLN"}

    for field_name, bad in (("Data", "wczoraj"), ("Kwota", "n/a"), ("Opis", "  ")):
        row = dict(base, **{field_name: bad})
        assert normalize_row(row, HEADER_MAP, org_id="o", document_id="d") is None


def test_to_record_shape():
    tx = normalize_row(
        {"Data": "2024-03-01", "Kwota": "-10,50", "Opis": "Sklep", "Waluta": "PLN"},
        HEADER_MAP,
        org_id="org-1",
        document_id="doc-1",
    )

    record = tx.to_record()

    assert record["amount"] == "-10.50"
    assert record["direction"] == "out"
    assert record["org_id"] == "org-1"
    assert record["source_document_id"] == "doc-1"
    assert record["transaction_hash"] == tx.transaction_hash
    assert record["raw"]["Kwota"] == "-10,50"


def test_map_rows_counts_invalid_and_keeps_samples():
    rows = [{"Data": "2024-03-01", "Kwota": "-1,00", "Opis": f"Op {i}"} for i in range(3)]
    rows += [{"Data": "2024-03-01", "Kwota": "???", "Opis": f"Bad {i}"} for i in range(7)]

    result = map_rows(rows, HEADER_MAP, org_id="org-1", document_id="doc-1")

    assert len(result.transactions) == 3
    assert result.invalid == 7
    assert len(result.invalid_samples) == INVALID_SAMPLE_LIMIT
    assert result.invalid_samples[0]["Opis"] == "Bad 0"
