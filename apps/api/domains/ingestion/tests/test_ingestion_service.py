"""Tests for importer wiring from settings."""

from unittest.mock import MagicMock

import pytest

from apps.api.core.config import Settings
from apps.api.domains.ingestion.service import build_ingestor, store_configured


@pytest.fixture
def settings():
    return Settings(
        SUPABASE_URL="https://test.supabase.co",
        SUPABASE_SERVICE_KEY="service-key",
        STORAGE_BUCKET="statements",
        TRANSACTIONS_TABLE="tx",
        UPSERT_BATCH_SIZE=50,
        HOME_CURRENCY="eur",
        DIALECT_SAMPLE_LINES=20,
        FETCH_TIMEOUT_SECONDS=5,
    )


def test_build_ingestor_uses_settings(settings):
    client = MagicMock()

    ingestor = build_ingestor(client=client, settings=settings)

    assert ingestor.source.client is client
    assert ingestor.source.bucket == "statements"
    assert ingestor.source.documents_table == "documents"
    assert ingestor.source.timeout == 5
    assert ingestor.writer.store.table == "tx"
    assert ingestor.writer.batch_size == 50
    assert ingestor.home_currency == "EUR"
    assert ingestor.sample_size == 20


def test_build_ingestor_home_currency_override(settings):
    ingestor = build_ingestor(client=MagicMock(), settings=settings, home_currency="usd")

    assert ingestor.home_currency == "USD"


def test_store_configured(settings):
    assert store_configured(settings) is True
    assert store_configured(settings.model_copy(update={"SUPABASE_SERVICE_KEY": ""})) is False
