"""Ingestion service: wires the statement importer to Supabase and settings.

The router, the Celery task and the CLI all build their importer here so the
three entry points share bucket, table and batch configuration.
"""

from typing import Optional

from supabase import Client

from apps.api.core.auth import get_service_client
from apps.api.core.config import Settings, get_settings
from packages.statement_ingestion.errors import ConfigurationError
from packages.statement_ingestion.pipeline import StatementIngestor
from packages.statement_ingestion.source import SupabaseDocumentSource
from packages.statement_ingestion.writer import SupabaseTransactionStore


def build_ingestor(
    client: Optional[Client] = None,
    settings: Optional[Settings] = None,
    home_currency: Optional[str] = None,
) -> StatementIngestor:
    """Create a ``StatementIngestor`` backed by the service-role client.

    Raises:
        ConfigurationError: Supabase credentials are missing.
    """
    settings = settings or get_settings()
    client = client or get_service_client(settings)

    source = SupabaseDocumentSource(
        client,
        bucket=settings.STORAGE_BUCKET,
        documents_table=settings.DOCUMENTS_TABLE,
        timeout=settings.FETCH_TIMEOUT_SECONDS,
    )
    store = SupabaseTransactionStore(client, table=settings.TRANSACTIONS_TABLE)
    return StatementIngestor(
        source,
        store,
        batch_size=settings.UPSERT_BATCH_SIZE,
        home_currency=(home_currency or settings.home_currency).upper(),
        sample_size=settings.DIALECT_SAMPLE_LINES,
    )


def store_configured(settings: Optional[Settings] = None) -> bool:
    """True when the service-role credentials needed for imports are set."""
    try:
        settings = settings or get_settings()
    except ConfigurationError:
        return False
    return bool(settings.SUPABASE_URL and settings.SUPABASE_SERVICE_KEY)
