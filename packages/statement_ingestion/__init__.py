"""
Statement Ingestion

Bank statement CSV import: dialect detection, header resolution, tolerant
parsing, normalisation and idempotent persistence of transactions.
"""

__version__ = "0.1.0"

from .errors import StatementImportError
from .models import HeaderMap, ImportResult, NormalizedTransaction, StatementDocument
from .pipeline import StatementIngestor, ingest_document, parse_statement, preview_statement
from .source import SupabaseDocumentSource
from .writer import BatchedWriter, SupabaseTransactionStore

__all__ = [
    "StatementImportError",
    "HeaderMap",
    "ImportResult",
    "NormalizedTransaction",
    "StatementDocument",
    "StatementIngestor",
    "ingest_document",
    "parse_statement",
    "preview_statement",
    "SupabaseDocumentSource",
    "BatchedWriter",
    "SupabaseTransactionStore",
]
