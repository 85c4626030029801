"""Celery tasks for background bank statement imports.

The task always finishes with the structured result dict, success or
failure, so callers polling the result backend see the failing step.
Acquisition and persistence failures are retried; an upsert that failed
half-way is safe to rerun because rows already written are skipped.
"""

from typing import Dict

import structlog
from celery import shared_task

from apps.api.domains.ingestion.service import build_ingestor
from packages.statement_ingestion.errors import StatementImportError

logger = structlog.get_logger(__name__)


@shared_task(bind=True, max_retries=3, default_retry_delay=30)
def import_bank_statement_task(self, document_id: str) -> Dict:
    """Import one ``documents`` row of type BANK_CONFIRMATION."""
    log = logger.bind(document_id=document_id, attempt=self.request.retries + 1)
    try:
        result = build_ingestor().ingest(document_id).to_dict()
    except StatementImportError as exc:
        log.warning(
            "import_task_failed",
            step=exc.step,
            error=exc.message,
            retryable=exc.retryable,
        )
        if exc.retryable and self.request.retries < self.max_retries:
            raise self.retry(exc=exc)
        return exc.to_dict()

    log.info("import_task_completed", upserted=result["upserted"])
    return result
