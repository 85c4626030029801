"""Ingestion router: bank statement import and dry-run preview endpoints."""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from supabase import Client

from apps.api.core.auth import get_user_client
from apps.api.core.config import Settings, get_settings
from apps.api.core.errors import IngestionFailedError, PayloadTooLargeError
from apps.api.domains.ingestion.schemas import ImportSummary, PreviewResponse
from apps.api.domains.ingestion.service import build_ingestor
from packages.statement_ingestion.errors import StatementImportError
from packages.statement_ingestion.pipeline import StatementIngestor, preview_statement

router = APIRouter(prefix="/ingest", tags=["ingestion"])
logger = structlog.get_logger()

ALLOWED_EXTENSIONS = (".csv", ".txt")


def get_ingestor() -> StatementIngestor:
    """Service-role importer; overridden in tests."""
    return build_ingestor()


@router.post("/bank-statements/preview", response_model=PreviewResponse)
async def preview_bank_statement(
    file: UploadFile = File(...),
    org_id: str = Form(...),
    home_currency: Optional[str] = Form(None),
    client: Client = Depends(get_user_client),
    settings: Settings = Depends(get_settings),
):
    """Parse an uploaded statement and return what an import would write.

    Nothing is stored; use this to check how a new bank layout resolves.
    """
    filename = file.filename or ""
    if not filename.lower().endswith(ALLOWED_EXTENSIONS):
        raise HTTPException(
            status_code=415,
            detail=f"Unsupported file type. Accepted: {', '.join(ALLOWED_EXTENSIONS)}",
        )

    contents = await file.read()
    if len(contents) > settings.MAX_UPLOAD_BYTES:
        raise PayloadTooLargeError(
            f"File too large (max {settings.MAX_UPLOAD_BYTES // (1024 * 1024)}MB)"
        )

    try:
        preview = preview_statement(
            contents,
            org_id=org_id,
            document_id=filename,
            home_currency=(home_currency or settings.home_currency).upper(),
            sample_size=settings.DIALECT_SAMPLE_LINES,
        )
    except StatementImportError as e:
        logger.info("statement_preview_failed", step=e.step, filename=filename)
        raise IngestionFailedError.from_import_error(e)

    logger.info("statement_preview_complete", valid=preview.valid, filename=filename)
    return PreviewResponse.from_preview(preview)


@router.post("/bank-statements/{document_id}", response_model=ImportSummary)
def import_bank_statement(
    document_id: str,
    client: Client = Depends(get_user_client),
    ingestor: StatementIngestor = Depends(get_ingestor),
):
    """Import a stored bank statement document into ``finance_transactions``.

    Safe to call repeatedly: rows already imported for the organisation are
    skipped and reported in ``duplicates_skipped``.
    """
    try:
        result = ingestor.ingest(document_id)
    except StatementImportError as e:
        logger.warning(
            "statement_import_failed",
            document_id=document_id,
            step=e.step,
            error=e.message,
        )
        raise IngestionFailedError.from_import_error(e)

    return ImportSummary.from_result(result)
