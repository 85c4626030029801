"""Document lookup and statement acquisition.

The ``documents`` row says where the uploaded statement lives. The file is
read from Supabase Storage first and, if that fails, from its public URL.
"""

import re
from typing import Any, Dict, Optional

import httpx

from .context import IngestionContext
from .errors import (
    DocumentNotFoundError,
    FetchFailedError,
    MissingOrganisationError,
    MissingStoragePathError,
    WrongDocumentTypeError,
)
from .models import BANK_CONFIRMATION, StatementDocument

DEFAULT_BUCKET = "mb-cockpit"
DOCUMENTS_TABLE = "documents"
DEFAULT_FETCH_TIMEOUT = 30.0

_ORG_FROM_PATH = re.compile(r"^documents/([0-9a-fA-F-]{36})/")


def org_from_storage_path(storage_path: Optional[str]) -> Optional[str]:
    """``documents/<org-uuid>/...`` -> ``<org-uuid>``."""
    if not storage_path:
        return None
    match = _ORG_FROM_PATH.match(storage_path)
    return match.group(1) if match else None


def validate_document(row: Dict[str, Any]) -> StatementDocument:
    """Check a ``documents`` row is an importable bank statement.

    Raises:
        WrongDocumentTypeError: ``doc_type`` is not ``BANK_CONFIRMATION``.
        MissingStoragePathError: the row has no storage path.
        MissingOrganisationError: no organisation on the row or in the path.
    """
    declared_type = row.get("doc_type")
    if declared_type != BANK_CONFIRMATION:
        raise WrongDocumentTypeError(
            f"Document type is {declared_type!r}, expected {BANK_CONFIRMATION}",
            extra={"doc_type": declared_type},
        )

    storage_path = row.get("storage_path")
    if not storage_path:
        raise MissingStoragePathError("Document has no storage_path")

    org_id = row.get("organisation_id") or org_from_storage_path(storage_path)
    if not org_id:
        raise MissingOrganisationError(
            "Cannot determine organisation for document",
            extra={"storage_path": storage_path},
        )

    return StatementDocument(
        id=str(row["id"]),
        org_id=org_id,
        storage_path=storage_path,
        declared_type=declared_type,
        file_url=row.get("file_url"),
        file_name=row.get("file_name"),
    )


class SupabaseDocumentSource:
    def __init__(
        self,
        client,
        bucket: str = DEFAULT_BUCKET,
        documents_table: str = DOCUMENTS_TABLE,
        http_client: Optional[httpx.Client] = None,
        timeout: float = DEFAULT_FETCH_TIMEOUT,
    ):
        self.client = client
        self.bucket = bucket
        self.documents_table = documents_table
        self.http_client = http_client
        self.timeout = timeout

    def load(self, document_id: str) -> Dict[str, Any]:
        """Fetch the raw ``documents`` row.

        Raises:
            DocumentNotFoundError: the query failed or returned nothing.
        """
        try:
            response = (
                self.client.table(self.documents_table)
                .select("*")
                .eq("id", document_id)
                .limit(1)
                .execute()
            )
        except Exception as e:
            raise DocumentNotFoundError(
                f"Failed to load document {document_id}: {e}"
            ) from e

        if not response.data:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        return response.data[0]

    def _download_from_url(self, url: str) -> bytes:
        if self.http_client is not None:
            response = self.http_client.get(url, timeout=self.timeout)
        else:
            response = httpx.get(url, timeout=self.timeout, follow_redirects=True)
        response.raise_for_status()
        return response.content

    def fetch(
        self,
        document: StatementDocument,
        context: Optional[IngestionContext] = None,
    ) -> bytes:
        """Return the statement bytes.

        Raises:
            FetchFailedError: storage and public URL both failed. ``extra``
                holds both error messages.
        """
        context = context or IngestionContext()
        log = context.logger(__name__)

        try:
            content = self.client.storage.from_(self.bucket).download(document.storage_path)
            log.info("statement_fetched", source="storage", bytes=len(content))
            return content
        except Exception as e:
            storage_error = str(e)
            log.warning(
                "storage_download_failed",
                bucket=self.bucket,
                storage_path=document.storage_path,
                error=storage_error,
            )

        if not document.file_url:
            url_error = "no file_url"
        else:
            try:
                content = self._download_from_url(document.file_url)
                log.info("statement_fetched", source="file_url", bytes=len(content))
                return content
            except httpx.HTTPError as e:
                url_error = str(e)

        raise FetchFailedError(
            "Could not fetch statement from storage or file_url",
            extra={"storage_error": storage_error, "url_error": url_error},
        )
