"""Failure taxonomy for bank-statement imports.

Every failure carries the pipeline ``step`` it came from, a human message and
an optional diagnostic payload, so callers can render the structured result:

    {"step": "missing_required_headers", "error": "...", "extra": {...}}

``retryable`` marks failures a caller may retry without fixing the source
document (acquisition and persistence problems).
"""

from typing import Any, Dict, Optional


class StatementImportError(Exception):
    """Base class for all import failures."""

    step = "import"
    retryable = False

    def __init__(self, message: str, extra: Optional[Dict[str, Any]] = None):
        self.message = message
        self.extra = extra or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"ok": False, "step": self.step, "error": self.message}
        if self.extra:
            result["extra"] = self.extra
        return result


class ConfigurationError(StatementImportError):
    """Store endpoint or credentials are missing."""

    step = "env"


class DocumentNotFoundError(StatementImportError):
    step = "load_document"


class WrongDocumentTypeError(StatementImportError):
    step = "wrong_doc_type"


class MissingStoragePathError(StatementImportError):
    step = "missing_storage_path"


class MissingOrganisationError(StatementImportError):
    step = "missing_org"


class FetchFailedError(StatementImportError):
    """Neither the blob store nor the public URL returned the file."""

    step = "fetch_failed"
    retryable = True


class NoRowsParsedError(StatementImportError):
    step = "parsed_0_rows"


class MissingRequiredHeadersError(StatementImportError):
    step = "missing_required_headers"


class NoValidRowsError(StatementImportError):
    step = "map_0_valid"


class UpsertFailedError(StatementImportError):
    """A batch write failed. Earlier batches stay written."""

    step = "upsert"
    retryable = True
