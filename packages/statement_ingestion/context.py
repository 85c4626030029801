"""Per-run logging context.

Each import carries the document and organisation it belongs to through the
stages. Every module asks the context for its own logger, so events keep the
module name and the run's bindings.
"""

from dataclasses import dataclass, replace
from typing import Optional

import structlog

PREVIEW_CHARS = 200


@dataclass(frozen=True)
class IngestionContext:
    document_id: Optional[str] = None
    org_id: Optional[str] = None

    @classmethod
    def for_document(cls, document_id: str) -> "IngestionContext":
        return cls(document_id=document_id)

    def with_org(self, org_id: str) -> "IngestionContext":
        return replace(self, org_id=org_id)

    def logger(self, name: str):
        """A structlog logger for module ``name`` bound to this run."""
        bindings = {
            key: value
            for key, value in (("document_id", self.document_id), ("org_id", self.org_id))
            if value is not None
        }
        return structlog.get_logger(name).bind(**bindings)


def preview(text: str, limit: int = PREVIEW_CHARS) -> str:
    """Truncate free text for log lines."""
    if len(text) <= limit:
        return text
    return text[:limit] + "..."
