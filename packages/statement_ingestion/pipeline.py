"""The full import: document -> bytes -> rows -> transactions -> store."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from .context import IngestionContext, preview
from .dialect import DEFAULT_SAMPLE_SIZE, detect_dialect, split_fields
from .errors import NoRowsParsedError, NoValidRowsError, StatementImportError
from .fields import DEFAULT_HOME_CURRENCY, map_rows
from .fingerprint import dedupe
from .headers import resolve_headers, split_header
from .lines import decode_statement, normalise_lines
from .models import Dialect, HeaderMap, ImportResult, NormalizedTransaction, RawRow
from .rows import parse_rows
from .source import validate_document
from .writer import DEFAULT_BATCH_SIZE, BatchedWriter


@dataclass
class ParsedStatement:
    dialect: Dialect
    headers: List[str]
    header_map: HeaderMap
    rows: List[RawRow]
    strategy: str
    repaired: int = 0


@dataclass
class StatementPreview:
    """Dry-run result: what an import would write."""

    dialect: Dialect
    headers: List[str]
    header_map: HeaderMap
    parsed: int
    valid: int
    invalid: int
    duplicates_in_file: int
    strategy: str
    transactions: List[NormalizedTransaction] = field(default_factory=list)
    invalid_samples: List[RawRow] = field(default_factory=list)


def parse_statement(
    content: Union[bytes, str],
    *,
    sample_size: int = DEFAULT_SAMPLE_SIZE,
    context: Optional[IngestionContext] = None,
) -> ParsedStatement:
    """Run the text stages: lines, dialect, headers and rows.

    Raises:
        NoRowsParsedError: the file is empty or has no data rows.
        MissingRequiredHeadersError: required headers could not be resolved.
    """
    context = context or IngestionContext()
    log = context.logger(__name__)
    text = decode_statement(content)
    log.info(
        "statement_received",
        bytes=len(content),
        csv_preview=preview(text),
    )

    lines = normalise_lines(text)
    if not any(line.strip() for line in lines):
        raise NoRowsParsedError("Statement is empty", extra={"lines": len(lines)})

    dialect = detect_dialect(lines, sample_size=sample_size, context=context)
    header_line = lines[dialect.header_line_index]
    headers = split_header(header_line, dialect.delimiter)
    header_map = resolve_headers(headers, context=context)

    parsed = parse_rows(
        lines,
        dialect,
        headers,
        headers.index(header_map.description),
        context=context,
        header_width=len(split_fields(header_line, dialect.delimiter)),
    )
    if not parsed.rows:
        raise NoRowsParsedError(
            "No data rows found after the header",
            extra={"dialect": dialect.to_dict(), "headers": headers},
        )

    return ParsedStatement(
        dialect=dialect,
        headers=headers,
        header_map=header_map,
        rows=parsed.rows,
        strategy=parsed.strategy,
        repaired=parsed.repaired,
    )


def preview_statement(
    content: Union[bytes, str],
    *,
    org_id: str,
    document_id: str = "preview",
    home_currency: str = DEFAULT_HOME_CURRENCY,
    sample_size: int = DEFAULT_SAMPLE_SIZE,
) -> StatementPreview:
    """Dry run of stages 1-6 on ``content``; nothing is written anywhere."""
    context = IngestionContext.for_document(document_id).with_org(org_id)
    parsed = parse_statement(content, sample_size=sample_size, context=context)
    mapping = map_rows(
        parsed.rows,
        parsed.header_map,
        org_id=org_id,
        document_id=document_id,
        home_currency=home_currency,
        context=context,
    )
    unique, in_file = dedupe(mapping.transactions)
    return StatementPreview(
        dialect=parsed.dialect,
        headers=parsed.headers,
        header_map=parsed.header_map,
        parsed=len(parsed.rows),
        valid=len(mapping.transactions),
        invalid=mapping.invalid,
        duplicates_in_file=in_file,
        strategy=parsed.strategy,
        transactions=unique,
        invalid_samples=mapping.invalid_samples,
    )


class StatementIngestor:
    """Runs an import for one document against a source and a store."""

    def __init__(
        self,
        source,
        store,
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
        home_currency: str = DEFAULT_HOME_CURRENCY,
        sample_size: int = DEFAULT_SAMPLE_SIZE,
    ):
        self.source = source
        self.writer = BatchedWriter(store, batch_size=batch_size)
        self.home_currency = home_currency
        self.sample_size = sample_size

    def ingest(self, document_id: str) -> ImportResult:
        """Import one bank statement document.

        Safe to repeat: rows already stored for the organisation are skipped.

        Raises:
            StatementImportError: any failing step; see ``errors``.
        """
        context = IngestionContext.for_document(document_id)
        context.logger(__name__).info("import_started")

        document = validate_document(self.source.load(document_id))
        context = context.with_org(document.org_id)
        log = context.logger(__name__)

        content = self.source.fetch(document, context=context)
        parsed = parse_statement(content, sample_size=self.sample_size, context=context)

        mapping = map_rows(
            parsed.rows,
            parsed.header_map,
            org_id=document.org_id,
            document_id=document.id,
            home_currency=self.home_currency,
            context=context,
        )
        if not mapping.transactions:
            raise NoValidRowsError(
                "No valid transactions in statement",
                extra={
                    "invalid": mapping.invalid,
                    "parsed": len(parsed.rows),
                    "header_map": parsed.header_map.to_dict(),
                    "invalid_samples": mapping.invalid_samples,
                },
            )

        unique, in_file = dedupe(mapping.transactions)
        if in_file:
            log.info("duplicates_in_file", count=in_file)

        written = self.writer.write([tx.to_record() for tx in unique], context=context)

        valid = len(mapping.transactions)
        result = ImportResult(
            document_id=document.id,
            parsed=len(parsed.rows),
            valid=valid,
            invalid=mapping.invalid,
            upserted=written.upserted,
            duplicates_skipped=valid - written.upserted,
        )
        log.info("import_finished", **result.to_dict())
        return result

    def preview(
        self,
        content: Union[bytes, str],
        *,
        org_id: str,
        document_id: str = "preview",
    ) -> StatementPreview:
        """Parse and normalise ``content`` without touching the store."""
        return preview_statement(
            content,
            org_id=org_id,
            document_id=document_id,
            home_currency=self.home_currency,
            sample_size=self.sample_size,
        )


def ingest_document(document_id: str, ingestor: StatementIngestor) -> Dict[str, Any]:
    """Run an import and always return the structured result dict."""
    try:
        return ingestor.ingest(document_id).to_dict()
    except StatementImportError as e:
        IngestionContext.for_document(document_id).logger(__name__).warning(
            "import_failed", step=e.step, error=e.message, extra=e.extra
        )
        return e.to_dict()
