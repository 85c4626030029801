"""Import a bank statement document, or dry-run a local statement file.

    python -m tools.import_statement import <document_id>
    python -m tools.import_statement preview wyciag.csv --org-id <uuid>

Prints the structured result as JSON and exits non-zero on failure.
"""

import argparse
import json
import os
import sys
from typing import List, Optional

from dotenv import load_dotenv

from apps.api.core.logging import setup_logging
from apps.api.domains.ingestion.schemas import PreviewResponse
from apps.api.domains.ingestion.service import build_ingestor
from packages.statement_ingestion.errors import StatementImportError
from packages.statement_ingestion.fields import DEFAULT_HOME_CURRENCY
from packages.statement_ingestion.pipeline import ingest_document, preview_statement


def _print(payload: dict) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2, default=str))


def run_import(document_id: str, home_currency: Optional[str] = None) -> int:
    try:
        ingestor = build_ingestor(home_currency=home_currency)
    except StatementImportError as e:
        _print(e.to_dict())
        return 1

    result = ingest_document(document_id, ingestor)
    _print(result)
    return 0 if result["ok"] else 1


def run_preview(path: str, org_id: str, home_currency: Optional[str] = None) -> int:
    if not os.path.exists(path):
        _print({"ok": False, "step": "fetch_failed", "error": f"File not found: {path}"})
        return 1

    with open(path, "rb") as f:
        content = f.read()

    try:
        preview = preview_statement(
            content,
            org_id=org_id,
            document_id=os.path.basename(path),
            home_currency=(home_currency or DEFAULT_HOME_CURRENCY).upper(),
        )
    except StatementImportError as e:
        _print(e.to_dict())
        return 1

    _print({"ok": True, **PreviewResponse.from_preview(preview).model_dump()})
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Bank statement import")
    parser.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING, ERROR")
    commands = parser.add_subparsers(dest="command", required=True)

    import_cmd = commands.add_parser("import", help="Import a stored documents row")
    import_cmd.add_argument("document_id", help="documents.id of a BANK_CONFIRMATION upload")
    import_cmd.add_argument("--home-currency", default=None)

    preview_cmd = commands.add_parser("preview", help="Dry-run a local CSV file")
    preview_cmd.add_argument("path", help="Path to the statement file")
    preview_cmd.add_argument("--org-id", required=True, help="Organisation UUID")
    preview_cmd.add_argument("--home-currency", default=None)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)

    # Logs go to stderr so stdout stays valid JSON.
    setup_logging(
        log_level=args.log_level or os.getenv("LOG_LEVEL", "WARNING"),
        json_output=True,
        stream=sys.stderr,
    )

    if args.command == "import":
        return run_import(args.document_id, args.home_currency)
    return run_preview(args.path, args.org_id, args.home_currency)


if __name__ == "__main__":
    sys.exit(main())
