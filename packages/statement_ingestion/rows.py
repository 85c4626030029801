"""Stage 4: split data lines into header-keyed rows.

The strict path reads the data block with pandas (quotes, embedded
newlines). A file with broken quoting is read line by line instead: each
line is still parsed quote-aware, and only the lines the csv module rejects
are split on the raw delimiter. Every row then goes through ``fit_row``,
which repairs column-count mismatches instead of dropping the row.
"""

import csv
import io
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple

import pandas as pd

from .context import IngestionContext
from .dialect import split_fields
from .models import Dialect, RawRow

STRICT = "strict"
TOLERANT = "tolerant"


@dataclass
class ParsedRows:
    rows: List[RawRow] = field(default_factory=list)
    strategy: str = STRICT
    repaired: int = 0


def fit_row(
    cells: Sequence[str],
    header_count: int,
    description_index: int,
    delimiter: str,
    header_width: Optional[int] = None,
) -> Tuple[List[str], bool]:
    """Force ``cells`` to exactly ``header_count`` columns.

    ``header_width`` is the raw cell count of the header line, including the
    blank cells some banks leave after a trailing delimiter. Rows may carry
    the same number of blank cells at the end; only those are dropped.

    Surplus columns come from an unquoted delimiter inside the description:
    the leading and trailing fields keep their positions and everything in
    between is joined back into the description. Short rows are padded.

    Returns the fitted cells and whether the row needed fixing.
    """
    cells = list(cells)
    droppable = max((header_width or header_count) - header_count, 0)
    while droppable and len(cells) > header_count and not cells[-1].strip():
        cells.pop()
        droppable -= 1

    repaired = len(cells) != header_count
    if len(cells) > header_count:
        trailing = header_count - description_index - 1
        end = len(cells) - trailing
        cells = cells[:description_index] + [delimiter.join(cells[description_index:end])] + cells[end:]
    elif len(cells) < header_count:
        cells.extend([""] * (header_count - len(cells)))

    return [cell.strip() for cell in cells], repaired


def _is_blank(cells: Sequence[str]) -> bool:
    return all(not cell.strip() for cell in cells)


def _widest_record(data: str, delimiter: str) -> int:
    """Cell count of the widest record; raises ``csv.Error`` on broken quoting."""
    reader = csv.reader(io.StringIO(data), delimiter=delimiter, strict=True)
    return max((len(record) for record in reader), default=0)


def _read_strict(data: str, delimiter: str, width: int) -> List[List[str]]:
    # The frame is as wide as the widest record, so pandas never treats a
    # long row as a bad line or an implicit index.
    frame = pd.read_csv(
        io.StringIO(data),
        sep=delimiter,
        header=None,
        names=list(range(width)),
        dtype=str,
        keep_default_na=False,
        skip_blank_lines=True,
        engine="python",
    )

    rows = []
    for values in frame.itertuples(index=False, name=None):
        # pandas pads short rows with NaN; cut them back to their real length
        cells = [value for value in values if isinstance(value, str)]
        if cells and not _is_blank(cells):
            rows.append(cells)
    return rows


def _read_tolerant(data_lines: Sequence[str], delimiter: str) -> List[List[str]]:
    rows = []
    for line in data_lines:
        cells = split_fields(line, delimiter)
        if cells and not _is_blank(cells):
            rows.append(cells)
    return rows


def _to_records(
    raw_rows: Iterable[Sequence[str]],
    headers: Sequence[str],
    description_index: int,
    delimiter: str,
    header_width: int,
) -> Tuple[List[RawRow], int]:
    records, repaired = [], 0
    for cells in raw_rows:
        fitted, was_repaired = fit_row(cells, len(headers), description_index, delimiter, header_width)
        repaired += was_repaired
        records.append(dict(zip(headers, fitted)))
    return records, repaired


def parse_rows(
    lines: Sequence[str],
    dialect: Dialect,
    headers: Sequence[str],
    description_index: int,
    context: Optional[IngestionContext] = None,
    header_width: Optional[int] = None,
) -> ParsedRows:
    """Parse every line after the header into ``RawRow`` dicts.

    ``header_width`` is the raw cell count of the header line; it defaults
    to the number of headers.

    An empty result is returned as-is; the caller decides whether that is
    fatal.
    """
    context = context or IngestionContext()
    log = context.logger(__name__)
    data_lines = lines[dialect.header_line_index + 1:]
    delimiter = dialect.delimiter
    header_width = max(header_width or 0, len(headers))

    if not any(line.strip() for line in data_lines):
        log.info("rows_parsed", rows=0, strategy=STRICT, repaired=0, first_row=None)
        return ParsedRows()

    data = "\n".join(data_lines)
    try:
        width = max(_widest_record(data, delimiter), header_width)
        raw_rows = _read_strict(data, delimiter, width)
        strategy = STRICT
    except (csv.Error, pd.errors.ParserError) as e:
        log.warning("strict_parse_failed", error=str(e), delimiter=delimiter)
        raw_rows = _read_tolerant(data_lines, delimiter)
        strategy = TOLERANT

    records, repaired = _to_records(raw_rows, headers, description_index, delimiter, header_width)
    log.info(
        "rows_parsed",
        rows=len(records),
        strategy=strategy,
        repaired=repaired,
        first_row=records[0] if records else None,
    )
    return ParsedRows(rows=records, strategy=strategy, repaired=repaired)
