"""Stage 2: infer the field delimiter and the header line.

Banks disagree on almost everything: some use ``;`` because the decimal mark
is a comma, some use ``,``, and many prepend account metadata or a title
before the real header row.
"""

import csv
import re
from typing import Dict, List, Optional, Sequence, Tuple

from .context import IngestionContext, preview
from .models import Dialect

# Order matters: ties go to the first candidate.
DELIMITER_CANDIDATES = (";", ",")
DEFAULT_SAMPLE_SIZE = 60

_DIGIT = re.compile(r"\d")


def unquote(cell: str) -> str:
    """Drop enclosing double quotes and unescape doubled ones."""
    cell = cell.strip()
    if len(cell) >= 2 and cell[0] == cell[-1] == '"':
        cell = cell[1:-1]
    return cell.replace('""', '"')


def split_fields(line: str, delimiter: str) -> List[str]:
    """Split a single line, honouring double-quoted fields.

    A line the csv module rejects (stray quotes inside a quoted field) is
    split on the raw delimiter and each cell is unquoted.
    """
    try:
        return next(csv.reader([line], delimiter=delimiter, strict=True), [])
    except csv.Error:
        return [unquote(cell) for cell in line.split(delimiter)]


def _is_label(cell: str) -> bool:
    cell = cell.strip()
    return bool(cell) and not _DIGIT.search(cell)


def sample_lines(lines: Sequence[str], sample_size: int) -> List[Tuple[int, str]]:
    """First ``sample_size`` non-blank lines with their original indices."""
    sample = []
    for index, line in enumerate(lines):
        if not line.strip():
            continue
        sample.append((index, line))
        if len(sample) >= sample_size:
            break
    return sample


def choose_delimiter(sample: Sequence[Tuple[int, str]]) -> Tuple[str, Dict[str, int]]:
    max_fields = {
        delimiter: max((len(split_fields(line, delimiter)) for _, line in sample), default=0)
        for delimiter in DELIMITER_CANDIDATES
    }
    best = DELIMITER_CANDIDATES[0]
    for delimiter in DELIMITER_CANDIDATES[1:]:
        if max_fields[delimiter] > max_fields[best]:
            best = delimiter
    return best, max_fields


def find_header_line(sample: Sequence[Tuple[int, str]], delimiter: str) -> int:
    """Index of the sample line with the most label-like fields.

    Data rows carry dates and amounts, so counting only non-empty cells
    without digits keeps a row with unquoted delimiters in its description
    from outranking the real header. Ties go to the earliest line.
    """
    best_index, best_count = None, -1
    for index, line in sample:
        count = sum(1 for cell in split_fields(line, delimiter) if _is_label(cell))
        if count > best_count:
            best_index, best_count = index, count
    return best_index if best_index is not None else 0


def detect_dialect(
    lines: Sequence[str],
    sample_size: int = DEFAULT_SAMPLE_SIZE,
    context: Optional[IngestionContext] = None,
) -> Dialect:
    """Infer ``Dialect`` from the first ``sample_size`` non-blank lines.

    Never fails: a degenerate file still gets a deterministic answer and the
    later stages report what went wrong.
    """
    context = context or IngestionContext()
    log = context.logger(__name__)
    sample = sample_lines(lines, sample_size)
    delimiter, max_fields = choose_delimiter(sample)
    header_index = find_header_line(sample, delimiter)
    dialect = Dialect(delimiter=delimiter, header_line_index=header_index)

    log.info(
        "dialect_detected",
        delimiter=delimiter,
        header_line_index=header_index,
        max_fields=max_fields,
        sampled_lines=len(sample),
        header_preview=preview(lines[header_index]) if lines else "",
    )
    return dialect
