"""Stage 1: turn raw statement bytes into a clean list of text lines."""

from typing import List, Union

# Polish banks still export in Windows-1250; latin-1 never fails and is last.
ENCODINGS = ("utf-8-sig", "cp1250", "latin-1")

BOM = "\ufeff"


def decode_statement(content: Union[bytes, str]) -> str:
    """Decode statement bytes, trying the known bank encodings in order."""
    if isinstance(content, str):
        return content

    for encoding in ENCODINGS:
        try:
            return content.decode(encoding)
        except UnicodeDecodeError:
            continue

    # unreachable while latin-1 is in ENCODINGS
    raise ValueError("Could not decode statement with any known encoding")


def normalise_lines(content: Union[bytes, str]) -> List[str]:
    """Strip the byte-order mark, unify line endings and split.

    Empty input gives an empty list.
    """
    text = decode_statement(content)
    if text.startswith(BOM):
        text = text[len(BOM):]
    if not text:
        return []

    text = text.replace("\r\n", "\n").replace("\r", "\n")
    return text.split("\n")
