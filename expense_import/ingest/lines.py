"""Per-line classification for statement CSV exports.

Statement exports mix transaction rows with a header line and vendor
preamble ("card info") lines such as::

    Taro Yamada,4980-00**-****-****,Gold VISA

Only transaction candidates are handed to the row parser; everything else is
skipped without being counted as an error.
"""

from __future__ import annotations

import re
from enum import StrEnum

from ..formats import FormatDescriptor

DELIMITER = ","

_STRICT_DATE_RE = re.compile(r"\d{4}/\d{1,2}/\d{1,2}", re.ASCII)
_MASKED_CARD_RE = re.compile(r"\d{4}-\d{2}\*{2}-\*{4}-\*{4}", re.ASCII)


class LineKind(StrEnum):
    BLANK = "blank"
    HEADER = "header"
    CARD_INFO = "card_info"
    TRANSACTION = "transaction"


def split_columns(line: str) -> list[str]:
    """Split on the delimiter, keeping empty (including trailing) fields."""

    return line.split(DELIMITER)


def is_blank(line: str) -> bool:
    return not line.strip()


def is_card_info_line(line: str) -> bool:
    """Return True for the masked-card preamble lines some exports carry.

    The first column must be non-empty and not a ``yyyy/M/d`` date, and the
    second column must contain a masked card number (``dddd-dd**-****-****``),
    optionally surrounded by other text.
    """

    columns = split_columns(line)
    if len(columns) < 2:
        return False
    first = columns[0].strip()
    if not first or _STRICT_DATE_RE.fullmatch(first):
        return False
    return _MASKED_CARD_RE.search(columns[1].strip()) is not None


def classify_line(line: str, *, header_pending: bool, fmt: FormatDescriptor) -> LineKind:
    """Classify one physical line.

    ``header_pending`` is True until the first non-blank line has been seen.
    When the format declares a header, that line is consumed as the header
    regardless of its content; blank lines before it do not count.
    """

    if is_blank(line):
        return LineKind.BLANK
    if header_pending and fmt.skip_header_line:
        return LineKind.HEADER
    if is_card_info_line(line):
        return LineKind.CARD_INFO
    return LineKind.TRANSACTION


__all__ = [
    "DELIMITER",
    "LineKind",
    "classify_line",
    "is_blank",
    "is_card_info_line",
    "split_columns",
]
