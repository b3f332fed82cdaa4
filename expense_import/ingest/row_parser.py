"""Parse one statement row into a :class:`~expense_import.models.ParsedTransaction`.

Store names may contain the delimiter, so column positions after the store
name are not fixed. The parser therefore:

1. locates the amount by scanning numeric-looking columns left to right from
   the format's ``amount_start_column``;
2. derives the end of the store name by subtracting the format's fixed
   ``gap_columns`` from the amount position;
3. re-joins the store name columns with the delimiter.

Row problems are returned as :class:`~expense_import.models.ParseError`
values; :func:`parse_row` does not raise for malformed input.
"""

from __future__ import annotations

import datetime as dt
import re

from ..formats import FormatDescriptor
from ..logging_setup import get_logger
from ..models import ParsedTransaction, ParseError
from .lines import DELIMITER, split_columns

_logger = get_logger("expense_import.ingest.row_parser")

_DATE_RE = re.compile(r"(\d{4})/(\d{1,2})/(\d{1,2})", re.ASCII)
# Anything that is not an ASCII digit or a minus sign (currency marks,
# thousands separators, full-width digits).
_NON_AMOUNT_CHARS_RE = re.compile(r"[^0-9-]")


class _RowError(ValueError):
    """Internal signal carrying a human-readable row failure message."""


def parse_date(text: str) -> dt.date:
    """Parse ``yyyy/M/d`` (month and day with one or two digits).

    Raises ``ValueError`` when the text does not match or is not a real
    calendar date.
    """

    m = _DATE_RE.fullmatch(text)
    if m is None:
        raise ValueError(f"not a yyyy/M/d date: {text!r}")
    year, month, day = (int(g) for g in m.groups())
    return dt.date(year, month, day)


def try_parse_amount(text: str) -> int | None:
    """Return the absolute amount in ``text`` when it is a positive integer.

    Every character other than ASCII digits and ``-`` is discarded first.
    Returns ``None`` when nothing parseable remains or the value is zero.
    """

    cleaned = _NON_AMOUNT_CHARS_RE.sub("", text.strip())
    if not cleaned:
        return None
    try:
        amount = abs(int(cleaned))
    except ValueError:
        return None
    return amount if amount > 0 else None


def _read_date(columns: list[str], fmt: FormatDescriptor) -> dt.date:
    raw = columns[fmt.date_column].strip()
    if not raw:
        raise _RowError("date is empty")
    try:
        date = parse_date(raw)
    except ValueError:
        raise _RowError(f"invalid date format: {raw}") from None
    if date > dt.date.today():
        raise _RowError(f"date is in the future: {raw}")
    return date


def _find_amount(columns: list[str], fmt: FormatDescriptor, line_number: int) -> tuple[int, int]:
    """Return ``(column_index, amount)`` of the first qualifying column."""

    for idx in range(fmt.amount_start_column, len(columns)):
        amount = try_parse_amount(columns[idx])
        if amount is not None:
            return idx, amount
    # Usually means the vendor changed its layout; keep the columns for diagnosis.
    _logger.warning(
        "parse:amount_missing line_number=%d columns=%r",
        line_number,
        columns,
    )
    raise _RowError("no valid amount found")


def _read_description(columns: list[str], fmt: FormatDescriptor, amount_index: int) -> str:
    end_index = amount_index - fmt.gap_columns - 1
    if end_index < fmt.description_column:
        raise _RowError("cannot determine description range")
    description = DELIMITER.join(columns[fmt.description_column : end_index + 1]).strip()
    if not description:
        raise _RowError("store name is empty")
    return description


def parse_row(
    line: str, line_number: int, fmt: FormatDescriptor
) -> ParsedTransaction | ParseError:
    """Parse one candidate transaction line.

    Parameters
    ----------
    line:
        The raw line, already trimmed.
    line_number:
        1-based physical line number (for error reporting).
    fmt:
        Layout of the export the line came from.

    Returns
    -------
    ParsedTransaction | ParseError
        The parsed row, or the first rule it violated.
    """

    columns = split_columns(line)
    try:
        if len(columns) < fmt.min_column_count:
            raise _RowError(
                f"insufficient columns (at least {fmt.min_column_count} required, "
                f"got {len(columns)})"
            )
        date = _read_date(columns, fmt)
        amount_index, amount = _find_amount(columns, fmt, line_number)
        description = _read_description(columns, fmt, amount_index)
    except _RowError as e:
        return ParseError(line_number=line_number, line_content=line, message=str(e))

    return ParsedTransaction(description=description, date=date, amount=amount)


__all__ = ["parse_date", "parse_row", "try_parse_amount"]
