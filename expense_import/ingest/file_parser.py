"""Stream a statement export once and collect a partial-success result.

Contract
--------
- The byte stream is decoded with the encoding declared by the selected
  :class:`~expense_import.formats.FormatDescriptor` and read in a single pass.
- Every physical line increments the 1-based line counter, including blank,
  header and card-info lines, so reported line numbers match what a user sees
  in an editor.
- Blank, header and card-info lines are skipped silently. Every other line
  yields exactly one valid transaction or one :class:`ParseError`.

Failure mode
------------
Row problems never abort the file. Bytes the encoding cannot decode are
replaced with U+FFFD and the affected row is parsed as usual. I/O failures on
the stream itself (``OSError``) propagate and no partial result is returned.
"""

from __future__ import annotations

import io
from os import PathLike
from pathlib import Path
from typing import BinaryIO

from ..formats import CsvFormat, FormatDescriptor, get_format
from ..logging_setup import get_logger
from ..models import ParsedTransaction, ParseError, ParseResult
from .lines import LineKind, classify_line
from .row_parser import parse_row

_logger = get_logger("expense_import.ingest.file_parser")


def parse_stream(stream: BinaryIO, fmt: FormatDescriptor) -> ParseResult:
    """Parse a statement export from a binary stream.

    Parameters
    ----------
    stream:
        An open binary stream positioned at the start of the export. It is
        not closed by this function.
    fmt:
        Layout of the export.

    Returns
    -------
    ParseResult
        Valid transactions and row errors, each in file order.
    """

    valid: list[ParsedTransaction] = []
    errors: list[ParseError] = []
    skipped = 0
    header_pending = True

    # newline=None accepts both \n and \r\n exports.
    text = io.TextIOWrapper(stream, encoding=fmt.encoding, errors="replace", newline=None)
    try:
        for line_number, raw in enumerate(text, start=1):
            line = raw.strip()
            kind = classify_line(line, header_pending=header_pending, fmt=fmt)
            if kind is LineKind.BLANK:
                continue
            header_pending = False
            if kind is not LineKind.TRANSACTION:
                skipped += 1
                continue

            outcome = parse_row(line, line_number, fmt)
            if isinstance(outcome, ParseError):
                _logger.warning(
                    "parse:row_failed line_number=%d content=%r error=%s",
                    outcome.line_number,
                    outcome.line_content,
                    outcome.message,
                )
                errors.append(outcome)
            else:
                valid.append(outcome)
    finally:
        # Leave the caller's stream open.
        text.detach()

    _logger.info(
        "parse:done format=%s valid=%d errors=%d skipped=%d",
        fmt.key,
        len(valid),
        len(errors),
        skipped,
    )
    return ParseResult(valid_transactions=tuple(valid), errors=tuple(errors))


def parse_file(csv_path: str | PathLike[str], format_key: CsvFormat | str) -> ParseResult:
    """Open ``csv_path`` and parse it with the layout registered for ``format_key``.

    Raises :class:`~expense_import.exceptions.UnknownFormatError` before
    touching the file when the key is not supported.
    """

    fmt = get_format(format_key)
    with Path(csv_path).open("rb") as f:
        return parse_stream(f, fmt)


__all__ = ["parse_file", "parse_stream"]
