"""CSV layout descriptors for the supported card statement exports.

Each supported export is described by one immutable :class:`FormatDescriptor`
held in :data:`FORMATS`; a single shared row parser
(:func:`expense_import.ingest.row_parser.parse_row`) interprets every layout.

Column layouts
--------------
``mitsuisumitomo_old`` (statements up to 2025/12)::

    date, store name, amount, payment type, installment no, paid amount, ...

``mitsuisumitomo_new`` (statements from 2026/1)::

    date, store name, card, payment type, installments, payment month, amount, ...

In the new layout four fixed columns sit between the store name and the
amount. Store names may themselves contain commas, so the amount is located
first and the store name range is derived backwards from it.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from .exceptions import UnknownFormatError


class CsvFormat(StrEnum):
    MITSUISUMITOMO_OLD = "mitsuisumitomo_old"
    MITSUISUMITOMO_NEW = "mitsuisumitomo_new"


@dataclass(frozen=True, slots=True)
class FormatDescriptor:
    """Static column layout and encoding of one vendor export.

    Attributes
    ----------
    key:
        Lookup key for this layout.
    label:
        Human-readable name (used by the CLI ``formats`` command).
    date_column:
        Zero-based index of the ``yyyy/M/d`` date column.
    description_column:
        Index where the free-text store name begins.
    amount_start_column:
        First column examined when scanning for the amount.
    min_column_count:
        Rows with fewer columns are rejected outright.
    gap_columns:
        Number of fixed columns between the end of the store name and the
        amount column.
    skip_header_line:
        Whether the first physical line is a header to be skipped.
    encoding:
        Text encoding of the exported file.
    """

    key: CsvFormat
    label: str
    date_column: int
    description_column: int
    amount_start_column: int
    min_column_count: int
    gap_columns: int
    skip_header_line: bool
    encoding: str

    def __post_init__(self) -> None:
        if self.date_column < 0:
            raise ValueError("FormatDescriptor.date_column must be >= 0")
        if self.description_column < self.date_column:
            raise ValueError("FormatDescriptor.description_column must be >= date_column")
        if self.amount_start_column <= self.description_column:
            raise ValueError(
                "FormatDescriptor.amount_start_column must be greater than description_column"
            )
        if self.min_column_count <= self.amount_start_column:
            raise ValueError("FormatDescriptor.min_column_count must cover amount_start_column")
        if self.gap_columns < 0:
            raise ValueError("FormatDescriptor.gap_columns must be >= 0")


# Shift_JIS exports from Windows tooling; cp932 is the superset that also
# covers vendor extensions such as circled digits.
_SJIS = "cp932"

FORMATS: dict[CsvFormat, FormatDescriptor] = {
    CsvFormat.MITSUISUMITOMO_OLD: FormatDescriptor(
        key=CsvFormat.MITSUISUMITOMO_OLD,
        label="Mitsui Sumitomo Card (through 2025/12)",
        date_column=0,
        description_column=1,
        amount_start_column=2,
        min_column_count=3,
        gap_columns=0,
        skip_header_line=True,
        encoding=_SJIS,
    ),
    CsvFormat.MITSUISUMITOMO_NEW: FormatDescriptor(
        key=CsvFormat.MITSUISUMITOMO_NEW,
        label="Mitsui Sumitomo Card (from 2026/1)",
        date_column=0,
        description_column=1,
        amount_start_column=6,
        min_column_count=7,
        # card, payment type, installments, payment month
        gap_columns=4,
        skip_header_line=True,
        encoding=_SJIS,
    ),
}


def get_format(key: CsvFormat | str) -> FormatDescriptor:
    """Return the descriptor registered for ``key``.

    Raises :class:`UnknownFormatError` when the key is not supported; this is
    a configuration error, not a recoverable runtime condition.
    """

    try:
        return FORMATS[CsvFormat(key)]
    except (ValueError, KeyError):
        raise UnknownFormatError(
            f"unknown CSV format: {key!r}",
            details={"supported": [f.value for f in CsvFormat]},
        ) from None


__all__ = ["FORMATS", "CsvFormat", "FormatDescriptor", "get_format"]
