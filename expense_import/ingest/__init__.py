"""Statement CSV ingestion: line classification, row parsing and file parsing."""

from .file_parser import parse_file, parse_stream
from .lines import LineKind, classify_line, is_card_info_line, split_columns
from .row_parser import parse_date, parse_row, try_parse_amount

__all__ = [
    "LineKind",
    "classify_line",
    "is_card_info_line",
    "parse_date",
    "parse_file",
    "parse_row",
    "parse_stream",
    "split_columns",
    "try_parse_amount",
]
