"""Public API for the ``expense_import`` package.

The ingestion use case lives here: parse a statement export, classify the
valid rows' descriptions, and merge the categories back onto the rows.
Persistence and transport are left to the host application, which receives
an :class:`~expense_import.models.ImportResult`.

Classification failures never fail an import. When the classification
service is unavailable or misbehaves, every row is tagged ``Other`` and the
result carries ``classification_fallback=True``.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from os import PathLike
from typing import BinaryIO

from .categorization import unique_descriptions
from .categorize import CategoryBatchClassifier
from .exceptions import ClassificationError
from .formats import CsvFormat, get_format
from .ingest.file_parser import parse_file, parse_stream
from .logging_setup import get_logger
from .models import (
    DEFAULT_CATEGORY,
    CategorizedTransaction,
    CategoryAssignment,
    ImportResult,
    ParsedTransaction,
    ParseResult,
)

_logger = get_logger("expense_import.api")


def classify_with_fallback(
    descriptions: Iterable[str | None],
    classifier: CategoryBatchClassifier,
) -> tuple[CategoryAssignment, bool]:
    """Classify ``descriptions``, assigning ``Other`` to all of them on failure.

    Returns ``(categories, fallback_used)``. When the classifier raises
    :class:`~expense_import.exceptions.ClassificationError` (from any chunk),
    every non-blank description in the request, not only the failing chunk's,
    maps to :data:`~expense_import.models.DEFAULT_CATEGORY`.
    """

    materialized = list(descriptions)
    try:
        return classifier.classify(materialized), False
    except ClassificationError as e:
        targets = unique_descriptions(materialized)
        _logger.error(
            "import:classification_fallback descriptions=%d error=%s message=%s",
            len(targets),
            e.__class__.__name__,
            e.message,
        )
        return dict.fromkeys(targets, DEFAULT_CATEGORY), True


def categorize_transactions(
    transactions: Sequence[ParsedTransaction],
    classifier: CategoryBatchClassifier,
) -> tuple[list[CategorizedTransaction], bool]:
    """Attach a category to every transaction.

    Returns ``(categorized, fallback_used)``. Output order matches input
    order. A description missing from the classifier's answer gets
    ``Other``.
    """

    if not transactions:
        return [], False

    categories, fallback = classify_with_fallback(
        [t.description for t in transactions], classifier
    )

    categorized = [
        CategorizedTransaction(
            transaction=t,
            category=categories.get(t.description, DEFAULT_CATEGORY),
        )
        for t in transactions
    ]
    return categorized, fallback


def _finish(parse_result: ParseResult, classifier: CategoryBatchClassifier) -> ImportResult:
    if parse_result.errors:
        _logger.warning("import:parse_errors count=%d", parse_result.error_count)
    if not parse_result.valid_transactions:
        _logger.warning(
            "import:no_valid_rows errors=%d",
            parse_result.error_count,
        )
    categorized, fallback = categorize_transactions(
        parse_result.valid_transactions, classifier
    )
    return ImportResult(
        transactions=tuple(categorized),
        errors=parse_result.errors,
        classification_fallback=fallback,
    )


def import_statement(
    stream: BinaryIO,
    format_key: CsvFormat | str,
    *,
    classifier: CategoryBatchClassifier,
) -> ImportResult:
    """Parse a statement export from ``stream`` and categorize its rows.

    Raises :class:`~expense_import.exceptions.UnknownFormatError` for an
    unsupported ``format_key`` and propagates stream I/O errors. Row errors
    and classification failures do not raise.
    """

    fmt = get_format(format_key)
    return _finish(parse_stream(stream, fmt), classifier)


def import_statement_file(
    csv_path: str | PathLike[str],
    format_key: CsvFormat | str,
    *,
    classifier: CategoryBatchClassifier,
) -> ImportResult:
    """Path-based convenience wrapper around :func:`import_statement`."""

    return _finish(parse_file(csv_path, format_key), classifier)


__all__ = [
    "categorize_transactions",
    "classify_with_fallback",
    "import_statement",
    "import_statement_file",
]
