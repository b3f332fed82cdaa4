"""Public interface for the ``expense_import`` package.

This module exposes the package's API functions and public models/types as the
stable import surface. There is no runtime logic here, only symbol re-exports.
"""

from .api import (
    categorize_transactions,
    classify_with_fallback,
    import_statement,
    import_statement_file,
)
from .categorize import BATCH_SIZE, CategoryBatchClassifier
from .exceptions import (
    ClassificationError,
    ExpenseImportError,
    QuotaExceededError,
    ServiceError,
    UnknownFormatError,
)
from .formats import FORMATS, CsvFormat, FormatDescriptor, get_format
from .ingest import parse_file, parse_stream
from .models import (
    DEFAULT_CATEGORY,
    CategorizedTransaction,
    Category,
    CategoryAssignment,
    ImportResult,
    ParsedTransaction,
    ParseError,
    ParseResult,
)
from .openai_client import ClassificationPort, OpenAIClassificationPort

__all__ = [
    # API
    "categorize_transactions",
    "classify_with_fallback",
    "import_statement",
    "import_statement_file",
    "parse_file",
    "parse_stream",
    "get_format",
    # Classification
    "BATCH_SIZE",
    "CategoryBatchClassifier",
    "ClassificationPort",
    "OpenAIClassificationPort",
    # Models / types
    "Category",
    "CategoryAssignment",
    "CategorizedTransaction",
    "CsvFormat",
    "DEFAULT_CATEGORY",
    "FORMATS",
    "FormatDescriptor",
    "ImportResult",
    "ParseError",
    "ParseResult",
    "ParsedTransaction",
    # Errors
    "ClassificationError",
    "ExpenseImportError",
    "QuotaExceededError",
    "ServiceError",
    "UnknownFormatError",
]
