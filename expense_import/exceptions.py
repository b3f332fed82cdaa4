"""Exception hierarchy for ``expense_import``.

Row-level CSV problems are never raised; they are returned as
:class:`~expense_import.models.ParseError` values. The exceptions below cover
configuration mistakes and failures of the external classification service.
"""

from __future__ import annotations

from typing import Any


class ExpenseImportError(Exception):
    """Base exception for all ``expense_import`` errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class UnknownFormatError(ExpenseImportError):
    """Raised when a CSV format key has no registered descriptor."""


class ClassificationError(ExpenseImportError):
    """Raised when category classification cannot produce a usable result."""


class QuotaExceededError(ClassificationError):
    """The classification service rejected the request for quota/rate limits."""

    def __init__(
        self,
        message: str = "classification service quota exceeded; retry later",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)


class ServiceError(ClassificationError):
    """Transport failure, empty answer, or malformed response from the service."""
