"""Data models for ``expense_import``.

Records produced by the CSV engine and the categorization flow. Everything
here is immutable and transient: values are built within one parse/classify
call and handed to the caller.
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, field_validator

# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------


class Category(StrEnum):
    """Closed set of spending categories.

    Values are the labels shown to the classification model and emitted in
    JSON output. ``OTHER`` doubles as the fallback for unknown labels and for
    classification outages.
    """

    FOOD = "Food"
    TRANSPORT = "Transport"
    HOUSING = "Housing"
    UTILITIES = "Utilities"
    COMMUNICATION = "Communication"
    ENTERTAINMENT = "Entertainment"
    MEDICAL = "Medical"
    CLOTHING = "Clothing"
    DAILY_GOODS = "Daily Goods"
    INVESTMENT = "Investment"
    EDUCATION = "Education"
    OTHER = "Other"

    @classmethod
    def labels(cls) -> list[str]:
        return [c.value for c in cls]

    @classmethod
    def from_label(cls, label: str | None) -> Category:
        """Resolve a label (surrounding whitespace ignored) to a member.

        Raises ``ValueError`` for blank or unknown labels.
        """

        if label is None or not label.strip():
            raise ValueError("category label is required")
        try:
            return cls(label.strip())
        except ValueError:
            raise ValueError(
                f"invalid category {label!r}; valid categories: {', '.join(cls.labels())}"
            ) from None

    @classmethod
    def from_label_or_default(cls, label: str | None) -> Category:
        try:
            return cls.from_label(label)
        except ValueError:
            return DEFAULT_CATEGORY


DEFAULT_CATEGORY: Category = Category.OTHER

# Description -> category, built fresh for every classification call.
type CategoryAssignment = dict[str, Category]


# ---------------------------------------------------------------------------
# CSV parsing results
# ---------------------------------------------------------------------------


class ParsedTransaction(BaseModel):
    """One successfully parsed statement row.

    The category is intentionally absent: CSV exports do not carry one and it
    is assigned later by the categorization flow.
    """

    model_config = ConfigDict(frozen=True, strict=True)

    description: str
    date: dt.date
    amount: int

    @field_validator("description")
    @classmethod
    def _description_trimmed_non_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("description must be non-empty")
        if v != v.strip():
            raise ValueError("description must be trimmed")
        return v

    @field_validator("date")
    @classmethod
    def _date_not_in_future(cls, v: dt.date) -> dt.date:
        if v > dt.date.today():
            raise ValueError("date must not be in the future")
        return v

    @field_validator("amount")
    @classmethod
    def _amount_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("amount must be greater than zero")
        return v


@dataclass(frozen=True, slots=True)
class ParseError:
    """A row that could not be turned into a :class:`ParsedTransaction`.

    ``line_number`` is 1-based and counts every physical line of the file,
    including the header and blank lines.
    """

    line_number: int
    line_content: str
    message: str


@dataclass(frozen=True, slots=True)
class ParseResult:
    """Partial-success outcome of parsing one file."""

    valid_transactions: tuple[ParsedTransaction, ...] = ()
    errors: tuple[ParseError, ...] = ()

    @property
    def success_count(self) -> int:
        return len(self.valid_transactions)

    @property
    def error_count(self) -> int:
        return len(self.errors)


# ---------------------------------------------------------------------------
# Categorized output
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class CategorizedTransaction:
    """A parsed transaction paired with its assigned category."""

    transaction: ParsedTransaction
    category: Category


@dataclass(frozen=True, slots=True)
class ImportResult:
    """Outcome of parsing and categorizing one statement file.

    ``classification_fallback`` is True when the classification service
    failed and every transaction was assigned :data:`DEFAULT_CATEGORY`.
    """

    transactions: tuple[CategorizedTransaction, ...]
    errors: tuple[ParseError, ...]
    classification_fallback: bool = False

    @property
    def success_count(self) -> int:
        return len(self.transactions)

    @property
    def error_count(self) -> int:
        return len(self.errors)
