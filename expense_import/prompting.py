"""Prompt construction for batch category classification.

A chunk of descriptions is presented to the model as a 1-based numbered list
together with the closed set of category labels. The model must answer with a
single JSON object mapping each number (as a string key) to one label::

    {"1": "Food", "2": "Transport", "3": "Other"}
"""

from __future__ import annotations

import json
from collections.abc import Sequence

from .models import Category


def build_system_instructions(labels: Sequence[str] | None = None) -> str:
    """Return system instructions naming the allowed labels.

    Keeps the model on task: exactly one label per entry, never invent labels,
    JSON only.
    """

    allowed = list(labels) if labels is not None else Category.labels()
    return (
        "You categorize household expenses from credit card statements. "
        "For each numbered store name or expense description, choose exactly one "
        "category from this list: "
        + ", ".join(allowed)
        + ". Never invent categories; use \"Other\" when nothing fits. "
        "Respond with a JSON object only, whose keys are the entry numbers as "
        "strings and whose values are category names."
    )


def build_user_content(descriptions: Sequence[str]) -> str:
    """Build the numbered list for one chunk.

    Numbering starts at 1 and follows input order. Descriptions are emitted
    verbatim; the expected answer keys are listed explicitly so incomplete
    responses are easy to detect.
    """

    lines = [f"{i}. {desc}" for i, desc in enumerate(descriptions, start=1)]
    keys = [str(i) for i in range(1, len(descriptions) + 1)]
    return (
        "Categorize the following expenses.\n\n"
        + "\n".join(lines)
        + "\n\nReturn a JSON object with exactly these keys: "
        + json.dumps(keys)
        + "\nExample: {\"1\": \"Food\", \"2\": \"Transport\"}"
    )


def build_single_system_instructions(labels: Sequence[str] | None = None) -> str:
    """System instructions for classifying one description with a plain-text answer."""

    allowed = list(labels) if labels is not None else Category.labels()
    return (
        "You categorize household expenses. Choose exactly one category for the "
        "given expense description from this list: "
        + ", ".join(allowed)
        + ". Reply with the category name only, without any other text."
    )


def build_single_user_content(description: str) -> str:
    return f"Expense description: {description}"


__all__ = [
    "build_single_system_instructions",
    "build_single_user_content",
    "build_system_instructions",
    "build_user_content",
]
