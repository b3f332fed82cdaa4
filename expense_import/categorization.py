"""Input validation and response parsing for batch categorization.

The classification service answers each chunk with a JSON object keyed by the
1-based entry numbers sent in the prompt. Validation is strict about shape
(every expected key present, non-null, a string) and lenient about content
(a label outside :class:`~expense_import.models.Category` resolves to
``Other`` for that entry only).
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

# Pydantic handles the per-entry type checks instead of manual isinstance chains.
from pydantic import BaseModel, ConfigDict, ValidationError

from .exceptions import ServiceError
from .models import Category, CategoryAssignment

# ---------------------------------------------------------------------------
# Input preparation (pre-request)
# ---------------------------------------------------------------------------


def unique_descriptions(descriptions: Iterable[str | None]) -> list[str]:
    """Drop ``None``/blank entries and exact duplicates, keeping first-seen order.

    Matching is case-sensitive and uses the description as given (no
    trimming), so the returned strings are valid keys into the caller's data.
    """

    return list(dict.fromkeys(d for d in descriptions if d is not None and d.strip()))


def chunked(items: Sequence[str], size: int) -> list[list[str]]:
    """Split ``items`` into consecutive chunks of at most ``size`` elements."""

    if not isinstance(size, int) or size <= 0:
        raise ValueError("batch size must be a positive integer")
    return [list(items[base : base + size]) for base in range(0, len(items), size)]


# ---------------------------------------------------------------------------
# Response parsing and alignment
# ---------------------------------------------------------------------------


class _LabelEntry(BaseModel):
    """Typed view of one ``"<n>": "<label>"`` answer entry."""

    model_config = ConfigDict(strict=True, str_strip_whitespace=True)

    label: str


def decode_json_object(content: str) -> Mapping[str, Any]:
    """Decode the model output and require a JSON object at the top level."""

    try:
        decoded = json.loads(content)
    except (json.JSONDecodeError, TypeError) as e:
        raise ServiceError(
            "classification response was not valid JSON",
            details={"content": content},
        ) from e
    if not isinstance(decoded, Mapping):
        raise ServiceError(
            "classification response must be a JSON object",
            details={"content": content},
        )
    return decoded


def parse_and_align_labels(
    body: Mapping[str, Any],
    descriptions: Sequence[str],
) -> CategoryAssignment:
    """Map numbered answers back onto ``descriptions``.

    Expectations:
    - ``body`` holds the keys ``"1"`` .. ``"N"`` where ``N = len(descriptions)``;
      extra keys are ignored.
    - Every expected value is a non-null string.

    A missing key, ``null`` or non-string value raises :class:`ServiceError`.
    Unknown labels do not: they resolve to ``Category.OTHER`` for that entry.
    """

    out: CategoryAssignment = {}
    for pos, description in enumerate(descriptions, start=1):
        key = str(pos)
        if key not in body:
            raise ServiceError(
                f"classification response is missing entry {key}",
                details={"expected": len(descriptions), "keys": sorted(body)},
            )
        try:
            entry = _LabelEntry.model_validate({"label": body[key]})
        except ValidationError as e:
            raise ServiceError(
                f"classification response entry {key} must be a string, got {body[key]!r}",
                details={"key": key},
            ) from e
        out[description] = Category.from_label_or_default(entry.label)
    return out


__all__ = ["chunked", "decode_json_object", "parse_and_align_labels", "unique_descriptions"]
