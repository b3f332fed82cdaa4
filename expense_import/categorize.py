"""Batch category classification over an unreliable external service.

Public API:
    - :class:`CategoryBatchClassifier`
    - :data:`BATCH_SIZE`

Flow of :meth:`CategoryBatchClassifier.classify`:

1. Drop blank descriptions and exact duplicates.
2. Split the rest into consecutive chunks of at most ``batch_size``.
3. A single chunk is classified on the calling thread. Several chunks are
   fanned out to a bounded thread pool (:func:`expense_import.pmap.p_map`)
   and joined before merging.
4. Any chunk failure fails the whole call. Chunks that are already running
   or queued are NOT cancelled: every chunk runs to completion or failure
   even after another chunk has failed.

Callers that must never block on classification use
:func:`expense_import.api.classify_with_fallback`, which assigns ``Other``
to every description when classification fails.

No side effects occur at import time (no client creation, no environment
reads).
"""

from __future__ import annotations

import time
from collections.abc import Iterable, Sequence

from . import prompting
from .categorization import (
    chunked,
    decode_json_object,
    parse_and_align_labels,
    unique_descriptions,
)
from .exceptions import ClassificationError, QuotaExceededError
from .logging_setup import get_logger
from .models import Category, CategoryAssignment
from .openai_client import ClassificationPort
from .pmap import p_map

# ---- Tunables ----------------------------------------------------------------

BATCH_SIZE: int = 10
_CONCURRENCY_DEFAULT: int = 4

_logger = get_logger("expense_import.categorize")


def _first_failure(group: BaseExceptionGroup) -> BaseException:
    """Pick the error the batch call reports: quota errors win, else input order."""

    for exc in group.exceptions:
        if isinstance(exc, QuotaExceededError):
            return exc
    return group.exceptions[0]


class CategoryBatchClassifier:
    """Map free-text descriptions to :class:`~expense_import.models.Category`.

    Parameters
    ----------
    port:
        The classification service adapter.
    batch_size:
        Maximum descriptions per request (default :data:`BATCH_SIZE`).
    concurrency:
        Worker threads used when there is more than one chunk.
    """

    def __init__(
        self,
        port: ClassificationPort,
        *,
        batch_size: int = BATCH_SIZE,
        concurrency: int = _CONCURRENCY_DEFAULT,
    ) -> None:
        if not isinstance(batch_size, int) or batch_size <= 0:
            raise ValueError("batch_size must be a positive integer")
        if not isinstance(concurrency, int) or concurrency <= 0:
            raise ValueError("concurrency must be a positive integer")
        self._port = port
        self.batch_size = batch_size
        self.concurrency = concurrency
        self._system_instructions = prompting.build_system_instructions()

    # ---- Public API ----------------------------------------------------------

    def classify(self, descriptions: Iterable[str | None]) -> CategoryAssignment:
        """Classify ``descriptions`` and return a description -> category mapping.

        Raises
        ------
        ClassificationError
            ``QuotaExceededError`` or ``ServiceError`` from any chunk. There
            is no partial result: one failed chunk fails the whole call.
        """

        unique = unique_descriptions(descriptions)
        if not unique:
            return {}

        chunks = chunked(unique, self.batch_size)
        _logger.info(
            "categorize:start descriptions=%d chunks=%d batch_size=%d",
            len(unique),
            len(chunks),
            self.batch_size,
        )

        if len(chunks) == 1:
            return self._classify_chunk((0, chunks[0]))

        try:
            chunk_maps = p_map(
                list(enumerate(chunks)),
                self._classify_chunk,
                concurrency=min(self.concurrency, len(chunks)),
                thread_name_prefix="categorize",
            )
        except ExceptionGroup as eg:
            _logger.error(
                "categorize:failed chunks=%d failed_chunks=%d",
                len(chunks),
                len(eg.exceptions),
            )
            raise _first_failure(eg) from None

        # Tasks return their own maps; merging happens here, after the join.
        merged: CategoryAssignment = {}
        for chunk_map in chunk_maps:
            merged.update(chunk_map)
        return merged

    def predict_category(self, description: str) -> Category:
        """Classify a single description with a plain-text answer.

        Raises ``ValueError`` for a blank description and
        :class:`ClassificationError` when the service fails. An answer outside
        the category set resolves to ``Other``.
        """

        if description is None or not description.strip():
            raise ValueError("description is required")
        answer = self._port.classify(
            prompting.build_single_system_instructions(),
            prompting.build_single_user_content(description),
            False,
        )
        return Category.from_label_or_default(answer)

    # ---- Internals -----------------------------------------------------------

    def _classify_chunk(self, indexed_chunk: tuple[int, Sequence[str]]) -> CategoryAssignment:
        chunk_index, chunk = indexed_chunk
        _logger.info(
            "categorize:chunk_llm chunk_index=%d num_descriptions=%d",
            chunk_index,
            len(chunk),
        )
        t0 = time.perf_counter()
        try:
            content = self._port.classify(
                self._system_instructions,
                prompting.build_user_content(chunk),
                True,
            )
            mapping = parse_and_align_labels(decode_json_object(content), chunk)
        except ClassificationError as e:
            dt_ms = (time.perf_counter() - t0) * 1000.0
            _logger.error(
                "categorize:chunk_failed chunk_index=%d num_descriptions=%d "
                "latency_ms=%.2f error=%s",
                chunk_index,
                len(chunk),
                dt_ms,
                e.__class__.__name__,
            )
            raise

        dt_ms = (time.perf_counter() - t0) * 1000.0
        _logger.info(
            "categorize:chunk_done chunk_index=%d num_descriptions=%d latency_ms=%.2f",
            chunk_index,
            len(chunk),
            dt_ms,
        )
        return mapping


__all__ = ["BATCH_SIZE", "CategoryBatchClassifier"]
