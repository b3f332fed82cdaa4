"""Bounded fan-out/fan-in over a thread pool, in the spirit of `p-map`.

``p_map(items, mapper, concurrency=N)`` runs ``mapper`` over every item with at
most ``N`` calls in flight and returns the results in input order.

Failures never cut the batch short: every item is mapped, queued work is not
cancelled, and once the last call has returned the failures are raised
together as an ``ExceptionGroup`` ordered by input position.

There is no timeout; a mapper that never returns blocks ``p_map()``.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor, wait
from typing import TypeVar

InT = TypeVar("InT")
OutT = TypeVar("OutT")


def p_map(
    items: Iterable[InT],
    mapper: Callable[[InT], OutT],
    *,
    concurrency: int,
    thread_name_prefix: str = "p_map",
) -> list[OutT]:
    """Map ``items`` through ``mapper`` on at most ``concurrency`` threads.

    Raises ``ExceptionGroup`` when any call failed, after all calls finished.
    """

    if not isinstance(concurrency, int) or concurrency < 1:
        raise ValueError("concurrency must be a positive integer")

    with ThreadPoolExecutor(
        max_workers=concurrency, thread_name_prefix=thread_name_prefix
    ) as pool:
        futures = [pool.submit(mapper, item) for item in items]
        # Barrier: join everything before looking at outcomes.
        wait(futures)

    failures = [f.exception() for f in futures if f.exception() is not None]
    if failures:
        raise ExceptionGroup("p_map: one or more mapper calls failed", failures)
    return [f.result() for f in futures]


__all__ = ["p_map"]
