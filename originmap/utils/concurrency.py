"""Bounded fan-out helper for burst-tolerant upstream APIs.

The streaming library API tolerates short bursts, so page fetches beyond the
first are dispatched concurrently.  :func:`batched_gather` runs them in fixed
size groups with a short pause between groups, which keeps bursts under the
provider's limit without serialising the whole fetch.

The artist metadata service is *not* burst tolerant; nothing in the origin
resolution path uses this module.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, TypeVar

import structlog

from originmap.utils.logging import get_logger

_T = TypeVar("_T")

_logger: structlog.BoundLogger = get_logger(__name__)


async def batched_gather(
    factories: list[Callable[[], Awaitable[_T]]],
    batch_size: int = 10,
    pause: float = 0.05,
    return_exceptions: bool = True,
) -> list[_T | BaseException]:
    """Run awaitable factories in concurrent batches of at most *batch_size*.

    Factories (zero-argument callables) are used instead of coroutines so
    that nothing starts before its batch does.

    Parameters
    ----------
    factories:
        Callables that each return an awaitable.
    batch_size:
        Maximum number of awaitables in flight at once.
    pause:
        Seconds to sleep between consecutive batches (not after the last).
    return_exceptions:
        Mirrors ``asyncio.gather``: failures are returned in place of results.

    Returns
    -------
    list
        Results in the same order as *factories*.
    """
    if batch_size < 1:
        raise ValueError(f"batch_size must be >= 1, got {batch_size}")

    results: list[_T | BaseException] = []
    for start in range(0, len(factories), batch_size):
        batch = factories[start : start + batch_size]
        batch_results = await asyncio.gather(
            *(factory() for factory in batch),
            return_exceptions=return_exceptions,
        )
        results.extend(batch_results)

        _logger.debug(
            "batch_completed",
            batch_start=start,
            batch_size=len(batch),
            failures=sum(1 for r in batch_results if isinstance(r, BaseException)),
        )

        if start + batch_size < len(factories) and pause > 0:
            await asyncio.sleep(pause)

    return results
