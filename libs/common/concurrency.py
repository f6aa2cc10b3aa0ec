"""Bounded fan-out for per-item I/O inside request-scoped batches."""

import asyncio
from typing import Any, Awaitable, Callable, Sequence, TypeVar

T = TypeVar("T")


async def gather_bounded(
    items: Sequence[T],
    worker: Callable[[T], Awaitable[Any]],
    *,
    limit: int,
) -> list[Any]:
    """
    Run ``worker(item)`` for every item with at most ``limit`` in flight.

    Results come back in input order, not completion order. A failing item
    yields its exception in place of a result so callers can log and skip it.
    """
    semaphore = asyncio.Semaphore(max(1, limit))

    async def _run(item: T) -> Any:
        async with semaphore:
            return await worker(item)

    return await asyncio.gather(*(_run(item) for item in items), return_exceptions=True)
