"""Parallel execution engine for batch operations.

Provides a single `run_parallel()` function that bucketed batch iteration
uses to process items with bounded parallelism.

With concurrency=1, behavior is identical to a sequential for-loop.
"""
import asyncio
import logging
from typing import TypeVar, Sequence, Callable, Awaitable

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


async def run_parallel(
    items: Sequence[T],
    worker: Callable[[int, T], Awaitable[R]],
    *,
    concurrency: int = 1,
) -> list[R]:
    """Run worker(index, item) for each item with bounded concurrency.

    Args:
        items: Sequence of items to process.
        worker: async (index, item) -> result. Index is 0-based.
        concurrency: Max in-flight workers. 1 = sequential.

    Returns:
        List of results in input order. The first failure cancels the
        remaining workers and is re-raised.
    """
    total = len(items)
    if total == 0:
        return []

    results: list[R] = [None] * total  # type: ignore[list-item]
    semaphore = asyncio.Semaphore(max(1, concurrency))

    async def _run_one(index: int, item: T):
        async with semaphore:
            results[index] = await worker(index, item)

    if concurrency <= 1:
        # Sequential path, same behavior as a for loop
        for i, item in enumerate(items):
            await _run_one(i, item)
    else:
        # Parallel path: create tasks and wait for all
        tasks = [asyncio.create_task(_run_one(i, item)) for i, item in enumerate(items)]

        # On the first failure, cancel whatever is still running
        try:
            await asyncio.gather(*tasks)
        except Exception:
            for t in tasks:
                if not t.done():
                    t.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.debug(f"Cancelled {sum(t.cancelled() for t in tasks)}/{total} workers after a failure")
            raise

    return results
