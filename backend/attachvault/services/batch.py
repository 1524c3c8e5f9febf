"""Two-phase bucketed iteration over a table.

File operations can be slow, so long-lived query cursors are avoided: all
matching ids are fetched up front, then rows are loaded ``bucket_size`` at a
time in a fresh session and handed to ``fn`` with at most ``limit`` in
flight. Buckets run strictly one after another.

For batch tasks and migrations only; no permission checks happen here.
"""
import logging
from typing import Any, Awaitable, Callable, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from attachvault.config import settings
from attachvault.services.parallel_engine import run_parallel

logger = logging.getLogger(__name__)


async def each_in_buckets(
    sessions: async_sessionmaker[AsyncSession],
    model: Any,
    criteria: Sequence[Any],
    fn: Callable[[Any], Awaitable[None]],
    *,
    limit: int = 1,
    bucket_size: Optional[int] = None,
) -> int:
    """Call ``fn(row)`` once for every row of ``model`` matching ``criteria``.

    Returns the number of rows processed.
    """
    bucket_size = bucket_size or settings.BATCH_BUCKET_SIZE

    async with sessions() as db:
        result = await db.execute(select(model.id).where(*criteria).order_by(model.id))
        ids = list(result.scalars().all())

    processed = 0
    for start in range(0, len(ids), bucket_size):
        bucket = ids[start:start + bucket_size]
        async with sessions() as db:
            result = await db.execute(select(model).where(model.id.in_(bucket)).order_by(model.id))
            rows = result.scalars().all()

        async def _process(index: int, row: Any) -> None:
            await fn(row)

        await run_parallel(rows, _process, concurrency=limit)
        processed += len(rows)
        logger.debug(f"Processed {processed}/{len(ids)} {model.__tablename__} rows")
    return processed
