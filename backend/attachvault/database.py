"""Async SQLAlchemy engine, session factory and schema bootstrap.

Routes take a request-scoped session from ``get_db``. Services take the
``async_session`` factory itself and open one session per unit of work,
so bucketed batch code can process rows concurrently without sharing a
session.
"""
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from attachvault.config import settings
from attachvault.models import Base


def engine_options(url: str) -> dict:
    """Pool settings for server databases; sqlite (local dev) takes none."""
    if make_url(url).get_backend_name() == "sqlite":
        return {}
    return {"pool_size": 10, "max_overflow": 20, "pool_pre_ping": True}


engine = create_async_engine(settings.DATABASE_URL, echo=False, **engine_options(settings.DATABASE_URL))

async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def create_tables(bind: AsyncEngine) -> None:
    """Create any missing attachvault tables. Existing tables are left as they are."""
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_db():
    async with async_session() as session:
        yield session
