"""Shared pytest fixtures for attachvault tests."""
import logging
from pathlib import Path

import pytest
from sqlalchemy import null
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from attachvault.database import create_tables
from attachvault.models import Attachment, ATTACHMENT_TYPE
from attachvault.services.container import build_services
from tests.fakes import FakeBlobStore, PREVIEW_SIZE, TEST_IMAGE_SIZES


@pytest.fixture(scope="session", autouse=True)
def quiet_logging():
    """Only show errors from the library while tests run."""
    logging.getLogger("attachvault").setLevel(logging.ERROR)
    yield


# ============================================================================
# Database and services
# ============================================================================

@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'attachvault.db'}")
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def sessions(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def temp_dir(tmp_path) -> Path:
    path = tmp_path / "blob-tmp"
    path.mkdir()
    return path


@pytest.fixture
def store(temp_dir) -> FakeBlobStore:
    return FakeBlobStore(temp_dir, image_sizes=TEST_IMAGE_SIZES)


@pytest.fixture
def services(sessions, store):
    return build_services(
        sessions, store,
        image_sizes=TEST_IMAGE_SIZES,
        preview_size=PREVIEW_SIZE,
        bucket_size=100,
        migration_concurrency=5,
    )


@pytest.fixture
def make_attachment(sessions, store):
    """Insert an attachment row directly and seed its original bytes in the store.

    A field passed as None is stored as NULL even where the column has a
    default, so legacy rows can be built.
    """
    counter = {"n": 0}

    async def _make(**fields) -> Attachment:
        counter["n"] += 1
        values = {
            "id": f"att{counter['n']:04d}",
            "type": ATTACHMENT_TYPE,
            "name": f"photo-{counter['n']}",
            "title": f"photo {counter['n']}",
            "extension": "jpg",
            "group": "images",
            "length": 3,
            "md5": "d41d8cd98f00b204e9800998ecf8427e",
            "width": 800,
            "height": 600,
            "landscape": True,
            "crops": [],
            "utilized": False,
            "references_indexed": True,
        }
        values.update({k: null() if v is None else v for k, v in fields.items()})
        attachment = Attachment(**values)
        async with sessions() as db:
            db.add(attachment)
            await db.commit()
        store.files[f"/attachments/{attachment.id}-{attachment.name}.{attachment.extension}"] = b"raw"
        async with sessions() as db:
            return await db.get(Attachment, attachment.id)

    return _make


