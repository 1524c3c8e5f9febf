"""Builds the attachment services around one session factory and blob store."""
from dataclasses import dataclass
from typing import Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from attachvault.config import ImageSize, settings
from attachvault.services.attachment_repository import AttachmentRepository
from attachvault.services.blob_store import BlobStore
from attachvault.services.crop_manager import CropManager
from attachvault.services.file_groups import DEFAULT_FILE_GROUPS, FileGroup
from attachvault.services.migrations import MigrationRunner
from attachvault.services.permission_sync import PermissionSynchronizer
from attachvault.services.reference_tracker import ReferenceTracker


@dataclass
class Services:
    store: BlobStore
    image_sizes: list[ImageSize]
    repository: AttachmentRepository
    crops: CropManager
    synchronizer: PermissionSynchronizer
    tracker: ReferenceTracker
    migrations: MigrationRunner


def build_services(
    sessions: async_sessionmaker[AsyncSession],
    store: BlobStore,
    *,
    image_sizes: Optional[Sequence[ImageSize]] = None,
    preview_size: Optional[str] = None,
    file_groups: Sequence[FileGroup] = DEFAULT_FILE_GROUPS,
    bucket_size: Optional[int] = None,
    migration_concurrency: Optional[int] = None,
) -> Services:
    image_sizes = list(image_sizes if image_sizes is not None else settings.IMAGE_SIZES)
    preview_size = preview_size if preview_size is not None else settings.SIZE_AVAILABLE_IN_TRASH

    repository = AttachmentRepository(sessions, store, file_groups)
    synchronizer = PermissionSynchronizer(repository, store, image_sizes, preview_size)
    migrations = MigrationRunner(
        sessions, repository, synchronizer,
        concurrency=migration_concurrency, bucket_size=bucket_size,
    )
    migrations.register_attachment_migrations()
    return Services(
        store=store,
        image_sizes=image_sizes,
        repository=repository,
        crops=CropManager(repository, store, synchronizer),
        synchronizer=synchronizer,
        tracker=ReferenceTracker(repository, synchronizer),
        migrations=migrations,
    )
