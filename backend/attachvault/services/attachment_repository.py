"""Attachment records: upload, lookup, updates and reference bookkeeping.

Every method opens its own session from the injected sessionmaker and
commits before returning, so callers never share a session across
concurrent work.
"""
import hashlib
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterable, Optional, Sequence

import aiofiles
import aiofiles.os
from sqlalchemy import select, update, exists, or_
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from attachvault.errors import (
    AttachmentIOError, AttachmentPermissionError, AttachmentValidationError,
)
from attachvault.models import Attachment, AttachmentReference, ATTACHMENT_TYPE, Crop
from attachvault.models.base import generate_id
from attachvault.services.batch import each_in_buckets
from attachvault.services.blob_store import BlobStore, CHUNK_SIZE, ImageInfo
from attachvault.services.file_groups import (
    DEFAULT_FILE_GROUPS, FileGroup, accepted_extensions, get_file_group,
)
from attachvault.services.naming import slugify, sortify, split_filename
from attachvault.services.permissions import EDIT_ATTACHMENT, Principal, can, effective_user_id

logger = logging.getLogger(__name__)


@dataclass
class UploadedFile:
    """``name`` is the filename the client claims; ``path`` is where the bytes are on disk."""
    name: str
    path: str


async def md5_file(path: str) -> str:
    digest = hashlib.md5()
    async with aiofiles.open(path, "rb") as f:
        while True:
            chunk = await f.read(CHUNK_SIZE)
            if not chunk:
                break
            digest.update(chunk)
    return digest.hexdigest()


def apply_image_info(attachment: Attachment, info: ImageInfo) -> None:
    """Record decoded dimensions. The decoded format wins over the claimed extension."""
    attachment.extension = info.extension
    attachment.width = info.width
    attachment.height = info.height
    attachment.landscape = True if info.width > info.height else None
    attachment.portrait = None if info.width > info.height else True


def _live_reference():
    return exists().where(
        AttachmentReference.attachment_id == Attachment.id,
        AttachmentReference.trash.is_(False),
    )


class AttachmentRepository:
    def __init__(
        self,
        sessions: async_sessionmaker[AsyncSession],
        store: BlobStore,
        file_groups: Sequence[FileGroup] = DEFAULT_FILE_GROUPS,
    ):
        self.sessions = sessions
        self.store = store
        self.file_groups = file_groups

    def get_file_group(self, extension: str) -> Optional[FileGroup]:
        return get_file_group(extension, self.file_groups)

    # ── Upload ───────────────────────────────────────────────────

    async def insert(
        self,
        principal: Optional[Principal],
        file: UploadedFile,
        *,
        permissions: bool = True,
    ) -> Attachment:
        """Store an uploaded file and create its attachment record.

        ``permissions=False`` is for trusted administrative callers: no
        permission check happens and no owner is recorded.
        """
        stem, extension = split_filename(file.name)
        group = self.get_file_group(extension)
        if group is None:
            raise AttachmentValidationError(
                "File extension not accepted. Acceptable extensions: "
                + ",".join(accepted_extensions(self.file_groups))
            )
        if permissions and not can(principal, EDIT_ATTACHMENT):
            raise AttachmentPermissionError("forbidden")

        attachment = Attachment(
            id=generate_id(),
            type=ATTACHMENT_TYPE,
            group=group.name,
            name=slugify(stem),
            title=sortify(stem),
            extension=extension,
            crops=[],
            utilized=False,
            references_indexed=True,
        )
        base_path = f"/attachments/{attachment.id}-{attachment.name}"
        try:
            attachment.length = (await aiofiles.os.stat(file.path)).st_size
            attachment.md5 = await md5_file(file.path)
            if group.image:
                apply_image_info(attachment, await self.store.copy_image_in(file.path, base_path))
            else:
                await self.store.copy_in(file.path, f"{base_path}.{attachment.extension}")
        except OSError as e:
            raise AttachmentIOError(f"Failed to store {file.name}: {e}") from e

        if permissions:
            attachment.owner_id = effective_user_id(principal)
        await self.add(attachment)
        logger.info(f"Inserted attachment {attachment.id} ({attachment.group}/{attachment.extension})")
        return attachment

    async def accept(self, principal: Optional[Principal], file: UploadedFile) -> Attachment:
        """Backwards-compatible alias for ``insert`` with permission checks on."""
        return await self.insert(principal, file, permissions=True)

    # ── CRUD ─────────────────────────────────────────────────────

    async def add(self, attachment: Attachment) -> Attachment:
        async with self.sessions() as db:
            db.add(attachment)
            await db.commit()
            await db.refresh(attachment)
        return attachment

    async def find_by_id(self, attachment_id: str) -> Optional[Attachment]:
        async with self.sessions() as db:
            return await db.get(Attachment, attachment_id)

    async def find_many(self, *criteria: Any, columns: Sequence[Any] = ()) -> list:
        """Attachments matching all ``criteria``; with ``columns``, only those columns."""
        async with self.sessions() as db:
            if columns:
                result = await db.execute(select(*columns).where(*criteria))
                return list(result.all())
            result = await db.execute(select(Attachment).where(*criteria).order_by(Attachment.id))
            return list(result.scalars().all())

    async def update(self, attachment_id: str, **fields: Any) -> Optional[Attachment]:
        async with self.sessions() as db:
            attachment = await db.get(Attachment, attachment_id)
            if attachment is None:
                return None
            for key, value in fields.items():
                setattr(attachment, key, value)
            await db.commit()
            await db.refresh(attachment)
            return attachment

    async def append_crop(self, attachment_id: str, crop: Crop) -> bool:
        """Append ``crop`` unless an identical rectangle is already recorded."""
        async with self.sessions() as db:
            attachment = await db.get(Attachment, attachment_id)
            if attachment is None:
                return False
            if crop in attachment.crop_list():
                return False
            attachment.crops = [*(attachment.crops or []), crop.to_dict()]
            await db.commit()
            return True

    async def each(
        self,
        criteria: Sequence[Any],
        fn: Callable[[Attachment], Awaitable[None]],
        limit: int = 1,
        bucket_size: Optional[int] = None,
    ) -> int:
        return await each_in_buckets(
            self.sessions, Attachment, criteria, fn, limit=limit, bucket_size=bucket_size,
        )

    # ── Reference sets ───────────────────────────────────────────

    async def apply_doc_references(self, doc_id: str, ids: Iterable[str], trash: bool) -> set[str]:
        """Make ``doc_id`` reference exactly ``ids``, on the live or trash side.

        Attachments no longer referenced lose ``doc_id`` from both sets;
        referenced ones are marked utilized. Unknown ids are ignored.
        Returns the ids that exist.
        """
        ids = set(ids)
        async with self.sessions() as db:
            found = set()
            if ids:
                result = await db.execute(select(Attachment.id).where(Attachment.id.in_(ids)))
                found = set(result.scalars().all())

            result = await db.execute(
                select(AttachmentReference).where(AttachmentReference.doc_id == doc_id)
            )
            existing = {ref.attachment_id: ref for ref in result.scalars().all()}

            for attachment_id in found:
                ref = existing.get(attachment_id)
                if ref is None:
                    db.add(AttachmentReference(attachment_id=attachment_id, doc_id=doc_id, trash=trash))
                else:
                    ref.trash = trash
            for attachment_id, ref in existing.items():
                if attachment_id not in found:
                    await db.delete(ref)
            if found:
                await db.execute(
                    update(Attachment).where(Attachment.id.in_(found)).values(utilized=True)
                )
            await db.commit()
        return found

    async def add_references(self, deltas: dict[str, dict[str, set[str]]]) -> int:
        """Add-to-set semantics for bulk backfills.

        ``deltas`` maps attachment id to ``{"doc_ids": {...}, "trash_doc_ids": {...}}``.
        Existing pairs are moved to the requested side; nothing is removed.
        """
        if not deltas:
            return 0
        async with self.sessions() as db:
            result = await db.execute(select(Attachment.id).where(Attachment.id.in_(deltas)))
            found = set(result.scalars().all())
            result = await db.execute(
                select(AttachmentReference).where(AttachmentReference.attachment_id.in_(found))
            )
            existing = {(r.attachment_id, r.doc_id): r for r in result.scalars().all()}
            for attachment_id in found:
                wanted = [(d, False) for d in deltas[attachment_id].get("doc_ids", ())]
                wanted += [(d, True) for d in deltas[attachment_id].get("trash_doc_ids", ())]
                for doc_id, trash in wanted:
                    ref = existing.get((attachment_id, doc_id))
                    if ref is None:
                        ref = AttachmentReference(attachment_id=attachment_id, doc_id=doc_id, trash=trash)
                        db.add(ref)
                        existing[(attachment_id, doc_id)] = ref
                    else:
                        ref.trash = trash
            if found:
                await db.execute(
                    update(Attachment).where(Attachment.id.in_(found)).values(utilized=True)
                )
            await db.commit()
        return len(found)

    # ── Reconciliation queries ───────────────────────────────────

    async def find_needing_hide(self) -> list[Attachment]:
        """Utilized, no live references, not yet hidden."""
        return await self.find_many(
            Attachment.utilized.is_(True),
            ~_live_reference(),
            or_(Attachment.trash.is_(None), Attachment.trash.is_(False)),
        )

    async def find_needing_show(self) -> list[Attachment]:
        """Utilized, at least one live reference, not yet shown."""
        return await self.find_many(
            Attachment.utilized.is_(True),
            _live_reference(),
            or_(Attachment.trash.is_(None), Attachment.trash.is_(True)),
        )

    async def set_trash(self, attachment_id: str, trash: bool) -> None:
        async with self.sessions() as db:
            await db.execute(
                update(Attachment).where(Attachment.id == attachment_id).values(trash=trash)
            )
            await db.commit()

    # ── Legacy probes and backfills ──────────────────────────────

    async def has_missing_type(self) -> bool:
        async with self.sessions() as db:
            result = await db.execute(
                select(Attachment.id).where(Attachment.type.is_(None)).limit(1)
            )
            return result.scalar_one_or_none() is not None

    async def set_type_everywhere(self) -> None:
        async with self.sessions() as db:
            await db.execute(update(Attachment).values(type=ATTACHMENT_TYPE))
            await db.commit()

    async def has_unindexed_references(self) -> bool:
        async with self.sessions() as db:
            result = await db.execute(
                select(Attachment.id).where(_unindexed()).limit(1)
            )
            return result.scalar_one_or_none() is not None

    async def mark_references_indexed(self) -> None:
        async with self.sessions() as db:
            await db.execute(update(Attachment).where(_unindexed()).values(references_indexed=True))
            await db.commit()


def _unindexed():
    return or_(
        Attachment.references_indexed.is_(None),
        Attachment.references_indexed.is_(False),
    )
