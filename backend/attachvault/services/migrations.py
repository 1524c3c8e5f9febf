"""Idempotent backfills that bring legacy attachment data into the reference model.

Each migration starts with a cheap existence probe and returns immediately
when nothing needs it, so running the whole registry on every startup is
safe, and a migration interrupted halfway can simply be re-run.
"""
import copy
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Sequence

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from attachvault.config import settings
from attachvault.models import ATTACHMENT_TYPE, Doc
from attachvault.services.attachment_repository import AttachmentRepository
from attachvault.services.batch import each_in_buckets
from attachvault.services.doc_walker import walk
from attachvault.services.permission_sync import PermissionSynchronizer
from attachvault.services.reference_tracker import referenced_ids

logger = logging.getLogger(__name__)

ADD_TYPE = "attachments.addType"
DOC_REFERENCES = "attachments.docReferences"

# Fields every pre-discriminator attachment value carried
LEGACY_ATTACHMENT_FIELDS = ("extension", "md5", "group", "id")


def looks_like_legacy_attachment(value: Any) -> bool:
    """Only for detecting untyped attachments in old data; use ``is_attachment`` elsewhere."""
    return isinstance(value, dict) and all(value.get(k) for k in LEGACY_ATTACHMENT_FIELDS)


@dataclass
class Migration:
    name: str
    fn: Callable[[], Awaitable[bool]]
    safe: bool = False


class MigrationRunner:
    def __init__(
        self,
        sessions: async_sessionmaker[AsyncSession],
        repository: AttachmentRepository,
        synchronizer: PermissionSynchronizer,
        *,
        concurrency: Optional[int] = None,
        bucket_size: Optional[int] = None,
    ):
        self.sessions = sessions
        self.repository = repository
        self.synchronizer = synchronizer
        self.concurrency = concurrency or settings.MIGRATION_CONCURRENCY
        self.bucket_size = bucket_size
        self._migrations: dict[str, Migration] = {}

    # ── Registry ─────────────────────────────────────────────────

    def register(self, name: str, fn: Callable[[], Awaitable[bool]], *, safe: bool = False) -> None:
        """Register a migration. ``safe`` ones may run while the site is live."""
        if name in self._migrations:
            raise ValueError(f"Migration already registered: {name}")
        self._migrations[name] = Migration(name=name, fn=fn, safe=safe)

    @property
    def names(self) -> list[str]:
        return list(self._migrations)

    def register_attachment_migrations(self) -> None:
        # addType must run first: reference backfill only sees typed attachments
        self.register(ADD_TYPE, self.add_type, safe=True)
        self.register(DOC_REFERENCES, self.add_doc_references, safe=True)

    async def run_all(self, safe_only: bool = False) -> list[str]:
        """Run migrations in registration order. Returns the names that did work."""
        ran = []
        for migration in self._migrations.values():
            if safe_only and not migration.safe:
                continue
            logger.info(f"Checking migration {migration.name}")
            if await migration.fn():
                ran.append(migration.name)
                logger.info(f"Migration {migration.name} complete")
        return ran

    async def for_each_document(
        self,
        criteria: Sequence[Any],
        concurrency: int,
        fn: Callable[[Doc], Awaitable[None]],
    ) -> int:
        return await each_in_buckets(
            self.sessions, Doc, criteria, fn, limit=concurrency, bucket_size=self.bucket_size,
        )

    # ── Migrations ───────────────────────────────────────────────

    async def add_type(self) -> bool:
        """Stamp the attachment discriminator on legacy records and embedded values."""
        if not await self.repository.has_missing_type():
            return False

        await self.repository.set_type_everywhere()
        stamped = 0

        async def _stamp(doc: Doc) -> None:
            nonlocal stamped
            body = copy.deepcopy(doc.body or {})
            changed = False

            def _visit(node, key, value, path, ancestors):
                nonlocal changed
                if looks_like_legacy_attachment(value) and value.get("type") != ATTACHMENT_TYPE:
                    value["type"] = ATTACHMENT_TYPE
                    changed = True

            walk(body, _visit)
            if not changed:
                return
            async with self.sessions() as db:
                await db.execute(update(Doc).where(Doc.id == doc.id).values(body=body))
                await db.commit()
            stamped += 1

        await self.for_each_document([], 1, _stamp)
        logger.info(f"addType: stamped attachments in {stamped} document(s)")
        return True

    async def add_doc_references(self) -> bool:
        """Rebuild docIds/trashDocIds from every document, then reconcile access once."""
        if not await self.repository.has_unindexed_references():
            return False

        deltas: dict[str, dict[str, set[str]]] = {}

        async def _collect(doc: Doc) -> None:
            side = "trash_doc_ids" if doc.trash else "doc_ids"
            for attachment_id in referenced_ids(doc.body):
                entry = deltas.setdefault(attachment_id, {"doc_ids": set(), "trash_doc_ids": set()})
                entry[side].add(doc.id)

        parsed = await self.for_each_document([], self.concurrency, _collect)
        updated = await self.repository.add_references(deltas)
        await self.repository.mark_references_indexed()
        logger.info(f"docReferences: parsed {parsed} document(s), updated {updated} attachment(s)")
        await self.synchronizer.reconcile()
        return True
