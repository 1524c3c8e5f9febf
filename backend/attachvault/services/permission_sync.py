"""Blob-store access reconciliation.

An attachment stays web-accessible exactly while at least one live document
references it. ``reconcile`` finds utilized attachments whose stored
``trash`` flag disagrees with their live references and flips every blob
path they own: the original and each image size, uncropped and for every
cached crop. The designated preview size is always enabled so trashed
media can still be previewed.

Path failures are collected as ``SyncWarning``s and logged; they never abort
the batch and never stop the record's ``trash`` flag from being committed.
Work is sequential by default so blob-store rate limits are respected.
"""
import logging
from dataclasses import dataclass, field
from typing import Iterator, Optional, Sequence

from attachvault.config import ImageSize
from attachvault.errors import SyncWarning
from attachvault.models import Attachment, Crop
from attachvault.services.attachment_repository import AttachmentRepository
from attachvault.services.blob_store import BlobStore
from attachvault.services.file_groups import RASTER_EXTENSIONS
from attachvault.services.url_builder import ORIGINAL, build_path

logger = logging.getLogger(__name__)

ENABLE = "enable"
DISABLE = "disable"


@dataclass
class PathResult:
    path: str
    action: str
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class AttachmentSync:
    attachment_id: str
    trash: bool
    skipped: bool = False
    results: list[PathResult] = field(default_factory=list)

    @property
    def failures(self) -> list[PathResult]:
        return [r for r in self.results if not r.ok]


@dataclass
class SyncReport:
    """Outcome of one ``reconcile`` pass."""
    attachments: list[AttachmentSync] = field(default_factory=list)

    @property
    def hidden(self) -> list[str]:
        return [a.attachment_id for a in self.attachments if a.trash]

    @property
    def shown(self) -> list[str]:
        return [a.attachment_id for a in self.attachments if not a.trash]

    @property
    def warnings(self) -> list[SyncWarning]:
        return [
            SyncWarning(path=r.path, action=r.action, error=r.error or "")
            for a in self.attachments for r in a.failures
        ]


class PermissionSynchronizer:
    def __init__(
        self,
        repository: AttachmentRepository,
        store: BlobStore,
        image_sizes: Sequence[ImageSize],
        preview_size: Optional[str],
    ):
        self.repository = repository
        self.store = store
        self.image_sizes = list(image_sizes)
        self.preview_size = preview_size

    def _all_sizes(self) -> list[str]:
        return [size.name for size in self.image_sizes] + [ORIGINAL]

    def _crop_paths(self, attachment: Attachment, crop: Crop) -> Iterator[tuple[str, str]]:
        for size in self._all_sizes():
            yield size, build_path(attachment, size=size, crop=crop)

    def _action(self, size: str, trash: bool) -> str:
        return ENABLE if (trash is False or size == self.preview_size) else DISABLE

    def blob_paths(self, attachment: Attachment) -> Iterator[tuple[str, str]]:
        """Yield (size name, path) for every variant the attachment may own."""
        sizes = self._all_sizes() if attachment.extension in RASTER_EXTENSIONS else [ORIGINAL]
        for size in sizes:
            yield size, build_path(attachment, size=size, crop=False)
        crops = attachment.crop_list()
        if len(crops) < len(attachment.crops or []):
            logger.warning(
                f"Attachment {attachment.id} has {len(attachment.crops) - len(crops)} "
                f"malformed crop entries, their paths are not synchronized"
            )
        for crop in crops:
            yield from self._crop_paths(attachment, crop)

    async def reconcile(self) -> SyncReport:
        report = SyncReport()
        for attachment in await self.repository.find_needing_hide():
            report.attachments.append(await self.sync_one(attachment, trash=True))
        for attachment in await self.repository.find_needing_show():
            report.attachments.append(await self.sync_one(attachment, trash=False))
        if report.attachments:
            logger.info(
                f"Reconciled {len(report.attachments)} attachment(s): "
                f"{len(report.hidden)} hidden, {len(report.shown)} shown, "
                f"{len(report.warnings)} path warning(s)"
            )
        return report

    async def sync_one(self, attachment: Attachment, trash: bool) -> AttachmentSync:
        outcome = AttachmentSync(attachment_id=attachment.id, trash=trash)
        if not trash and attachment.trash is None:
            # Never reconciled before: the upload is already accessible
            outcome.skipped = True
        else:
            for size, path in self.blob_paths(attachment):
                outcome.results.append(await self._apply(path, self._action(size, trash)))
        await self.repository.set_trash(attachment.id, trash)
        return outcome

    async def apply_crop(self, attachment: Attachment, crop: Crop) -> AttachmentSync:
        """Bring a newly written crop in line with an already hidden attachment.

        Crop variants are written accessible. On a live or never reconciled
        attachment that is already correct, so no blob-store calls are made.
        """
        outcome = AttachmentSync(attachment_id=attachment.id, trash=bool(attachment.trash))
        if attachment.trash is not True:
            outcome.skipped = True
            return outcome
        for size, path in self._crop_paths(attachment, crop):
            outcome.results.append(await self._apply(path, self._action(size, True)))
        return outcome

    async def _apply(self, path: str, action: str) -> PathResult:
        method = self.store.enable if action == ENABLE else self.store.disable
        try:
            await method(path)
        except Exception as e:
            # Must not fail the document save that triggered reconciliation
            logger.warning(f"Unable to {action} {path}, possibly it does not exist: {e}")
            return PathResult(path=path, action=action, error=str(e) or type(e).__name__)
        return PathResult(path=path, action=action)
