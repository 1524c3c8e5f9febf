"""Crop materialization and attachment cloning.

Crops are derived once and cached in the blob store forever; ``crops`` on
the record only ever grows. Every scratch file is removed on the way out,
whether or not the blob-store calls succeeded.
"""
import logging
import math
import re
from pathlib import Path
from typing import Any, Mapping, Optional

from attachvault.errors import AttachmentIOError, AttachmentNotFoundError
from attachvault.models import Attachment, ATTACHMENT_TYPE, Crop
from attachvault.models.base import generate_id
from attachvault.services.attachment_repository import AttachmentRepository, apply_image_info
from attachvault.services.blob_store import BlobStore, remove_temp_file
from attachvault.services.file_groups import find_group
from attachvault.services.permission_sync import PermissionSynchronizer
from attachvault.services.url_builder import ORIGINAL, build_base_path, build_path

logger = logging.getLogger(__name__)

# field -> (min, max)
CROP_BOUNDS = {
    "top": (0, 10000),
    "left": (0, 10000),
    "width": (1, 10000),
    "height": (1, 10000),
}

_LEADING_INT = re.compile(r"^\s*([-+]?\d+)")


def _to_int(value: Any) -> Optional[int]:
    """Integer coercion that accepts '12', '12.7' and 12.7; rejects booleans and junk."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    if isinstance(value, str):
        match = _LEADING_INT.match(value)
        return int(match.group(1)) if match else None
    return None


def sanitize_crop(data: Any) -> Optional[Crop]:
    """Clamp raw crop input into range. Returns None unless all four fields are usable integers."""
    if not isinstance(data, Mapping):
        return None
    values = {}
    for key, (low, high) in CROP_BOUNDS.items():
        value = _to_int(data.get(key))
        if value is None:
            continue
        values[key] = min(max(value, low), high)
    if len(values) < len(CROP_BOUNDS):
        return None
    return Crop(**values)


class CropManager:
    def __init__(
        self,
        repository: AttachmentRepository,
        store: BlobStore,
        synchronizer: PermissionSynchronizer,
    ):
        self.repository = repository
        self.store = store
        self.synchronizer = synchronizer

    def _temp_file(self, extension: str) -> str:
        return str(Path(self.store.get_temp_path()) / f"{generate_id()}.{extension}")

    async def crop(self, attachment_id: str, crop: Crop) -> Attachment:
        """Materialize ``crop`` for an image. A rectangle already present is a no-op."""
        attachment = await self.repository.find_by_id(attachment_id)
        if attachment is None:
            raise AttachmentNotFoundError(f"Attachment {attachment_id} not found")
        if crop in attachment.crop_list():
            return attachment

        original = build_path(attachment, size=ORIGINAL, crop=False)
        temp_file = self._temp_file(attachment.extension)
        try:
            await self.store.copy_out(original, temp_file)
            await self.store.copy_image_in(temp_file, build_base_path(attachment, crop), crop=crop)
            await self.repository.append_crop(attachment.id, crop)
        except OSError as e:
            raise AttachmentIOError(f"Failed to crop attachment {attachment.id}: {e}") from e
        finally:
            await remove_temp_file(temp_file)

        # A hidden attachment must not expose its new crop variants
        await self.synchronizer.apply_crop(attachment, crop)
        logger.info(f"Cropped attachment {attachment.id} to {crop.suffix}")
        return await self.repository.find_by_id(attachment.id)

    async def clone(self, source: Attachment) -> Attachment:
        """Copy an attachment's metadata and original bytes under a new id.

        Crops are not carried over; the clone starts with none.
        """
        target = Attachment(
            id=generate_id(),
            type=ATTACHMENT_TYPE,
            length=source.length,
            md5=source.md5,
            group=source.group,
            name=source.name,
            title=source.title,
            extension=source.extension,
            crops=[],
            utilized=False,
            references_indexed=True,
        )
        group = find_group(source.group, self.repository.file_groups)
        is_image = bool(group and group.image)
        original = build_path(source, size=ORIGINAL, crop=False)
        temp_file = self._temp_file(source.extension)
        try:
            await self.store.copy_out(original, temp_file)
            if is_image:
                info = await self.store.copy_image_in(temp_file, build_base_path(target, crop=False))
                apply_image_info(target, info)
            else:
                await self.store.copy_in(temp_file, build_path(target, size=ORIGINAL, crop=False))
        except OSError as e:
            raise AttachmentIOError(f"Failed to clone attachment {source.id}: {e}") from e
        finally:
            await remove_temp_file(temp_file)

        await self.repository.add(target)
        logger.info(f"Cloned attachment {source.id} as {target.id}")
        return target
