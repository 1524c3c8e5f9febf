"""Blob store abstraction. Local filesystem implementation for dev and tests.

The remote store owns scaled/cropped image derivation; callers only pass
paths. ``copy_image_in`` takes a base path without extension and writes the
original as ``{base}.{ext}`` plus one scaled variant per configured image
size as ``{base}.{size}.{ext}``, correcting the extension from the decoded
image format.
"""
import asyncio
import logging
import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol, Sequence

import aiofiles
import aiofiles.os
from PIL import Image

from attachvault.config import ImageSize, settings
from attachvault.models.crop import Crop

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024  # 1 MB per chunk when copying
ENABLED_MODE = 0o644
DISABLED_MODE = 0o000

# Pillow format -> canonical extension
FORMAT_EXTENSIONS = {"JPEG": "jpg", "MPO": "jpg", "PNG": "png", "GIF": "gif"}
# Multi-picture JPEGs (most phone cameras) are written back as plain JPEG
SAVE_FORMATS = {"MPO": "JPEG"}


@dataclass
class ImageInfo:
    extension: str
    width: int
    height: int


class BlobStore(Protocol):
    async def copy_in(self, local_path: str, remote_path: str) -> None: ...

    async def copy_image_in(
        self, local_path: str, remote_path: str, crop: Optional[Crop] = None
    ) -> ImageInfo: ...

    async def copy_out(self, remote_path: str, local_path: str) -> None: ...

    async def enable(self, remote_path: str) -> None: ...

    async def disable(self, remote_path: str) -> None: ...

    def get_url(self) -> str: ...

    def get_temp_path(self) -> str: ...


async def _copy_file(source: Path, target: Path) -> None:
    await aiofiles.os.makedirs(target.parent, exist_ok=True)
    async with aiofiles.open(source, "rb") as src, aiofiles.open(target, "wb") as dst:
        while True:
            chunk = await src.read(CHUNK_SIZE)
            if not chunk:
                break
            await dst.write(chunk)


class LocalBlobStore:
    """Stores blobs under a root directory. Access is toggled with file modes."""

    def __init__(
        self,
        root: str,
        base_url: str,
        temp_path: str,
        image_sizes: Sequence[ImageSize] = (),
    ):
        self.root = Path(root)
        self.base_url = base_url
        self.temp_path = Path(temp_path)
        self.image_sizes = list(image_sizes)
        self.root.mkdir(parents=True, exist_ok=True)
        self.temp_path.mkdir(parents=True, exist_ok=True)

    def _local(self, remote_path: str) -> Path:
        return self.root / remote_path.lstrip("/")

    async def copy_in(self, local_path: str, remote_path: str) -> None:
        await _copy_file(Path(local_path), self._local(remote_path))

    async def copy_out(self, remote_path: str, local_path: str) -> None:
        await _copy_file(self._local(remote_path), Path(local_path))

    async def copy_image_in(
        self, local_path: str, remote_path: str, crop: Optional[Crop] = None
    ) -> ImageInfo:
        return await asyncio.to_thread(self._ingest_image, Path(local_path), remote_path, crop)

    def _ingest_image(self, local_path: Path, remote_path: str, crop: Optional[Crop]) -> ImageInfo:
        base = self._local(remote_path)
        base.parent.mkdir(parents=True, exist_ok=True)
        with Image.open(local_path) as im:
            image_format = im.format
            extension = FORMAT_EXTENSIONS.get(image_format or "")
            if extension is None:
                raise OSError(f"Unsupported image format: {image_format}")
            save_format = SAVE_FORMATS.get(image_format, image_format)
            if crop:
                im = im.crop((crop.left, crop.top, crop.left + crop.width, crop.top + crop.height))
                im.save(f"{base}.{extension}", format=save_format)
            else:
                shutil.copyfile(local_path, f"{base}.{extension}")
            width, height = im.size
            for size in self.image_sizes:
                variant = im.copy()
                if save_format == "JPEG" and variant.mode not in ("RGB", "L"):
                    variant = variant.convert("RGB")
                variant.thumbnail((size.width, size.height))
                variant.save(f"{base}.{size.name}.{extension}", format=save_format)
        return ImageInfo(extension=extension, width=width, height=height)

    async def enable(self, remote_path: str) -> None:
        await asyncio.to_thread(os.chmod, self._local(remote_path), ENABLED_MODE)

    async def disable(self, remote_path: str) -> None:
        await asyncio.to_thread(os.chmod, self._local(remote_path), DISABLED_MODE)

    def get_url(self) -> str:
        return self.base_url

    def get_temp_path(self) -> str:
        return str(self.temp_path)


async def remove_temp_file(path: str) -> None:
    """Best-effort removal of a scratch file. A file that was never created is fine."""
    try:
        await aiofiles.os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning(f"Could not remove temp file {path}: {e}")


def create_blob_store() -> LocalBlobStore:
    return LocalBlobStore(
        root=settings.BLOB_STORAGE_PATH,
        base_url=settings.BLOB_BASE_URL,
        temp_path=settings.BLOB_TEMP_PATH,
        image_sizes=settings.IMAGE_SIZES,
    )
