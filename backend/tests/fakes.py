"""Test doubles and helpers shared across test modules."""
from pathlib import Path
from typing import Optional

from attachvault.config import ImageSize
from attachvault.models import Attachment, ATTACHMENT_TYPE, Crop
from attachvault.services.blob_store import ImageInfo

TEST_IMAGE_SIZES = [
    ImageSize(name="full", width=1140, height=1140),
    ImageSize(name="one-half", width=570, height=700),
    ImageSize(name="one-sixth", width=190, height=350),
]
PREVIEW_SIZE = "one-sixth"


class FakeBlobStore:
    """In-memory blob store that records every call."""

    def __init__(self, temp_dir: Path, image_sizes=(), dimensions=(800, 600), image_extension="jpg"):
        self.temp_dir = temp_dir
        self.image_sizes = [s.name for s in image_sizes]
        self.dimensions = dimensions
        self.image_extension = image_extension
        self.files: dict[str, bytes] = {}
        self.disabled: set[str] = set()
        self.calls: list[tuple] = []
        self.fail_paths: set[str] = set()
        self.fail_methods: set[str] = set()

    def _maybe_fail(self, method: str, path: str) -> None:
        if method in self.fail_methods or path in self.fail_paths:
            raise OSError(f"simulated {method} failure for {path}")

    async def copy_in(self, local_path, remote_path):
        self.calls.append(("copy_in", remote_path))
        self._maybe_fail("copy_in", remote_path)
        self.files[remote_path] = Path(local_path).read_bytes()

    async def copy_image_in(self, local_path, remote_path, crop: Optional[Crop] = None):
        self.calls.append(("copy_image_in", remote_path))
        self._maybe_fail("copy_image_in", remote_path)
        data = Path(local_path).read_bytes()
        ext = self.image_extension
        self.files[f"{remote_path}.{ext}"] = data
        for size in self.image_sizes:
            self.files[f"{remote_path}.{size}.{ext}"] = data
        width, height = (crop.width, crop.height) if crop else self.dimensions
        return ImageInfo(extension=ext, width=width, height=height)

    async def copy_out(self, remote_path, local_path):
        self.calls.append(("copy_out", remote_path))
        self._maybe_fail("copy_out", remote_path)
        if remote_path not in self.files:
            raise FileNotFoundError(remote_path)
        Path(local_path).write_bytes(self.files[remote_path])

    async def enable(self, remote_path):
        self.calls.append(("enable", remote_path))
        self._maybe_fail("enable", remote_path)
        self.disabled.discard(remote_path)

    async def disable(self, remote_path):
        self.calls.append(("disable", remote_path))
        self._maybe_fail("disable", remote_path)
        self.disabled.add(remote_path)

    def get_url(self):
        return "https://cdn.example.com/uploads"

    def get_temp_path(self):
        return str(self.temp_dir)

    def calls_for(self, *methods: str) -> list[tuple]:
        return [c for c in self.calls if c[0] in methods]

    def reset_calls(self) -> None:
        self.calls.clear()


def embed(attachment: Attachment, **extra) -> dict:
    """Attachment value as it appears inside a document body."""
    value = {
        "id": attachment.id,
        "type": ATTACHMENT_TYPE,
        "name": attachment.name,
        "title": attachment.title,
        "extension": attachment.extension,
        "group": attachment.group,
        "md5": attachment.md5,
    }
    value.update(extra)
    return value
