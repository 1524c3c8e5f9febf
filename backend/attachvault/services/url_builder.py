"""Canonical blob paths and URLs for attachments.

Path format:

    /attachments/{id}-{name}[.{left}.{top}.{width}.{height}][.{size}].{extension}

The crop suffix always precedes the size suffix. The permission synchronizer
enumerates blob paths with the same function, so the order must not change.

``attachment`` may be an ``Attachment`` row or a plain dict embedded in a
document body; both expose id, name, extension, group and optionally a
designated ``crop`` / hoisted ``_crop``.
"""
import logging
from typing import Any, Mapping, Optional, Union

from attachvault.models.crop import Crop

logger = logging.getLogger(__name__)

ORIGINAL = "original"
DEFAULT_SIZE = "full"
MISSING_ATTACHMENT_URL = "/modules/attachments/img/missing-icon.svg"

CropOption = Union[Crop, Mapping, None, bool]


def _get(attachment: Any, key: str, default=None):
    if isinstance(attachment, Mapping):
        return attachment.get(key, default)
    return getattr(attachment, key, default)


def _select_crop(attachment: Any, crop: CropOption) -> Optional[Crop]:
    """Explicit crop wins, then the hoisted placement crop, then the attachment's own.

    ``crop=False`` disables crop selection entirely. Rectangles without a
    positive width are ignored.
    """
    if crop is False:
        return None
    candidate = crop or _get(attachment, "_crop") or _get(attachment, "crop")
    if not candidate:
        return None
    if isinstance(candidate, Crop):
        return candidate if candidate.width > 0 else None
    try:
        if not candidate.get("width"):
            return None
        return Crop.from_mapping(candidate)
    except (AttributeError, KeyError, TypeError, ValueError):
        return None


def build_base_path(attachment: Any, crop: CropOption = None) -> str:
    """Path without size suffix and extension."""
    path = f"/attachments/{_get(attachment, 'id')}-{_get(attachment, 'name')}"
    selected = _select_crop(attachment, crop)
    if selected:
        path += "." + selected.suffix
    return path


def build_path(attachment: Any, size: Optional[str] = None, crop: CropOption = None) -> str:
    """Canonical blob-store path for (attachment, size, crop)."""
    path = build_base_path(attachment, crop)
    if _get(attachment, "group") == "images" and size != ORIGINAL:
        path += "." + (size or DEFAULT_SIZE)
    return f"{path}.{_get(attachment, 'extension')}"


def missing_attachment_url() -> str:
    logger.warning(
        "Attachment url requested for a missing attachment, serving the placeholder icon"
    )
    return MISSING_ATTACHMENT_URL


def attachment_url(
    attachment: Any,
    base_url: str = "",
    size: Optional[str] = None,
    crop: CropOption = None,
    blob_path: bool = False,
) -> str:
    """Public URL for an attachment, or the bare blob path when ``blob_path`` is set."""
    if not attachment:
        return missing_attachment_url()
    path = build_path(attachment, size=size, crop=crop)
    if blob_path:
        return path
    return base_url.rstrip("/") + path


def has_focal_point(attachment: Any) -> bool:
    if not attachment:
        return False
    if isinstance(_get(attachment, "x"), (int, float)):
        return True
    focal = _get(attachment, "_focalPoint")
    return bool(focal) and isinstance(focal.get("x"), (int, float))


def get_focal_point(attachment: Any) -> Optional[dict]:
    """Focal point as percentages, preferring one hoisted from a placement."""
    if not has_focal_point(attachment):
        return None
    focal = _get(attachment, "_focalPoint")
    if focal:
        return {"x": focal.get("x"), "y": focal.get("y")}
    return {"x": _get(attachment, "x"), "y": _get(attachment, "y")}


def focal_point_to_background_position(attachment: Any) -> str:
    point = get_focal_point(attachment)
    if point is None:
        return "center center"
    return f"{point['x']}% {point['y']}%"
