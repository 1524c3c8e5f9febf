"""Filename-derived slugs and sortable titles."""
import re
import unicodedata
from pathlib import Path


def _fold(text: str) -> str:
    text = unicodedata.normalize("NFKD", text or "")
    return "".join(ch for ch in text if unicodedata.category(ch) != "Mn")


def slugify(text: str) -> str:
    """Lower-case ASCII slug safe for storage paths: 'My Photo (1)' -> 'my-photo-1'."""
    slug = re.sub(r"[^a-z0-9]+", "-", _fold(text).lower()).strip("-")
    return slug or "none"


def sortify(text: str) -> str:
    """Lower-cased title with punctuation collapsed to single spaces."""
    return re.sub(r"[^\w]+", " ", _fold(text).lower()).strip()


def split_filename(filename: str) -> tuple[str, str]:
    """('Photo.JPEG') -> ('Photo', 'jpeg')."""
    path = Path(filename or "")
    return path.stem if path.suffix else path.name, path.suffix[1:].lower()
