"""Error taxonomy for attachment operations."""
from dataclasses import dataclass


class AttachmentError(Exception):
    """Base exception for attachment errors."""


class AttachmentValidationError(AttachmentError):
    """Unaccepted file extension or malformed crop input."""


class AttachmentPermissionError(AttachmentError):
    """The caller may not perform this action. Nothing was written."""


class AttachmentNotFoundError(AttachmentError):
    """Raised when a crop or clone target id is unknown."""


class AttachmentIOError(AttachmentError):
    """Blob-store or hashing failure. Partially written bytes are not rolled back."""


@dataclass(frozen=True)
class SyncWarning:
    """A single blob-store path that could not be enabled or disabled.

    Collected and logged by the permission synchronizer, never raised.
    """
    path: str
    action: str
    error: str
