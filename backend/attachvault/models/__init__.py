"""Import all models so SQLAlchemy metadata knows about them."""
from attachvault.models.base import Base
from attachvault.models.crop import Crop
from attachvault.models.attachment import Attachment, AttachmentReference, ATTACHMENT_TYPE
from attachvault.models.doc import Doc

__all__ = [
    "Base", "Crop",
    "Attachment", "AttachmentReference", "ATTACHMENT_TYPE", "Doc",
]
