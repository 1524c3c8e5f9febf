"""Attachment request/response schemas."""
from typing import Any, Optional
from datetime import datetime
from attachvault.schemas.base import CamelModel, CamelORMModel


class CropRequest(CamelModel):
    """Raw crop input; values are coerced and clamped server-side."""
    top: Any = None
    left: Any = None
    width: Any = None
    height: Any = None


class CropResponse(CamelModel):
    top: int
    left: int
    width: int
    height: int


class AttachmentResponse(CamelORMModel):
    id: str
    type: Optional[str] = None
    name: str
    title: str
    extension: str
    group: str
    length: Optional[int] = None
    md5: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    landscape: Optional[bool] = None
    portrait: Optional[bool] = None
    crops: list[CropResponse] = []
    doc_ids: list[str] = []
    trash_doc_ids: list[str] = []
    utilized: bool = False
    trash: Optional[bool] = None
    owner_id: Optional[str] = None
    created_at: Optional[datetime] = None
    urls: dict[str, str] = {}
