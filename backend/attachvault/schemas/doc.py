"""Doc request/response schemas."""
from typing import Optional
from datetime import datetime
from attachvault.schemas.base import CamelModel, CamelORMModel


class DocCreate(CamelModel):
    type: str = "page"
    title: str = ""
    trash: bool = False
    body: dict = {}


class DocUpdate(CamelModel):
    type: Optional[str] = None
    title: Optional[str] = None
    body: Optional[dict] = None


class DocResponse(CamelORMModel):
    id: str
    type: str
    title: str
    trash: bool
    body: dict
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
