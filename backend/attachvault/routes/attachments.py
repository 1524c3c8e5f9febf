"""Attachments API routes."""
from pathlib import Path
from typing import Optional

import aiofiles
from fastapi import APIRouter, Depends, HTTPException, UploadFile, File as FastAPIFile

from attachvault.errors import AttachmentError
from attachvault.models import Attachment
from attachvault.models.base import generate_id
from attachvault.routes.deps import get_principal, get_services, http_error
from attachvault.schemas.attachment import AttachmentResponse, CropRequest
from attachvault.services.attachment_repository import UploadedFile
from attachvault.services.blob_store import remove_temp_file
from attachvault.services.container import Services
from attachvault.services.crop_manager import sanitize_crop
from attachvault.services.permissions import EDIT_ATTACHMENT, Principal, can
from attachvault.services.url_builder import ORIGINAL, attachment_url

router = APIRouter(prefix="/api/attachments", tags=["attachments"])


@router.post("/upload", response_model=AttachmentResponse, status_code=201)
async def upload_attachment(
    file: UploadFile = FastAPIFile(...),
    principal: Optional[Principal] = Depends(get_principal),
    services: Services = Depends(get_services),
):
    """Upload a file and create an attachment record."""
    filename = file.filename or "unnamed"
    temp_path = str(Path(services.store.get_temp_path()) / f"upload-{generate_id()}")
    contents = await file.read()
    try:
        async with aiofiles.open(temp_path, "wb") as f:
            await f.write(contents)
        attachment = await services.repository.insert(
            principal, UploadedFile(name=filename, path=temp_path)
        )
    except AttachmentError as e:
        raise http_error(e)
    finally:
        await remove_temp_file(temp_path)
    return _to_response(attachment, services)


@router.get("/{attachment_id}", response_model=AttachmentResponse)
async def get_attachment(attachment_id: str, services: Services = Depends(get_services)):
    """Get attachment metadata, reference sets and URLs."""
    attachment = await services.repository.find_by_id(attachment_id)
    if not attachment:
        raise HTTPException(status_code=404, detail="Attachment not found")
    return _to_response(attachment, services)


@router.post("/{attachment_id}/crop", response_model=AttachmentResponse)
async def crop_attachment(
    attachment_id: str,
    body: CropRequest,
    principal: Optional[Principal] = Depends(get_principal),
    services: Services = Depends(get_services),
):
    """Materialize a crop. Repeating an existing rectangle is a no-op."""
    if not can(principal, EDIT_ATTACHMENT):
        raise HTTPException(status_code=403, detail="forbidden")
    crop = sanitize_crop(body.model_dump())
    if crop is None:
        raise HTTPException(status_code=400, detail="Invalid crop")
    try:
        attachment = await services.crops.crop(attachment_id, crop)
    except AttachmentError as e:
        raise http_error(e)
    return _to_response(attachment, services)


@router.post("/{attachment_id}/clone", response_model=AttachmentResponse, status_code=201)
async def clone_attachment(attachment_id: str, services: Services = Depends(get_services)):
    """Duplicate an attachment's original bytes under a new id. Crops are not copied."""
    source = await services.repository.find_by_id(attachment_id)
    if not source:
        raise HTTPException(status_code=404, detail="Attachment not found")
    try:
        target = await services.crops.clone(source)
    except AttachmentError as e:
        raise http_error(e)
    return _to_response(target, services)


def _to_response(attachment: Attachment, services: Services) -> AttachmentResponse:
    """Convert SQLAlchemy model to response, adding public URLs."""
    base_url = services.store.get_url()
    if attachment.group == "images":
        urls = {
            size.name: attachment_url(attachment, base_url, size=size.name)
            for size in services.image_sizes
        }
    else:
        urls = {}
    urls[ORIGINAL] = attachment_url(attachment, base_url, size=ORIGINAL)
    response = AttachmentResponse.model_validate(attachment)
    response.urls = urls
    return response
