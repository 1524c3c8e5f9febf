"""Docs API routes.

Every write persists the document first, then recomputes attachment
references for it and reconciles blob-store access.
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from attachvault.database import get_db
from attachvault.models import Doc
from attachvault.routes.deps import get_services
from attachvault.schemas.doc import DocCreate, DocResponse, DocUpdate
from attachvault.services.container import Services

router = APIRouter(prefix="/api/docs", tags=["docs"])


@router.post("", response_model=DocResponse, status_code=201)
async def create_doc(
    body: DocCreate,
    db: AsyncSession = Depends(get_db),
    services: Services = Depends(get_services),
):
    """Create a document and index the attachments it references."""
    doc = Doc(**body.model_dump())
    db.add(doc)
    await db.commit()
    await db.refresh(doc)
    await services.tracker.doc_after_save(doc)
    return doc


@router.get("/{doc_id}", response_model=DocResponse)
async def get_doc(doc_id: str, db: AsyncSession = Depends(get_db)):
    doc = await db.get(Doc, doc_id)
    if not doc:
        raise HTTPException(status_code=404, detail="Doc not found")
    return doc


@router.put("/{doc_id}", response_model=DocResponse)
async def update_doc(
    doc_id: str,
    body: DocUpdate,
    db: AsyncSession = Depends(get_db),
    services: Services = Depends(get_services),
):
    """Update a document. Only provided fields are updated."""
    doc = await db.get(Doc, doc_id)
    if not doc:
        raise HTTPException(status_code=404, detail="Doc not found")

    update_data = body.model_dump(exclude_unset=True)
    for key, value in update_data.items():
        setattr(doc, key, value)

    await db.commit()
    await db.refresh(doc)
    await services.tracker.doc_after_save(doc)
    return doc


@router.post("/{doc_id}/trash", response_model=DocResponse)
async def trash_doc(
    doc_id: str,
    db: AsyncSession = Depends(get_db),
    services: Services = Depends(get_services),
):
    """Move a document to the trash."""
    doc = await _set_trash(db, doc_id, True)
    await services.tracker.doc_after_trash(doc)
    return doc


@router.post("/{doc_id}/rescue", response_model=DocResponse)
async def rescue_doc(
    doc_id: str,
    db: AsyncSession = Depends(get_db),
    services: Services = Depends(get_services),
):
    """Restore a document from the trash."""
    doc = await _set_trash(db, doc_id, False)
    await services.tracker.doc_after_rescue(doc)
    return doc


async def _set_trash(db: AsyncSession, doc_id: str, trash: bool) -> Doc:
    doc = await db.get(Doc, doc_id)
    if not doc:
        raise HTTPException(status_code=404, detail="Doc not found")
    doc.trash = trash
    await db.commit()
    await db.refresh(doc)
    return doc
