"""Unauthenticated upload endpoints driven by an external request link token."""

import logging
from dataclasses import asdict

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.models.folder import ProjectFolder
from app.schemas.file import (
    CompleteUploadRequest,
    FileResponse,
    PublicUploadUrlRequest,
    UploadUrlResponse,
)
from app.services.external_links import resolve_link
from app.services.object_store import get_object_store
from app.services.uploads import complete_link_upload, request_upload_slot

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/{token}/upload-url", response_model=UploadUrlResponse)
async def create_public_upload_url(
    token: str,
    body: PublicUploadUrlRequest,
    db: Session = Depends(get_db),
    store=Depends(get_object_store),
):
    link, ctx = resolve_link(db, token)
    folder = db.query(ProjectFolder).filter(ProjectFolder.id == link.folder_id).first()
    slot = await request_upload_slot(
        db, store, ctx, folder, body.filename, body.content_type, body.size
    )
    logger.info(f"Link {link.id} reserved upload {slot.file_id}")
    return asdict(slot)


@router.post("/{token}/complete", response_model=FileResponse)
async def complete_public_upload(
    token: str,
    body: CompleteUploadRequest,
    db: Session = Depends(get_db),
):
    link, ctx = resolve_link(db, token)
    return complete_link_upload(db, link, ctx, body.file_id)
