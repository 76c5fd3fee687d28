import logging
from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from app.api.v1.auth import get_tenant
from app.core.database import get_db
from app.schemas.file import (
    CompleteUploadRequest,
    DeleteFileRequest,
    DeleteFileResponse,
    DownloadResponse,
    FileListResponse,
    FileResponse,
    MoveFileRequest,
    MoveFileResponse,
    RenameFileRequest,
    UploadUrlRequest,
    UploadUrlResponse,
    ZipRequest,
)
from app.services.archive import build_folder_zip
from app.services.listing import FILE_TYPE_PRESETS, list_folder_files
from app.services.mutations import delete_file, download_url, move_file, rename_file
from app.services.object_store import get_object_store
from app.services.tenant import TenantContext
from app.services.uploads import complete_upload, request_session_upload_slot

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/upload-url", response_model=UploadUrlResponse)
async def create_upload_url(
    body: UploadUrlRequest,
    db: Session = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant),
    store=Depends(get_object_store),
):
    slot = await request_session_upload_slot(
        db, store, ctx, body.folder_id, body.filename, body.content_type, body.size
    )
    return asdict(slot)


@router.post("/complete", response_model=FileResponse)
async def complete(
    body: CompleteUploadRequest,
    db: Session = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant),
):
    return complete_upload(db, ctx, body.file_id)


@router.get("/", response_model=FileListResponse)
async def get_files(
    folder_id: str = Query(...),
    include_pending: bool = Query(False),
    preset: Optional[str] = Query(None, pattern="^(photos|drawings)$"),
    order: str = Query("name", pattern="^(name|recent)$"),
    limit: Optional[int] = Query(None, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant),
):
    file_types = FILE_TYPE_PRESETS[preset] if preset else None
    files = list_folder_files(
        db, ctx, folder_id, include_pending, file_types, order, limit, offset
    )
    return {"files": files}


@router.get("/{file_id}/download", response_model=DownloadResponse)
async def get_download_url(
    file_id: str,
    db: Session = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant),
    store=Depends(get_object_store),
):
    return {"url": await download_url(db, store, ctx, file_id)}


@router.post("/rename", response_model=FileResponse)
async def rename(
    body: RenameFileRequest,
    db: Session = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant),
):
    return rename_file(db, ctx, body.file_id, body.new_name)


@router.post("/move", response_model=MoveFileResponse)
async def move(
    body: MoveFileRequest,
    db: Session = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant),
    store=Depends(get_object_store),
):
    result = await move_file(db, store, ctx, body.file_id, body.new_folder_id)
    return {
        "ok": True,
        "file_id": result.upload.id,
        "new_key": result.new_key,
        "moved": result.moved,
    }


@router.post("/delete", response_model=DeleteFileResponse)
async def delete(
    body: DeleteFileRequest,
    db: Session = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant),
    store=Depends(get_object_store),
):
    removed = await delete_file(db, store, ctx, body.file_id)
    return {"ok": True, "already_deleted": not removed}


@router.post("/zip")
async def download_zip(
    body: ZipRequest,
    db: Session = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant),
    store=Depends(get_object_store),
):
    archive = await build_folder_zip(db, store, ctx, body.folder_id)
    if archive.skipped:
        logger.info(f"Zip for folder {body.folder_id} skipped {len(archive.skipped)} files")
    return Response(
        content=archive.content,
        media_type="application/zip",
        headers={"Content-Disposition": f'attachment; filename="{archive.filename}"'},
    )
