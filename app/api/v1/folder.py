import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.v1.auth import get_tenant
from app.core.database import get_db
from app.schemas.folder import (
    CreateFolderRequest,
    DeleteFolderResponse,
    FolderListResponse,
    FolderResponse,
    RenameFolderRequest,
)
from app.services.folders import (
    create_user_folder,
    delete_user_folder,
    list_folders,
    rename_user_folder,
)
from app.services.object_store import get_object_store
from app.services.tenant import TenantContext

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/", response_model=FolderListResponse)
async def get_folders(
    project_id: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant),
):
    return {"folders": list_folders(db, ctx, project_id)}


@router.post("/", response_model=FolderResponse, status_code=201)
async def create_folder(
    body: CreateFolderRequest,
    db: Session = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant),
):
    folder = create_user_folder(db, ctx, body.project_id, body.name, body.parent_id)
    logger.info(f"User {ctx.user_id} created folder {folder.id}")
    return folder


@router.patch("/{folder_id}", response_model=FolderResponse)
async def rename_folder(
    folder_id: str,
    body: RenameFolderRequest,
    db: Session = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant),
):
    return rename_user_folder(db, ctx, folder_id, body.new_name)


@router.delete("/{folder_id}", response_model=DeleteFolderResponse)
async def delete_folder(
    folder_id: str,
    db: Session = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant),
    store=Depends(get_object_store),
):
    deleted = await delete_user_folder(db, store, ctx, folder_id)
    return {"ok": True, "deleted_folder_ids": deleted}
