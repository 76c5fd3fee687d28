import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from app.api.v1.auth import get_tenant
from app.core.database import get_db
from app.schemas.file import FileListResponse
from app.schemas.project import (
    ProjectCreate,
    ProjectCreateResponse,
    ProjectListResponse,
    ProjectResponse,
    ProvisionResponse,
)
from app.services.archive import build_project_audit_export
from app.services.listing import FILE_TYPE_PRESETS, list_recent_project_files
from app.services.object_store import get_object_store
from app.services.projects import (
    create_project_with_folders,
    get_scoped_project,
    list_scoped_projects,
)
from app.services.provisioning import provision_project_folders
from app.services.tenant import TenantContext

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/", response_model=ProjectCreateResponse, status_code=201)
async def create_project(
    body: ProjectCreate,
    db: Session = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant),
):
    project, folders = create_project_with_folders(db, ctx, body.name, body.description)
    logger.info(f"User {ctx.user_id} created project {project.id}")
    return {"project": project, "folders": folders}


@router.get("/", response_model=ProjectListResponse)
async def get_projects(
    db: Session = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant),
):
    return {"projects": list_scoped_projects(db, ctx)}


@router.get("/{project_id}", response_model=ProjectResponse)
async def get_project(
    project_id: str,
    db: Session = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant),
):
    return get_scoped_project(db, ctx, project_id)


# Re-run provisioning for projects created before the taxonomy existed
@router.post("/{project_id}/provision", response_model=ProvisionResponse)
async def provision_project(
    project_id: str,
    db: Session = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant),
):
    project = get_scoped_project(db, ctx, project_id)
    folders = provision_project_folders(
        db, project.id, project.name, project.org_id or ctx.org_id, ctx.user_id
    )
    return {"folders": folders}


@router.get("/{project_id}/recent-files", response_model=FileListResponse)
async def get_recent_files(
    project_id: str,
    limit: int = Query(20, ge=1, le=200),
    preset: Optional[str] = Query(None, pattern="^(photos|drawings)$"),
    db: Session = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant),
):
    file_types = FILE_TYPE_PRESETS[preset] if preset else None
    files = list_recent_project_files(db, ctx, project_id, limit, file_types)
    return {"files": files}


@router.post("/{project_id}/audit-export")
async def export_project_audit(
    project_id: str,
    db: Session = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant),
    store=Depends(get_object_store),
):
    archive = await build_project_audit_export(db, store, ctx, project_id)
    return Response(
        content=archive.content,
        media_type="application/zip",
        headers={"Content-Disposition": f'attachment; filename="{archive.filename}"'},
    )
