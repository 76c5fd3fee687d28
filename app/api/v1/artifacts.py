import logging

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from sqlalchemy.orm import Session

from app.api.v1.auth import get_tenant
from app.core.database import get_db
from app.schemas.file import ArtifactResponse
from app.services.artifacts import ArtifactFile, ProjectArtifactKind, save_project_artifact
from app.services.object_store import get_object_store
from app.services.projects import get_scoped_project
from app.services.tenant import TenantContext

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/{project_id}/artifacts", response_model=ArtifactResponse, status_code=201)
async def upload_artifact(
    project_id: str,
    kind: ProjectArtifactKind = Form(...),
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant),
    store=Depends(get_object_store),
):
    if not file.filename:
        raise HTTPException(status_code=400, detail="File name is required")

    project = get_scoped_project(db, ctx, project_id)
    data = await file.read()
    saved = await save_project_artifact(
        db,
        store,
        project,
        kind,
        ArtifactFile(name=file.filename, data=data, content_type=file.content_type),
        ctx,
    )
    return {
        "upload": saved.upload,
        "folder_name": saved.folder_name,
        "storage_key": saved.storage_key,
    }
