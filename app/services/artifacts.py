import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import StorageError
from app.models.folder import ProjectFolder
from app.models.project import Project
from app.models.upload import Upload, UploadStatus
from app.services.provisioning import provision_project_folders
from app.services.reconcile import enqueue_orphan
from app.services.tenant import TenantContext
from app.utils.storage_keys import (
    artifact_folder_token,
    build_storage_key,
    file_extension,
)

logger = logging.getLogger(__name__)


class ProjectArtifactKind(str, Enum):
    RFI = "RFI"
    SUBMITTAL = "Submittal"
    PUNCH_LIST = "PunchList"
    DAILY_LOG = "DailyLog"
    BUDGET = "Budget"
    SCHEDULE = "Schedule"
    CLOSEOUT = "Closeout"
    PHOTO_REPORT = "PhotoReport"


ARTIFACT_FOLDER_MAP = {
    ProjectArtifactKind.RFI: "RFIs",
    ProjectArtifactKind.SUBMITTAL: "Submittals",
    ProjectArtifactKind.PUNCH_LIST: "Reports",
    ProjectArtifactKind.DAILY_LOG: "Daily Logs",
    ProjectArtifactKind.BUDGET: "Budget",
    ProjectArtifactKind.SCHEDULE: "Schedule",
    ProjectArtifactKind.CLOSEOUT: "Closeout",
    ProjectArtifactKind.PHOTO_REPORT: "Photos",
}


@dataclass
class ArtifactFile:
    name: str
    data: bytes
    content_type: Optional[str] = None
    size: Optional[int] = None


@dataclass
class SavedArtifact:
    upload: Upload
    folder_name: str
    storage_key: str


def resolve_artifact_folder(kind: ProjectArtifactKind) -> str:
    return ARTIFACT_FOLDER_MAP[ProjectArtifactKind(kind)]


def resolve_project_folder_id(
    db: Session, ctx: TenantContext, project_id: str, folder_name: str
) -> Optional[str]:
    query = db.query(ProjectFolder.id).filter(
        ProjectFolder.project_id == project_id,
        ProjectFolder.name == folder_name,
        ProjectFolder.is_system == True,
        ProjectFolder.is_deleted == False,
    )
    row = ctx.scope_folders(query).first()
    return row[0] if row else None


async def save_project_artifact(
    db: Session,
    store,
    project: Project,
    kind: ProjectArtifactKind,
    file: ArtifactFile,
    ctx: TenantContext,
) -> SavedArtifact:
    """Store a generated artifact under its kind's system folder.

    Artifacts are written as ``active`` in one step since the bytes are
    already on the server. No row is written when the put fails.
    """
    folder_name = resolve_artifact_folder(kind)
    # provisioning is idempotent; older projects get their taxonomy here
    provision_project_folders(db, project.id, project.name, ctx.org_id, ctx.user_id)
    folder_id = resolve_project_folder_id(db, ctx, project.id, folder_name)

    folder_token = artifact_folder_token(project.name, folder_name)
    storage_key = build_storage_key(ctx.namespace, folder_token, file.name)
    content_type = file.content_type or "application/octet-stream"

    await store.put(storage_key, file.data, content_type)

    upload = Upload(
        file_name=file.name,
        file_size=file.size if file.size is not None else len(file.data),
        file_type=file_extension(file.name),
        content_type=content_type,
        storage_key=storage_key,
        namespace=ctx.namespace,
        folder_id=folder_id,
        project_id=project.id,
        org_id=ctx.org_id,
        uploaded_by=ctx.user_id,
        status=UploadStatus.ACTIVE,
    )
    try:
        db.add(upload)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Artifact metadata insert failed for {storage_key}: {e}")
        enqueue_orphan(db, storage_key, "artifact-insert-failed", str(e))
        raise StorageError("Failed to record artifact")
    db.refresh(upload)

    logger.info(f"Saved {kind} artifact for project {project.id} at {storage_key}")
    return SavedArtifact(upload=upload, folder_name=folder_name, storage_key=storage_key)
