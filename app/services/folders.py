import logging
from typing import Dict, List, Optional

from sqlalchemy import and_, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import InvalidRequest, NotFound, ScopeViolation, StorageError
from app.models.folder import ProjectFolder
from app.models.project import Project
from app.models.upload import Upload, UploadStatus
from app.services.projects import get_scoped_project
from app.services.provisioning import project_root_path
from app.services.reconcile import delete_object_best_effort
from app.services.tenant import TenantContext
from app.utils.storage_keys import (
    artifact_folder_token,
    folder_prefix,
    sanitize_path_segment,
)

logger = logging.getLogger(__name__)


def get_scoped_folder(db: Session, ctx: TenantContext, folder_id: str) -> ProjectFolder:
    folder = (
        db.query(ProjectFolder)
        .filter(ProjectFolder.id == folder_id, ProjectFolder.is_deleted == False)
        .first()
    )
    if not folder:
        raise NotFound("Folder not found")
    if not ctx.owns_folder(folder):
        logger.warning(f"User {ctx.user_id} denied access to folder {folder_id}")
        raise ScopeViolation("Folder is outside your workspace")
    return folder


def folder_files_filter(db: Session, folder: ProjectFolder, namespace: str):
    """Filter matching the uploads stored in ``folder``.

    System folders also own the artifact prefix
    ``orgs/{ns}/Projects/{project}/{folder}/`` written by the artifact path.
    Project names are not unique, so rows under that prefix must also carry
    the folder's id.
    """
    clauses = [
        Upload.storage_key.startswith(folder_prefix(namespace, folder.id), autoescape=True)
    ]
    if folder.is_system:
        project = db.query(Project).filter(Project.id == folder.project_id).first()
        if project:
            artifact_prefix = folder_prefix(
                namespace, artifact_folder_token(project.name, folder.name)
            )
            clauses.append(
                and_(
                    Upload.storage_key.startswith(artifact_prefix, autoescape=True),
                    Upload.folder_id == folder.id,
                )
            )
    return or_(*clauses)


def _ensure_unique_path(
    db: Session, project_id: str, folder_path: str, exclude_id: Optional[str] = None
):
    query = db.query(ProjectFolder.id).filter(
        ProjectFolder.project_id == project_id,
        ProjectFolder.folder_path == folder_path,
        ProjectFolder.is_deleted == False,
    )
    if exclude_id:
        query = query.filter(ProjectFolder.id != exclude_id)
    if query.first():
        name = folder_path.rsplit("/", 1)[-1]
        raise InvalidRequest(f"Folder name {name} already exists")


def list_folders(
    db: Session, ctx: TenantContext, project_id: Optional[str] = None
) -> List[ProjectFolder]:
    query = db.query(ProjectFolder).filter(ProjectFolder.is_deleted == False)
    if project_id:
        query = query.filter(ProjectFolder.project_id == project_id)
    return (
        ctx.scope_folders(query)
        .order_by(
            ProjectFolder.project_id.asc(),
            ProjectFolder.is_system.desc(),
            ProjectFolder.sort_order.asc(),
            ProjectFolder.name.asc(),
        )
        .limit(500)
        .all()
    )


def create_user_folder(
    db: Session,
    ctx: TenantContext,
    project_id: str,
    name: str,
    parent_id: Optional[str] = None,
) -> ProjectFolder:
    clean_name = sanitize_path_segment(name)
    if not clean_name:
        raise InvalidRequest("Folder name is required")

    project = get_scoped_project(db, ctx, project_id)

    base_path = project_root_path(project.name)
    if parent_id:
        parent = get_scoped_folder(db, ctx, parent_id)
        if parent.project_id != project.id:
            raise NotFound("Parent folder not found")
        base_path = parent.folder_path

    _ensure_unique_path(db, project.id, f"{base_path}/{clean_name}")

    folder = ProjectFolder(
        project_id=project.id,
        parent_id=parent_id,
        name=clean_name,
        folder_path=f"{base_path}/{clean_name}",
        folder_type="custom",
        is_system=False,
        org_id=project.org_id or ctx.org_id,
        created_by=ctx.user_id,
    )
    try:
        db.add(folder)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to create folder {clean_name} in project {project.id}: {e}")
        raise StorageError("Failed to create folder")
    db.refresh(folder)
    return folder


def rename_user_folder(
    db: Session, ctx: TenantContext, folder_id: str, new_name: str
) -> ProjectFolder:
    clean_name = sanitize_path_segment(new_name)
    if not clean_name:
        raise InvalidRequest("Folder name is required")

    folder = get_scoped_folder(db, ctx, folder_id)
    if folder.is_system:
        raise InvalidRequest("System folders cannot be renamed")

    old_path = folder.folder_path
    parent_path = old_path.rsplit("/", 1)[0]
    new_path = f"{parent_path}/{clean_name}"
    _ensure_unique_path(db, folder.project_id, new_path, exclude_id=folder.id)

    descendants = (
        db.query(ProjectFolder)
        .filter(
            ProjectFolder.project_id == folder.project_id,
            ProjectFolder.folder_path.startswith(f"{old_path}/", autoescape=True),
        )
        .all()
    )
    folder.name = clean_name
    folder.folder_path = new_path
    for child in descendants:
        child.folder_path = new_path + child.folder_path[len(old_path):]

    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to rename folder {folder_id}: {e}")
        raise StorageError("Failed to rename folder")
    db.refresh(folder)
    # file keys carry the folder id, not its name
    return folder


def _subtree_ids(rows: List[ProjectFolder], root_id: str) -> List[str]:
    children: Dict[str, List[str]] = {}
    for row in rows:
        if row.parent_id:
            children.setdefault(row.parent_id, []).append(row.id)

    output: List[str] = []
    stack = [root_id]
    while stack:
        current = stack.pop()
        output.append(current)
        stack.extend(children.get(current, []))
    return output


async def delete_user_folder(
    db: Session, store, ctx: TenantContext, folder_id: str
) -> List[str]:
    folder = get_scoped_folder(db, ctx, folder_id)
    if folder.is_system:
        raise InvalidRequest("System folders cannot be deleted")

    project_folders = (
        db.query(ProjectFolder)
        .filter(
            ProjectFolder.project_id == folder.project_id,
            ProjectFolder.is_deleted == False,
        )
        .all()
    )
    folder_ids = _subtree_ids(project_folders, folder.id)

    files: List[Upload] = []
    for sub_id in folder_ids:
        query = db.query(Upload).filter(
            Upload.status != UploadStatus.DELETED,
            Upload.storage_key.startswith(folder_prefix(ctx.namespace, sub_id), autoescape=True),
        )
        files.extend(ctx.scope_uploads(query).all())

    for row in project_folders:
        if row.id in folder_ids:
            row.is_deleted = True
    for file in files:
        file.status = UploadStatus.DELETED
    db.commit()
    logger.info(
        f"Deleted folder {folder.id} ({len(folder_ids)} folders, {len(files)} files)"
    )

    for file in files:
        await delete_object_best_effort(db, store, file.storage_key, "folder-delete")
    return folder_ids
