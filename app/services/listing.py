import logging
from typing import Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models.folder import ProjectFolder
from app.models.upload import Upload, UploadStatus
from app.services.folders import folder_files_filter, get_scoped_folder
from app.services.projects import get_scoped_project
from app.services.tenant import TenantContext

logger = logging.getLogger(__name__)

# extension allowlists used by the viewers
FILE_TYPE_PRESETS = {
    "photos": {"jpg", "jpeg", "png", "gif", "webp", "heic", "heif", "tif", "tiff", "bmp"},
    "drawings": {"pdf", "dwg", "dxf", "dwf", "dgn", "rvt", "ifc", "png", "jpg", "jpeg", "tif", "tiff"},
}


def _status_filter(query, include_pending: bool):
    if include_pending:
        return query.filter(Upload.status != UploadStatus.DELETED)
    return query.filter(Upload.status == UploadStatus.ACTIVE)


def _order(query, order: str):
    if order == "recent":
        return query.order_by(Upload.created_at.desc(), Upload.id.asc())
    return query.order_by(func.lower(Upload.file_name).asc(), Upload.id.asc())


def list_folder_files(
    db: Session,
    ctx: TenantContext,
    folder_id: str,
    include_pending: bool = False,
    file_types: Optional[Iterable[str]] = None,
    order: str = "name",
    limit: Optional[int] = None,
    offset: int = 0,
) -> List[Upload]:
    """Files stored under a folder's key prefixes, within the caller's scope.

    A folder the caller cannot see raises instead of returning an empty list.
    """
    folder = get_scoped_folder(db, ctx, folder_id)
    query = db.query(Upload).filter(folder_files_filter(db, folder, ctx.namespace))
    query = _status_filter(ctx.scope_uploads(query), include_pending)
    if file_types:
        query = query.filter(Upload.file_type.in_(sorted({t.lower() for t in file_types})))

    query = _order(query, order)
    if offset:
        query = query.offset(offset)
    if limit is not None:
        query = query.limit(limit)
    return query.all()


def list_recent_project_files(
    db: Session,
    ctx: TenantContext,
    project_id: str,
    limit: int = 20,
    file_types: Optional[Iterable[str]] = None,
) -> List[Upload]:
    project = get_scoped_project(db, ctx, project_id)
    folders = ctx.scope_folders(
        db.query(ProjectFolder).filter(
            ProjectFolder.project_id == project.id,
            ProjectFolder.is_deleted == False,
        )
    ).all()

    seen = {}
    for folder in folders:
        query = db.query(Upload).filter(folder_files_filter(db, folder, ctx.namespace))
        query = _status_filter(ctx.scope_uploads(query), include_pending=False)
        if file_types:
            query = query.filter(Upload.file_type.in_(sorted({t.lower() for t in file_types})))
        for row in _order(query, "recent").limit(limit).all():
            seen[row.id] = row

    rows = sorted(seen.values(), key=lambda row: row.id)
    rows.sort(key=lambda row: row.created_at, reverse=True)
    return rows[:limit]
