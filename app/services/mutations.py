import logging
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import InvalidRequest, NotFound, ScopeViolation, StorageError
from app.models.upload import Upload, UploadStatus
from app.services.folders import get_scoped_folder
from app.services.reconcile import delete_object_best_effort
from app.services.tenant import TenantContext
from app.utils.storage_keys import build_storage_key, folder_prefix

logger = logging.getLogger(__name__)


@dataclass
class MoveResult:
    upload: Upload
    old_key: str
    new_key: str
    moved: bool


def get_scoped_upload(
    db: Session, ctx: TenantContext, file_id: str, include_deleted: bool = False
) -> Upload:
    upload = db.query(Upload).filter(Upload.id == file_id).first()
    if not upload:
        raise NotFound("File not found")
    if not ctx.owns_upload(upload):
        logger.warning(f"User {ctx.user_id} denied access to file {file_id}")
        raise ScopeViolation("File is outside your workspace")
    if upload.status == UploadStatus.DELETED and not include_deleted:
        raise NotFound("File not found")
    return upload


def rename_file(db: Session, ctx: TenantContext, file_id: str, new_name: str) -> Upload:
    new_name = (new_name or "").strip()
    if not new_name:
        raise InvalidRequest("newName is required")
    if "/" in new_name or "\\" in new_name:
        raise InvalidRequest("File names cannot contain path separators")

    upload = get_scoped_upload(db, ctx, file_id)
    # display name only; the key was fixed at upload time
    upload.file_name = new_name
    db.commit()
    db.refresh(upload)
    return upload


async def move_file(
    db: Session, store, ctx: TenantContext, file_id: str, dest_folder_id: str
) -> MoveResult:
    """Move a file to another folder.

    Order: copy to the new key, point metadata at it, then drop the old
    object. Metadata never references a key that was already removed.
    """
    upload = get_scoped_upload(db, ctx, file_id)
    if upload.status != UploadStatus.ACTIVE:
        raise InvalidRequest("Only completed uploads can be moved")
    dest = get_scoped_folder(db, ctx, dest_folder_id)
    old_key = upload.storage_key

    if upload.folder_id == dest.id or old_key.startswith(folder_prefix(ctx.namespace, dest.id)):
        return MoveResult(upload=upload, old_key=old_key, new_key=old_key, moved=False)

    new_key = build_storage_key(ctx.namespace, dest.id, upload.file_name)
    await store.copy(old_key, new_key)

    try:
        upload.storage_key = new_key
        upload.folder_id = dest.id
        upload.project_id = dest.project_id
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Move metadata update failed for {file_id}: {e}")
        # compensate: the fresh copy is unreferenced
        await delete_object_best_effort(db, store, new_key, "move-rollback")
        raise StorageError("Failed to move file")
    db.refresh(upload)

    await delete_object_best_effort(db, store, old_key, "move-source")
    logger.info(f"Moved file {file_id} from {old_key} to {new_key}")
    return MoveResult(upload=upload, old_key=old_key, new_key=new_key, moved=True)


async def delete_file(db: Session, store, ctx: TenantContext, file_id: str) -> bool:
    """Soft-delete a file, then remove its object on a best-effort basis.

    Returns False when the file was already deleted.
    """
    upload = get_scoped_upload(db, ctx, file_id, include_deleted=True)
    if upload.status == UploadStatus.DELETED:
        return False

    upload.status = UploadStatus.DELETED
    db.commit()

    await delete_object_best_effort(db, store, upload.storage_key, "file-delete")
    return True


async def download_url(db: Session, store, ctx: TenantContext, file_id: str) -> str:
    upload = get_scoped_upload(db, ctx, file_id)
    if upload.status != UploadStatus.ACTIVE:
        raise NotFound("File not found")
    return await store.signed_get_url(
        upload.storage_key,
        settings.download_url_ttl_seconds,
        download_name=upload.file_name,
    )

