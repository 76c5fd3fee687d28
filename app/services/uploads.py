"""Two-phase interactive upload.

Phase one reserves a key and a ``pending`` row and hands the client a signed
upload URL; the bytes go straight to the object store. Phase two flips the
row to ``active``. Pending rows are never listed.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import (
    InvalidRequest,
    NotFound,
    ScopeViolation,
    StorageError,
    TokenExpiredOrInvalid,
)
from app.models.external_link import ProjectExternalLink
from app.models.folder import ProjectFolder
from app.models.upload import Upload, UploadStatus
from app.services.folders import get_scoped_folder
from app.services.tenant import TenantContext
from app.utils.storage_keys import build_storage_key, file_extension, folder_prefix

logger = logging.getLogger(__name__)


@dataclass
class UploadSlot:
    upload_url: str
    file_id: str
    storage_key: str
    expires_at: datetime


async def request_upload_slot(
    db: Session,
    store,
    ctx: TenantContext,
    folder: ProjectFolder,
    filename: str,
    content_type: str,
    size: Optional[int],
) -> UploadSlot:
    if not folder.allow_upload:
        raise InvalidRequest("Uploads are disabled for this folder")

    storage_key = build_storage_key(ctx.namespace, folder.id, filename)
    upload_url = await store.signed_upload_url(storage_key)
    expires_at = datetime.now(timezone.utc) + timedelta(
        seconds=settings.upload_url_ttl_seconds
    )

    upload = Upload(
        file_name=filename,
        file_size=size,
        file_type=file_extension(filename),
        content_type=content_type,
        storage_key=storage_key,
        namespace=ctx.namespace,
        folder_id=folder.id,
        project_id=folder.project_id,
        org_id=ctx.org_id,
        uploaded_by=ctx.user_id,
        status=UploadStatus.PENDING,
        upload_expires_at=expires_at,
    )
    try:
        db.add(upload)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to reserve upload at {storage_key}: {e}")
        raise StorageError("Failed to record upload")
    db.refresh(upload)

    logger.info(f"Reserved upload {upload.id} at {storage_key}")
    return UploadSlot(
        upload_url=upload_url,
        file_id=upload.id,
        storage_key=storage_key,
        expires_at=expires_at,
    )


async def request_session_upload_slot(
    db: Session,
    store,
    ctx: TenantContext,
    folder_id: str,
    filename: str,
    content_type: str,
    size: Optional[int],
) -> UploadSlot:
    folder = get_scoped_folder(db, ctx, folder_id)
    return await request_upload_slot(db, store, ctx, folder, filename, content_type, size)


def _activate(db: Session, upload: Upload) -> Upload:
    if upload.status == UploadStatus.PENDING:
        upload_id = upload.id
        upload.status = UploadStatus.ACTIVE
        try:
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to complete upload {upload_id}: {e}")
            raise StorageError("Failed to complete upload")
        db.refresh(upload)
        logger.info(f"Upload {upload.id} completed")
    return upload


def complete_upload(db: Session, ctx: TenantContext, file_id: str) -> Upload:
    upload = db.query(Upload).filter(Upload.id == file_id).first()
    if not upload or upload.status == UploadStatus.DELETED:
        raise NotFound("File not found")
    if not ctx.owns_upload(upload):
        raise ScopeViolation("File is outside your workspace")
    return _activate(db, upload)


def complete_link_upload(
    db: Session, link: ProjectExternalLink, ctx: TenantContext, file_id: str
) -> Upload:
    """Complete an upload on behalf of an external link.

    The row must sit under the link folder's prefix in the link's namespace;
    anything else is reported as an invalid token.
    """
    upload = db.query(Upload).filter(Upload.id == file_id).first()
    if not upload or upload.status == UploadStatus.DELETED:
        raise NotFound("File not found")

    allowed_prefix = folder_prefix(ctx.namespace, link.folder_id)
    if not upload.storage_key.startswith(allowed_prefix) or not ctx.owns_upload(upload):
        logger.warning(f"Link {link.id} tried to complete foreign upload {file_id}")
        raise TokenExpiredOrInvalid("Upload is not covered by this link")
    return _activate(db, upload)
