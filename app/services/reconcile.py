"""Reconciliation between metadata and the object store.

Metadata is authoritative. When an object delete fails after the metadata
already moved on, the key is written to ``storage_reconcile_queue`` and
retried later by ``drain_reconcile_queue``.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import ObjectStoreFailure
from app.models.reconcile import ReconcileStatus, StorageReconcileEntry
from app.models.upload import Upload, UploadStatus

logger = logging.getLogger(__name__)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def enqueue_orphan(db: Session, storage_key: str, reason: str, error: str = "") -> None:
    try:
        db.add(
            StorageReconcileEntry(
                storage_key=storage_key,
                reason=reason,
                last_error=error or None,
            )
        )
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        # last resort: the key is at least in the logs
        logger.error(f"Could not queue orphaned object {storage_key} ({reason}): {e}")
        return
    logger.warning(f"Queued orphaned object {storage_key} for reconciliation ({reason})")


async def delete_object_best_effort(db: Session, store, storage_key: str, reason: str) -> bool:
    """Delete an object whose metadata is already consistent.

    Failures are logged and queued, never raised.
    """
    try:
        await store.delete(storage_key)
        return True
    except ObjectStoreFailure as e:
        logger.warning(f"Best-effort delete failed for {storage_key}: {e.detail}")
        enqueue_orphan(db, storage_key, reason, e.detail)
        return False


async def drain_reconcile_queue(db: Session, store, limit: int = 100) -> dict:
    entries = (
        db.query(StorageReconcileEntry)
        .filter(StorageReconcileEntry.status == ReconcileStatus.OPEN)
        .order_by(StorageReconcileEntry.created_at.asc(), StorageReconcileEntry.id.asc())
        .limit(limit)
        .all()
    )

    resolved = failed = dead = 0
    for entry in entries:
        # a key that active metadata points at again must not be deleted
        still_referenced = (
            db.query(Upload.id)
            .filter(
                Upload.storage_key == entry.storage_key,
                Upload.status != UploadStatus.DELETED,
            )
            .first()
        )
        if still_referenced:
            entry.status = ReconcileStatus.RESOLVED
            resolved += 1
            continue

        entry.attempts += 1
        try:
            await store.delete(entry.storage_key)
            entry.status = ReconcileStatus.RESOLVED
            entry.last_error = None
            resolved += 1
        except ObjectStoreFailure as e:
            entry.last_error = e.detail
            if entry.attempts >= settings.reconcile_max_attempts:
                entry.status = ReconcileStatus.DEAD
                dead += 1
                logger.error(
                    f"Giving up on orphaned object {entry.storage_key} after {entry.attempts} attempts"
                )
            else:
                failed += 1
    db.commit()

    return {"resolved": resolved, "failed": failed, "dead": dead}


async def expire_pending_uploads(
    db: Session, store, now: Optional[datetime] = None
) -> int:
    """Retire pending rows whose upload window closed long ago."""
    now = now or datetime.now(timezone.utc)
    cutoff = now - timedelta(minutes=settings.pending_upload_grace_minutes)

    pending = (
        db.query(Upload)
        .filter(Upload.status == UploadStatus.PENDING)
        .order_by(Upload.created_at.asc())
        .all()
    )
    stale = [
        row
        for row in pending
        if (as_utc(row.upload_expires_at) or as_utc(row.created_at)) < cutoff
    ]
    if not stale:
        return 0

    for row in stale:
        row.status = UploadStatus.DELETED
    db.commit()
    logger.info(f"Expired {len(stale)} abandoned pending uploads")

    # the client may have written bytes without ever completing
    for row in stale:
        await delete_object_best_effort(db, store, row.storage_key, "pending-expired")
    return len(stale)
