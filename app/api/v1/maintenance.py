import logging
import secrets
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.database import get_db
from app.services.object_store import get_object_store
from app.services.reconcile import drain_reconcile_queue, expire_pending_uploads

logger = logging.getLogger(__name__)
router = APIRouter()


def require_maintenance_key(x_maintenance_key: Optional[str] = Header(None)):
    if not settings.maintenance_key:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Maintenance endpoints are disabled",
        )
    if not x_maintenance_key or not secrets.compare_digest(
        x_maintenance_key, settings.maintenance_key
    ):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid maintenance key",
        )


@router.post("/reconcile", dependencies=[Depends(require_maintenance_key)])
async def reconcile(
    limit: int = 100,
    db: Session = Depends(get_db),
    store=Depends(get_object_store),
):
    expired = await expire_pending_uploads(db, store)
    drained = await drain_reconcile_queue(db, store, limit=limit)
    logger.info(f"Reconcile pass: expired={expired} queue={drained}")
    return {"expired_pending": expired, "queue": drained}
