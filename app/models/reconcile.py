from sqlalchemy import Column, Integer, String, Text, DateTime
from app.core.database import Base, generate_uuid, utcnow


class ReconcileStatus:
    OPEN = "open"
    RESOLVED = "resolved"
    DEAD = "dead"


class StorageReconcileEntry(Base):
    """An object key whose removal from the object store is still owed."""

    __tablename__ = "storage_reconcile_queue"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    storage_key = Column(String(1024), nullable=False, index=True)
    reason = Column(String(64), nullable=False)
    status = Column(String(16), nullable=False, default=ReconcileStatus.OPEN)
    attempts = Column(Integer, nullable=False, default=0)
    last_error = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
