from sqlalchemy import Column, String, BigInteger, DateTime, ForeignKey
from app.core.database import Base, generate_uuid, utcnow


class UploadStatus:
    PENDING = "pending"
    ACTIVE = "active"
    DELETED = "deleted"


class Upload(Base):
    __tablename__ = "slatedrop_uploads"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    file_name = Column(String(255), nullable=False)
    file_size = Column(BigInteger, nullable=True)
    file_type = Column(String(32), nullable=True)
    content_type = Column(String(255), nullable=True)
    storage_key = Column(String(1024), nullable=False, index=True)
    namespace = Column(String(36), nullable=False, index=True)
    folder_id = Column(String(36), ForeignKey("project_folders.id"), nullable=True)
    project_id = Column(String(36), ForeignKey("projects.id"), nullable=True)
    org_id = Column(String(36), ForeignKey("organizations.id"), nullable=True, index=True)
    uploaded_by = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    status = Column(String(32), nullable=False, default=UploadStatus.PENDING)
    upload_expires_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
