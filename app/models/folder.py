from sqlalchemy import (
    Column,
    Integer,
    String,
    Boolean,
    DateTime,
    ForeignKey,
)
from app.core.database import Base, generate_uuid, utcnow


class ProjectFolder(Base):
    __tablename__ = "project_folders"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    project_id = Column(String(36), ForeignKey("projects.id"), nullable=False, index=True)
    parent_id = Column(String(36), ForeignKey("project_folders.id"), nullable=True)
    name = Column(String(255), nullable=False)
    folder_path = Column(String(1024), nullable=False)
    folder_type = Column(String(64), nullable=False, default="custom")
    is_system = Column(Boolean, default=False, nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)
    is_public = Column(Boolean, default=False, nullable=False)
    allow_upload = Column(Boolean, default=True, nullable=False)
    is_deleted = Column(Boolean, default=False, nullable=False)
    org_id = Column(String(36), ForeignKey("organizations.id"), nullable=True, index=True)
    created_by = Column(String(36), ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

