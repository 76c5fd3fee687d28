from sqlalchemy import Column, String, DateTime, ForeignKey
from app.core.database import Base, generate_uuid, utcnow


class ProjectExternalLink(Base):
    __tablename__ = "project_external_links"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    project_id = Column(String(36), ForeignKey("projects.id"), nullable=False)
    folder_id = Column(String(36), ForeignKey("project_folders.id"), nullable=False)
    token = Column(String(96), unique=True, index=True, nullable=False)
    created_by = Column(String(36), ForeignKey("users.id"), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
