import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from app.core.exceptions import NotFound, ProvisioningFailed
from app.models.folder import ProjectFolder
from app.models.project import Project
from app.services.provisioning import provision_project_folders
from app.services.tenant import TenantContext

logger = logging.getLogger(__name__)


def get_scoped_project(db: Session, ctx: TenantContext, project_id: str) -> Project:
    query = db.query(Project).filter(
        Project.id == project_id,
        Project.status != "deleted",
    )
    project = ctx.scope_projects(query).first()
    if not project:
        raise NotFound("Project not found")
    return project


def list_scoped_projects(db: Session, ctx: TenantContext) -> List[Project]:
    query = db.query(Project).filter(Project.status != "deleted")
    return (
        ctx.scope_projects(query)
        .order_by(Project.created_at.desc(), Project.id.asc())
        .all()
    )


def create_project_with_folders(
    db: Session,
    ctx: TenantContext,
    name: str,
    description: Optional[str] = None,
) -> tuple[Project, List[ProjectFolder]]:
    project = Project(
        name=name,
        description=description,
        org_id=ctx.org_id,
        created_by=ctx.user_id,
    )
    db.add(project)
    db.commit()
    db.refresh(project)

    try:
        folders = provision_project_folders(
            db, project.id, project.name, ctx.org_id, ctx.user_id
        )
    except ProvisioningFailed:
        # no project may exist without its folder taxonomy
        logger.error(f"Rolling back project {project.id} after provisioning failure")
        db.query(ProjectFolder).filter(ProjectFolder.project_id == project.id).delete(
            synchronize_session=False
        )
        db.delete(project)
        db.commit()
        raise

    return project, folders
