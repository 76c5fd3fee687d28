import logging
import secrets
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from app.core.exceptions import NotFound, TokenExpiredOrInvalid
from app.models.external_link import ProjectExternalLink
from app.models.folder import ProjectFolder
from app.models.project import Project
from app.services.folders import get_scoped_folder
from app.services.reconcile import as_utc
from app.services.tenant import TenantContext, build_tenant_context

logger = logging.getLogger(__name__)


def make_token() -> str:
    return secrets.token_hex(24)


def create_request_link(
    db: Session,
    ctx: TenantContext,
    project_id: str,
    folder_id: str,
    expires_at: Optional[datetime] = None,
) -> ProjectExternalLink:
    folder = get_scoped_folder(db, ctx, folder_id)
    if folder.project_id != project_id:
        raise NotFound("Folder not found")

    link = ProjectExternalLink(
        project_id=project_id,
        folder_id=folder.id,
        token=make_token(),
        created_by=ctx.user_id,
        expires_at=expires_at,
    )
    db.add(link)
    db.commit()
    db.refresh(link)
    logger.info(f"User {ctx.user_id} created request link for folder {folder.id}")
    return link


def resolve_link(
    db: Session, token: str, now: Optional[datetime] = None
) -> tuple[ProjectExternalLink, TenantContext]:
    """Validate an external upload token and build the tenant it acts for.

    The token acts as the link creator inside the project's organization,
    and only for the link's folder.
    """
    now = now or datetime.now(timezone.utc)
    link = (
        db.query(ProjectExternalLink)
        .filter(ProjectExternalLink.token == token)
        .first()
    )
    if not link:
        raise TokenExpiredOrInvalid("Invalid upload token")

    expires_at = as_utc(link.expires_at)
    if expires_at is not None and expires_at < now:
        raise TokenExpiredOrInvalid("Upload token expired")

    project = db.query(Project).filter(Project.id == link.project_id).first()
    folder = (
        db.query(ProjectFolder)
        .filter(
            ProjectFolder.id == link.folder_id,
            ProjectFolder.project_id == link.project_id,
            ProjectFolder.is_deleted == False,
        )
        .first()
    )
    if not project or project.status == "deleted" or not folder:
        raise TokenExpiredOrInvalid("Upload link target no longer exists")

    return link, build_tenant_context(link.created_by, project.org_id)
