import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.folder import ProjectFolder
from app.models.organization import OrganizationMember
from app.models.project import Project
from app.models.upload import Upload
from app.models.user import User
from app.utils.storage_keys import (
    NAMESPACE_SENTINELS,
    namespace_prefix,
    resolve_namespace,
)

logger = logging.getLogger(__name__)

ROLE_RANK = {"owner": 0, "admin": 1}


@dataclass(frozen=True)
class TenantContext:
    """Resolved tenant for one request.

    Built once per request and passed to every storage call; components
    never look up membership themselves.
    """

    user_id: str
    org_id: Optional[str]
    namespace: str
    role: Optional[str] = None

    @property
    def is_org(self) -> bool:
        return self.org_id is not None

    def scope_uploads(self, query):
        query = query.filter(Upload.namespace == self.namespace)
        if self.is_org:
            return query.filter(Upload.org_id == self.org_id)
        return query.filter(Upload.uploaded_by == self.user_id)

    def scope_folders(self, query):
        if self.is_org:
            return query.filter(ProjectFolder.org_id == self.org_id)
        return query.filter(ProjectFolder.created_by == self.user_id)

    def scope_projects(self, query):
        if self.is_org:
            return query.filter(
                or_(Project.org_id == self.org_id, Project.created_by == self.user_id)
            )
        return query.filter(Project.created_by == self.user_id)

    def owns_upload(self, upload: Upload) -> bool:
        if upload.namespace != self.namespace:
            return False
        if not upload.storage_key.startswith(namespace_prefix(self.namespace)):
            return False
        if self.is_org:
            return upload.org_id == self.org_id
        return upload.uploaded_by == self.user_id

    def owns_folder(self, folder: ProjectFolder) -> bool:
        if self.is_org:
            return folder.org_id == self.org_id
        return folder.created_by == self.user_id


def _normalize_org(org_id: Optional[str]) -> Optional[str]:
    if not org_id or org_id in NAMESPACE_SENTINELS:
        return None
    return org_id


def build_tenant_context(
    user_id: str, org_id: Optional[str], role: Optional[str] = None
) -> TenantContext:
    org_id = _normalize_org(org_id)
    return TenantContext(
        user_id=user_id,
        org_id=org_id,
        namespace=resolve_namespace(org_id, user_id),
        role=role,
    )


def resolve_tenant_context(db: Session, user: User) -> TenantContext:
    """Pick the caller's organization, falling back to solo on any lookup error."""
    try:
        memberships = (
            db.query(OrganizationMember)
            .filter(OrganizationMember.user_id == user.id)
            .order_by(OrganizationMember.created_at.desc())
            .all()
        )
    except SQLAlchemyError as e:
        logger.warning(f"Membership lookup failed for user {user.id}, treating as solo: {e}")
        db.rollback()
        return build_tenant_context(user.id, None)

    if not memberships:
        return build_tenant_context(user.id, None)

    # stable sort keeps newest-first order within the same role
    selected = sorted(memberships, key=lambda m: ROLE_RANK.get((m.role or "").lower(), 2))[0]
    return build_tenant_context(user.id, selected.org_id, selected.role)
