import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import ProvisioningFailed
from app.models.folder import ProjectFolder

logger = logging.getLogger(__name__)

PROJECT_ROOT_PATH = "Project Sandbox"

SYSTEM_FOLDERS = [
    "Documents",
    "Drawings",
    "Photos",
    "3D Models",
    "360 Tours",
    "RFIs",
    "Submittals",
    "Schedule",
    "Budget",
    "Reports",
    "Safety",
    "Correspondence",
    "Closeout",
    "Daily Logs",
    "Misc",
]


def folder_type_for(name: str) -> str:
    return "_".join(name.lower().split())


def project_root_path(project_name: str) -> str:
    return f"{PROJECT_ROOT_PATH}/{project_name}"


def system_folders_for(db: Session, project_id: str) -> List[ProjectFolder]:
    return (
        db.query(ProjectFolder)
        .filter(
            ProjectFolder.project_id == project_id,
            ProjectFolder.is_system == True,
            ProjectFolder.is_deleted == False,
        )
        .order_by(ProjectFolder.sort_order.asc())
        .all()
    )


def provision_project_folders(
    db: Session,
    project_id: str,
    project_name: str,
    org_id: Optional[str],
    user_id: str,
) -> List[ProjectFolder]:
    """Create the fixed folder taxonomy for a project.

    The batch is all-or-nothing: on any database error it is rolled back and
    ``ProvisioningFailed`` is raised, and the caller must undo the project.
    A project that already has folders is left as is.
    """
    existing = (
        db.query(ProjectFolder.id)
        .filter(ProjectFolder.project_id == project_id)
        .first()
    )
    if existing:
        logger.info(f"Project {project_id} already provisioned, skipping")
        return system_folders_for(db, project_id)

    root = project_root_path(project_name)
    rows = [
        ProjectFolder(
            project_id=project_id,
            parent_id=None,
            name=name,
            folder_path=f"{root}/{name}",
            folder_type=folder_type_for(name),
            is_system=True,
            sort_order=position,
            is_public=False,
            allow_upload=True,
            org_id=org_id,
            created_by=user_id,
        )
        for position, name in enumerate(SYSTEM_FOLDERS)
    ]

    try:
        db.add_all(rows)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"project_folders insert failed for project {project_id}: {e}")
        raise ProvisioningFailed(f"Folder provisioning failed: {e.__class__.__name__}")

    for row in rows:
        db.refresh(row)
    logger.info(f"Provisioned {len(rows)} system folders for project {project_id}")
    return rows
