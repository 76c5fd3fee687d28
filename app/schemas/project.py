from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List
from datetime import datetime

from app.schemas.folder import FolderResponse


class ProjectCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1, max_length=255, description="The name of the project")
    description: Optional[str] = Field(None, description="Project description")


class ProjectResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str = Field(..., description="Project unique ID")
    name: str = Field(..., description="Project name")
    description: Optional[str] = Field(None, description="Project description")
    status: str = Field(..., description="Project status")
    org_id: Optional[str] = Field(None, description="Owning organization, if any")
    created_by: str = Field(..., description="ID of the user who created the project")
    created_at: Optional[datetime] = Field(None, description="Timestamp when the project was created")


class ProjectCreateResponse(BaseModel):
    project: ProjectResponse
    folders: List[FolderResponse]


class ProjectListResponse(BaseModel):
    projects: List[ProjectResponse] = Field(..., description="Projects visible to the caller")


class ProvisionResponse(BaseModel):
    ok: bool = True
    folders: List[FolderResponse]
