from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List
from datetime import datetime


class CreateFolderRequest(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    project_id: str = Field(..., alias="projectId", description="The project id")
    name: str = Field(..., min_length=1, description="The name of the folder")
    parent_id: Optional[str] = Field(
        None, alias="parentFolderId", description="The parent folder id"
    )


class RenameFolderRequest(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    new_name: str = Field(..., alias="newName", min_length=1, description="New folder name")


class FolderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str = Field(..., description="The id of the folder")
    project_id: str = Field(..., description="The project id")
    parent_id: Optional[str] = Field(None, description="The parent folder id")
    name: str = Field(..., description="The name of the folder")
    folder_path: str = Field(..., description="Human readable path of the folder")
    folder_type: str = Field(..., description="System folder type or 'custom'")
    is_system: bool = Field(..., description="Whether the folder belongs to the fixed taxonomy")
    sort_order: int = Field(..., description="Position in the taxonomy")
    created_by: str = Field(..., description="The user id who created the folder")
    created_at: Optional[datetime] = Field(None, description="The creation time of the folder")


class FolderListResponse(BaseModel):
    folders: List[FolderResponse]


class DeleteFolderResponse(BaseModel):
    ok: bool = True
    deleted_folder_ids: List[str]
