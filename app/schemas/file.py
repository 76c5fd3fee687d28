from typing import Optional, List
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field


class UploadUrlRequest(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    filename: str = Field(..., min_length=1, max_length=255, description="Original file name")
    content_type: str = Field(..., alias="contentType", min_length=1, description="MIME type")
    size: Optional[int] = Field(None, ge=0, description="Size in bytes")
    folder_id: str = Field(..., alias="folderId", description="Destination folder id")
    folder_path: Optional[str] = Field(None, alias="folderPath", description="Display path of the folder")


class PublicUploadUrlRequest(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    filename: str = Field(..., min_length=1, max_length=255)
    content_type: str = Field(..., alias="contentType", min_length=1)
    size: Optional[int] = Field(None, ge=0)


class UploadUrlResponse(BaseModel):
    upload_url: str = Field(..., description="Signed URL the client uploads to")
    file_id: str = Field(..., description="Pending file record id")
    storage_key: str = Field(..., description="Reserved object key")
    expires_at: datetime = Field(..., description="When the upload window closes")


class CompleteUploadRequest(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    file_id: str = Field(..., alias="fileId")


class RenameFileRequest(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    file_id: str = Field(..., alias="fileId")
    new_name: str = Field(..., alias="newName", min_length=1, max_length=255)


class MoveFileRequest(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    file_id: str = Field(..., alias="fileId")
    new_folder_id: str = Field(..., alias="newFolderId")


class DeleteFileRequest(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    file_id: str = Field(..., alias="fileId")


class ZipRequest(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    folder_id: str = Field(..., alias="folderId")


class FileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str = Field(..., description="Unique identifier of the file")
    file_name: str = Field(..., description="Display name, as uploaded or renamed")
    file_size: Optional[int] = Field(None, description="Size in bytes")
    file_type: Optional[str] = Field(None, description="Lower-case extension")
    content_type: Optional[str] = Field(None, description="MIME type")
    storage_key: str = Field(..., description="Object store key")
    folder_id: Optional[str] = Field(None, description="Folder the file was stored in")
    project_id: Optional[str] = Field(None, description="Owning project")
    uploaded_by: str = Field(..., description="Uploader id")
    status: str = Field(..., description="pending, active or deleted")
    created_at: Optional[datetime] = Field(None, description="Timestamp when the file was created")


class FileListResponse(BaseModel):
    files: List[FileResponse]


class MoveFileResponse(BaseModel):
    ok: bool = True
    file_id: str
    new_key: str
    moved: bool


class DeleteFileResponse(BaseModel):
    ok: bool = True
    already_deleted: bool = False


class DownloadResponse(BaseModel):
    url: str


class ArtifactResponse(BaseModel):
    upload: FileResponse
    folder_name: str
    storage_key: str
