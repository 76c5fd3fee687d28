from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class RequestLinkCreate(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    project_id: str = Field(..., alias="projectId")
    folder_id: str = Field(..., alias="folderId")
    expires_at: Optional[datetime] = Field(None, alias="expiresAt")


class RequestLinkResponse(BaseModel):
    ok: bool = True
    token: str
    url: str
    expires_at: Optional[datetime] = None
