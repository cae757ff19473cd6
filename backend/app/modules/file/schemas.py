"""Pydantic schemas for the admin file listing."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from app.modules.file.models import FileStatus


class FileInfo(BaseModel):
    """File as shown in the admin listing."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: Optional[str]
    filename: str
    status: str
    assigned_agent_id: Optional[str]
    assigned_at: Optional[datetime]
    uploaded_at: Optional[datetime]
    updated_at: Optional[datetime]


class FileListResponse(BaseModel):
    """One page of files."""
    files: list[FileInfo]
    total: int
    page: int
    page_size: int
    has_more: bool


class FileListFilters(BaseModel):
    """Filters accepted by the file listing."""
    status: Optional[FileStatus] = None
    assigned_agent_id: Optional[str] = None
    user_id: Optional[str] = None
