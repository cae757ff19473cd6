"""API router for the admin file listing."""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.cache import ResponseCache, get_response_cache
from app.core.database import get_session
from app.modules.admin.middleware import AdminIdentity, verify_admin_access
from app.modules.file.models import FileStatus
from app.modules.file.schemas import FileListFilters, FileListResponse
from app.modules.file.service import FileService

router = APIRouter(prefix="/admin/files", tags=["files"])


async def get_file_service(
    session: Annotated[AsyncSession, Depends(get_session)],
    cache: Annotated[ResponseCache, Depends(get_response_cache)],
) -> FileService:
    """Dependency to get FileService instance."""
    return FileService(session, cache)


@router.get(
    "",
    response_model=FileListResponse,
    summary="List files",
    description="Paginated file listing filtered by status, assignee or owner. Cached briefly.",
)
async def list_files(
    admin: Annotated[AdminIdentity, Depends(verify_admin_access)],
    service: Annotated[FileService, Depends(get_file_service)],
    status: Optional[FileStatus] = None,
    assigned_agent_id: Optional[str] = None,
    user_id: Optional[str] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
) -> FileListResponse:
    """List files for the admin dashboard."""
    filters = FileListFilters(
        status=status,
        assigned_agent_id=assigned_agent_id,
        user_id=user_id,
    )
    return await service.list_files(filters, page=page, page_size=page_size)
