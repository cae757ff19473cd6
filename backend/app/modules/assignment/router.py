"""API router for file assignment."""

from typing import Annotated, Union

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.cache import ResponseCache, get_response_cache
from app.core.database import get_session
from app.modules.admin.middleware import (
    AdminIdentity,
    verify_admin_access,
    verify_background_token,
)
from app.modules.assignment.errors import (
    AgentNotFoundError,
    AssignmentError,
    DocumentFileNotFoundError,
    InvalidArgumentError,
    NoEligibleAgentsError,
    PartialWriteFailureError,
    StoreUnavailableError,
)
from app.modules.assignment.schemas import (
    AssignmentStatsResponse,
    AutoAssignRequest,
    BulkAssignmentResult,
    ManualAssignRequest,
    UnassignResponse,
)
from app.modules.assignment.service import AssignmentService

router = APIRouter(prefix="/admin/assign", tags=["assignment"])

_STATUS_BY_ERROR = (
    (InvalidArgumentError, status.HTTP_400_BAD_REQUEST),
    (NoEligibleAgentsError, status.HTTP_409_CONFLICT),
    (AgentNotFoundError, status.HTTP_404_NOT_FOUND),
    (DocumentFileNotFoundError, status.HTTP_404_NOT_FOUND),
    (StoreUnavailableError, status.HTTP_503_SERVICE_UNAVAILABLE),
)


async def get_assignment_service(
    session: Annotated[AsyncSession, Depends(get_session)],
    cache: Annotated[ResponseCache, Depends(get_response_cache)],
) -> AssignmentService:
    """Dependency to get AssignmentService instance."""
    return AssignmentService(session, cache)


def to_http_error(error: AssignmentError) -> HTTPException:
    """Map an assignment error to its HTTP status."""
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return HTTPException(status_code=status_code, detail=str(error))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(error))


def partial_write_response(error: PartialWriteFailureError) -> JSONResponse:
    """207 carrying exactly which files moved and which did not."""
    if error.result is not None:
        content = error.result.model_dump(mode="json")
    else:
        content = {
            "success": False,
            "message": str(error),
            "assigned_file_ids": error.assigned_file_ids,
            "failed_file_ids": error.failed_file_ids,
        }
    return JSONResponse(status_code=status.HTTP_207_MULTI_STATUS, content=content)


@router.get(
    "/stats",
    response_model=AssignmentStatsResponse,
    summary="Assignment statistics",
    description="File assignment totals and per-agent workload. Cached for two minutes.",
)
async def get_assignment_stats(
    admin: Annotated[AdminIdentity, Depends(verify_admin_access)],
    service: Annotated[AssignmentService, Depends(get_assignment_service)],
) -> AssignmentStatsResponse:
    """Get assignment statistics for the dashboard."""
    try:
        return await service.get_assignment_stats()
    except AssignmentError as e:
        raise to_http_error(e)


@router.post(
    "/auto",
    response_model=BulkAssignmentResult,
    summary="Auto-assign files",
    description="Spread files across active agents, least loaded first or round robin.",
    responses={207: {"model": BulkAssignmentResult, "description": "Some batches failed"}},
)
async def auto_assign(
    request: AutoAssignRequest,
    admin: Annotated[AdminIdentity, Depends(verify_admin_access)],
    service: Annotated[AssignmentService, Depends(get_assignment_service)],
) -> Union[BulkAssignmentResult, JSONResponse]:
    """Auto-assign the selected files."""
    try:
        return await service.auto_assign(admin, request.file_ids, request.strategy)
    except PartialWriteFailureError as e:
        return partial_write_response(e)
    except AssignmentError as e:
        raise to_http_error(e)


@router.post(
    "/manual",
    response_model=BulkAssignmentResult,
    summary="Assign files to an agent",
    description="Assign every selected file to one agent.",
    responses={207: {"model": BulkAssignmentResult, "description": "Some batches failed"}},
)
async def assign_to_agent(
    request: ManualAssignRequest,
    admin: Annotated[AdminIdentity, Depends(verify_admin_access)],
    service: Annotated[AssignmentService, Depends(get_assignment_service)],
) -> Union[BulkAssignmentResult, JSONResponse]:
    """Manually assign files."""
    try:
        return await service.assign_to_agent(admin, request.file_ids, request.agent_id)
    except PartialWriteFailureError as e:
        return partial_write_response(e)
    except AssignmentError as e:
        raise to_http_error(e)


@router.delete(
    "/{file_id}",
    response_model=UnassignResponse,
    summary="Unassign a file",
    description="Clear a file's assignee. Files still awaiting work return to paid.",
)
async def unassign_file(
    file_id: str,
    admin: Annotated[AdminIdentity, Depends(verify_admin_access)],
    service: Annotated[AssignmentService, Depends(get_assignment_service)],
) -> UnassignResponse:
    """Unassign a file."""
    try:
        return await service.unassign_file(admin, file_id)
    except AssignmentError as e:
        raise to_http_error(e)


@router.post(
    "/unassigned",
    response_model=BulkAssignmentResult,
    summary="Assign waiting paid files",
    description="Auto-assign every paid file that has no agent yet.",
    responses={207: {"model": BulkAssignmentResult, "description": "Some batches failed"}},
)
async def assign_unassigned_paid_files(
    admin: Annotated[AdminIdentity, Depends(verify_admin_access)],
    service: Annotated[AssignmentService, Depends(get_assignment_service)],
) -> Union[BulkAssignmentResult, JSONResponse]:
    """Run the unassigned paid file sweep now."""
    try:
        return await service.assign_unassigned_paid_files(admin)
    except PartialWriteFailureError as e:
        return partial_write_response(e)
    except AssignmentError as e:
        raise to_http_error(e)


@router.post(
    "/background",
    response_model=BulkAssignmentResult,
    summary="Background assignment sweep",
    description="Cron entry point for the sweep. Requires the background assignment token.",
    responses={207: {"model": BulkAssignmentResult, "description": "Some batches failed"}},
)
async def background_assignment(
    system: Annotated[AdminIdentity, Depends(verify_background_token)],
    service: Annotated[AssignmentService, Depends(get_assignment_service)],
) -> Union[BulkAssignmentResult, JSONResponse]:
    """Run the sweep as the background service."""
    try:
        return await service.assign_unassigned_paid_files(system)
    except PartialWriteFailureError as e:
        return partial_write_response(e)
    except AssignmentError as e:
        raise to_http_error(e)
