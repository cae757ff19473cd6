"""Pydantic schemas for file assignment."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from app.modules.assignment.engine import AssignmentStrategy


# Requests
class AutoAssignRequest(BaseModel):
    """Request to spread files across active agents."""
    file_ids: list[str] = Field(..., description="Files to assign, in placement order")
    strategy: AssignmentStrategy = Field(
        AssignmentStrategy.LOAD_BALANCED, description="Distribution strategy"
    )


class ManualAssignRequest(BaseModel):
    """Request to hand files to one specific agent."""
    file_ids: list[str] = Field(..., description="Files to assign")
    agent_id: str = Field(..., min_length=1, description="Receiving agent")


# Results
class AssignmentInfo(BaseModel):
    """A committed placement."""
    file_id: str
    agent_id: str
    agent_name: str
    pending_files: int
    total_workload: int


class AgentDistribution(BaseModel):
    """An agent's load after the write phase."""
    agent_id: str
    agent_name: str
    pending_files: int
    completed_files: int
    total_workload: int
    files_assigned: int


class BulkAssignmentResult(BaseModel):
    """Outcome of an assignment write phase.

    On partial success ``failed_file_ids`` lists exactly what did not land.
    """
    success: bool
    message: str
    strategy: Optional[str] = None
    planned_count: int
    assigned_count: int
    assigned_file_ids: list[str] = Field(default_factory=list)
    failed_file_ids: list[str] = Field(default_factory=list)
    assignments: list[AssignmentInfo] = Field(default_factory=list)
    distribution_summary: list[AgentDistribution] = Field(default_factory=list)


class UnassignResponse(BaseModel):
    """Result of clearing a file's assignee."""
    file_id: str
    previous_agent_id: Optional[str]
    status: str
    message: str


# Statistics
class AgentWorkloadInfo(BaseModel):
    """Per-agent workload shown on the assignment dashboard."""
    agent_id: str
    agent_name: str
    is_active: bool
    total_files: int
    pending_files: int
    completed_files: int
    total_workload: int


class AssignmentStatsResponse(BaseModel):
    """Assignment dashboard statistics."""
    total_files: int
    assigned_files: int
    unassigned_files: int
    unassigned_paid_files: int
    total_agents: int
    active_agents: int
    agent_workload: list[AgentWorkloadInfo]
    generated_at: datetime
