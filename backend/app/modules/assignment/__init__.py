"""Assignment module: workload-balanced distribution of files to agents."""

from app.modules.assignment.engine import (
    AgentWorkload,
    AssignmentPlan,
    AssignmentStrategy,
    plan_assignments,
)
from app.modules.assignment.errors import (
    AssignmentError,
    InvalidArgumentError,
    NoEligibleAgentsError,
    PartialWriteFailureError,
    StoreUnavailableError,
)

__all__ = [
    "AgentWorkload",
    "AssignmentPlan",
    "AssignmentStrategy",
    "plan_assignments",
    "AssignmentError",
    "InvalidArgumentError",
    "NoEligibleAgentsError",
    "PartialWriteFailureError",
    "StoreUnavailableError",
]
