"""Errors raised by file assignment.

Planning errors (InvalidArgumentError, NoEligibleAgentsError) are raised
before anything is written. Write-stage errors describe how much of a plan
actually reached the store.
"""

from typing import TYPE_CHECKING, Optional, Sequence

if TYPE_CHECKING:
    from app.modules.assignment.schemas import BulkAssignmentResult


class AssignmentError(Exception):
    """Base exception for file assignment."""
    pass


class InvalidArgumentError(AssignmentError):
    """File selection is empty or malformed."""
    pass


class NoEligibleAgentsError(AssignmentError):
    """No active agent can receive work."""

    def __init__(self, message: str = "No active agents available. Activate an agent first."):
        super().__init__(message)


class AgentNotFoundError(AssignmentError):
    """Requested agent does not exist."""
    pass


class DocumentFileNotFoundError(AssignmentError):
    """Requested file does not exist."""
    pass


class StoreUnavailableError(AssignmentError):
    """The document store could not be read or written. Safe to retry."""
    pass


class PartialWriteFailureError(AssignmentError):
    """Some assignment batches committed before a later batch failed.

    Committed assignments stay in effect. Retry only ``failed_file_ids``;
    re-running the whole batch would reassign files that already moved.
    """

    def __init__(
        self,
        assigned_file_ids: Sequence[str],
        failed_file_ids: Sequence[str],
        result: Optional["BulkAssignmentResult"] = None,
    ):
        self.assigned_file_ids = list(assigned_file_ids)
        self.failed_file_ids = list(failed_file_ids)
        self.result = result
        planned = len(self.assigned_file_ids) + len(self.failed_file_ids)
        super().__init__(
            f"Assigned {len(self.assigned_file_ids)} of {planned} file(s); "
            f"{len(self.failed_file_ids)} failed to write"
        )
