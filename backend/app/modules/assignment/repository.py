"""Repository for the assignment audit log."""

from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.modules.assignment.models import AssignmentAction, AssignmentLog


class AssignmentLogRepository:
    """Append-only access to assignment audit entries."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def append(
        self,
        action: AssignmentAction,
        admin_id: str,
        admin_name: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> AssignmentLog:
        """Record an assignment event and commit it."""
        entry = AssignmentLog(
            action=action.value,
            admin_id=admin_id,
            admin_name=admin_name,
            details=details or {},
        )
        self.session.add(entry)
        await self.session.commit()
        return entry
