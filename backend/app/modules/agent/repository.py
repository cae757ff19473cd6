"""Repository for Agent database operations."""

from datetime import datetime, timezone
from typing import Iterable, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.modules.agent.models import Agent


class AgentRepository:
    """Repository for Agent database operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_agent_by_id(self, agent_id: str) -> Optional[Agent]:
        """Get agent by ID."""
        result = await self.session.execute(select(Agent).where(Agent.id == agent_id))
        return result.scalar_one_or_none()

    async def get_all_agents(self) -> list[Agent]:
        """Get all agents in stable roster order."""
        query = select(Agent).order_by(Agent.created_at.asc(), Agent.id.asc())
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_active_agents(self) -> list[Agent]:
        """Get agents eligible for assignment.

        Roster order is the engine's final tie-break, so it must not
        vary between calls.
        """
        query = (
            select(Agent)
            .where(Agent.is_active.is_(True))
            .order_by(Agent.created_at.asc(), Agent.id.asc())
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def touch_last_assigned(
        self, agent_ids: Iterable[str], assigned_at: Optional[datetime] = None
    ) -> None:
        """Stamp ``last_assigned_at`` on every agent that just received files."""
        ids = list(dict.fromkeys(agent_ids))
        if not ids:
            return
        await self.session.execute(
            update(Agent)
            .where(Agent.id.in_(ids))
            .values(last_assigned_at=assigned_at or datetime.now(timezone.utc))
        )
        await self.session.commit()
