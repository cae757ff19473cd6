"""Support agent model.

Agents are staff members who fulfil paid document files. Only active
agents are eligible for new assignments.
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.core.database import Base

DEFAULT_MAX_WORKLOAD = 20
UNKNOWN_AGENT_NAME = "Unknown Agent"


class Agent(Base):
    """Support agent eligible to receive assigned files."""

    __tablename__ = "agents"

    id: Mapped[str] = mapped_column(
        String(128), primary_key=True, default=lambda: str(uuid.uuid4())
    )

    # Identification
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, index=True)

    # Eligibility
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)
    max_workload: Mapped[int] = mapped_column(Integer, default=DEFAULT_MAX_WORKLOAD)

    # Last time the assignment engine handed this agent a file
    last_assigned_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return f"<Agent(id={self.id}, name={self.name}, active={self.is_active})>"

    @property
    def display_name(self) -> str:
        """Name shown in admin views, defaulting for agents without one."""
        return self.name or UNKNOWN_AGENT_NAME
