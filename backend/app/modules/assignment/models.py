"""Assignment audit log model."""

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import JSON, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.core.database import Base


class AssignmentAction(str, Enum):
    """Kinds of assignment events recorded in the audit log."""
    FILE_ASSIGNED = "file_assigned"
    FILE_UNASSIGNED = "file_unassigned"
    AUTO_ASSIGNMENT = "auto_assignment"
    BACKGROUND_AUTO_ASSIGNMENT = "background_auto_assignment"


class AssignmentLog(Base):
    """Immutable record of who moved which files to whom."""

    __tablename__ = "assignment_logs"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    action: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    admin_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    admin_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    details: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), index=True
    )

    def __repr__(self) -> str:
        return f"<AssignmentLog(id={self.id}, action={self.action}, admin={self.admin_id})>"
