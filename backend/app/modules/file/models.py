"""Uploaded document file model and status lifecycle.

Lifecycle: uploaded -> paid -> assigned -> processing -> completed.
Assignment only performs the paid -> assigned transition; processing and
completion are driven by agents and only read here.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.core.database import Base


class FileStatus(str, Enum):
    """Processing status of an uploaded file."""
    UPLOADED = "uploaded"
    PAID = "paid"
    ASSIGNED = "assigned"
    PROCESSING = "processing"
    COMPLETED = "completed"


# Older records still carry the pre-rename status value
LEGACY_STATUS_ALIASES = {"in_progress": FileStatus.PROCESSING}

# Statuses counted against an agent's active load
PENDING_STATUSES = frozenset({FileStatus.PAID, FileStatus.ASSIGNED, FileStatus.PROCESSING})


def normalize_status(raw: Optional[str]) -> Optional[FileStatus]:
    """Map a stored status string to a FileStatus, or None if unrecognised."""
    if raw is None:
        return None
    if raw in LEGACY_STATUS_ALIASES:
        return LEGACY_STATUS_ALIASES[raw]
    try:
        return FileStatus(raw)
    except ValueError:
        return None


def stored_status_values(status: str) -> list[str]:
    """Every stored spelling that reads back as ``status``, legacy aliases included."""
    return [status] + [
        legacy for legacy, current in LEGACY_STATUS_ALIASES.items() if current.value == status
    ]


class DocumentFile(Base):
    """A customer-uploaded file awaiting or undergoing fulfilment."""

    __tablename__ = "files"

    id: Mapped[str] = mapped_column(
        String(128), primary_key=True, default=lambda: str(uuid.uuid4())
    )

    # Ownership
    user_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True, index=True)
    filename: Mapped[str] = mapped_column(String(512), nullable=False, default="")

    # Status tracking
    status: Mapped[str] = mapped_column(
        String(20), default=FileStatus.UPLOADED.value, nullable=False, index=True
    )

    # Assignment
    assigned_agent_id: Mapped[Optional[str]] = mapped_column(
        String(128),
        ForeignKey("agents.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    assigned_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Timestamps
    uploaded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return f"<DocumentFile(id={self.id}, status={self.status}, agent={self.assigned_agent_id})>"

    def is_assigned(self) -> bool:
        """Check if file currently has an assignee."""
        return self.assigned_agent_id is not None

    def is_awaiting_assignment(self) -> bool:
        """Check if file is paid but nobody has picked it up yet."""
        return self.status == FileStatus.PAID.value and self.assigned_agent_id is None
