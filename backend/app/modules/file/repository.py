"""Repository for DocumentFile database operations."""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Sequence

from sqlalchemy import and_, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.modules.file.models import DocumentFile, FileStatus, stored_status_values


@dataclass(frozen=True)
class WorkloadCount:
    """Number of files in one status held by one agent."""
    agent_id: str
    status: str
    count: int


@dataclass(frozen=True)
class AssignmentCounts:
    """Collection-wide assignment totals."""
    total_files: int
    assigned_files: int
    unassigned_files: int
    unassigned_paid_files: int


class FileRepository:
    """Repository for DocumentFile database operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_file_by_id(self, file_id: str) -> Optional[DocumentFile]:
        """Get file by ID."""
        result = await self.session.execute(
            select(DocumentFile).where(DocumentFile.id == file_id)
        )
        return result.scalar_one_or_none()

    async def get_files_by_ids(self, file_ids: Sequence[str]) -> list[DocumentFile]:
        """Get every file whose ID is in ``file_ids``. Unknown IDs are absent."""
        if not file_ids:
            return []
        result = await self.session.execute(
            select(DocumentFile).where(DocumentFile.id.in_(list(file_ids)))
        )
        return list(result.scalars().all())

    async def get_workload_counts(self) -> list[WorkloadCount]:
        """Aggregate assigned files per agent and status.

        This is the snapshot the assignment engine balances against. It is
        read without isolation from concurrent writers.
        """
        query = (
            select(
                DocumentFile.assigned_agent_id,
                DocumentFile.status,
                func.count(DocumentFile.id),
            )
            .where(DocumentFile.assigned_agent_id.is_not(None))
            .group_by(DocumentFile.assigned_agent_id, DocumentFile.status)
        )
        result = await self.session.execute(query)
        return [
            WorkloadCount(agent_id=agent_id, status=status, count=count)
            for agent_id, status, count in result.all()
        ]

    async def get_assignment_counts(self) -> AssignmentCounts:
        """Count total, assigned, unassigned and waiting-paid files."""
        totals = await self.session.execute(
            select(func.count(DocumentFile.id), func.count(DocumentFile.assigned_agent_id))
        )
        total_files, assigned_files = totals.one()

        waiting = await self.session.execute(
            select(func.count(DocumentFile.id)).where(
                and_(
                    DocumentFile.status == FileStatus.PAID.value,
                    DocumentFile.assigned_agent_id.is_(None),
                )
            )
        )
        return AssignmentCounts(
            total_files=total_files or 0,
            assigned_files=assigned_files or 0,
            unassigned_files=(total_files or 0) - (assigned_files or 0),
            unassigned_paid_files=waiting.scalar_one() or 0,
        )

    async def get_unassigned_paid_file_ids(self, limit: int = 1000) -> list[str]:
        """Get IDs of paid files with no assignee, oldest upload first."""
        query = (
            select(DocumentFile.id)
            .where(
                and_(
                    DocumentFile.status == FileStatus.PAID.value,
                    DocumentFile.assigned_agent_id.is_(None),
                )
            )
            .order_by(DocumentFile.uploaded_at.asc(), DocumentFile.id.asc())
            .limit(limit)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def list_files(
        self,
        status: Optional[str] = None,
        assigned_agent_id: Optional[str] = None,
        user_id: Optional[str] = None,
        offset: int = 0,
        limit: int = 50,
    ) -> tuple[list[DocumentFile], int]:
        """List files newest first with optional filters.

        Returns:
            Tuple of (page of files, total matching count)
        """
        conditions = []
        if status:
            conditions.append(DocumentFile.status.in_(stored_status_values(status)))
        if assigned_agent_id:
            conditions.append(DocumentFile.assigned_agent_id == assigned_agent_id)
        if user_id:
            conditions.append(DocumentFile.user_id == user_id)

        count_query = select(func.count(DocumentFile.id))
        page_query = (
            select(DocumentFile)
            .order_by(DocumentFile.uploaded_at.desc(), DocumentFile.id.asc())
            .offset(offset)
            .limit(limit)
        )
        if conditions:
            count_query = count_query.where(and_(*conditions))
            page_query = page_query.where(and_(*conditions))

        total = (await self.session.execute(count_query)).scalar_one()
        files = list((await self.session.execute(page_query)).scalars().all())
        return files, total

    async def apply_assignment_batch(
        self,
        assignments: Sequence[tuple[str, str]],
        assigned_at: Optional[datetime] = None,
    ) -> None:
        """Write one batch of (file_id, agent_id) assignments and commit it.

        The batch is a single ORM bulk UPDATE by primary key, so it either
        commits whole or not at all. Batch sizing is the caller's job.

        Raises:
            SQLAlchemyError: If the batch could not be committed
        """
        if not assignments:
            return
        now = assigned_at or datetime.now(timezone.utc)
        rows = [
            {
                "id": file_id,
                "assigned_agent_id": agent_id,
                "status": FileStatus.ASSIGNED.value,
                "assigned_at": now,
                "updated_at": now,
            }
            for file_id, agent_id in assignments
        ]
        try:
            await self.session.execute(update(DocumentFile), rows)
            await self.session.commit()
        except SQLAlchemyError:
            await self.session.rollback()
            raise

    async def clear_assignment(self, file: DocumentFile) -> DocumentFile:
        """Remove the assignee from a file.

        A file still in ``assigned`` goes back to ``paid`` so the next sweep
        picks it up again; later statuses are left alone.
        """
        file.assigned_agent_id = None
        file.assigned_at = None
        if file.status == FileStatus.ASSIGNED.value:
            file.status = FileStatus.PAID.value
        try:
            await self.session.commit()
        except SQLAlchemyError:
            await self.session.rollback()
            raise
        return file
