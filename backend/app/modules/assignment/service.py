"""Assignment service.

Loads the workload snapshot from the store, runs the planner, writes the
plan back in batches and keeps the response cache honest afterwards.
"""

import asyncio
import logging
import time
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Awaitable, Iterable, Optional, Sequence, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.cache import ResponseCache, make_key
from app.core.config import settings
from app.core.logging import log_error, log_info, log_warning
from app.core.metrics import (
    ASSIGNMENT_BATCH_FAILURES_TOTAL,
    ASSIGNMENT_PLAN_DURATION_SECONDS,
    CACHE_INVALIDATIONS_TOTAL,
    FILES_ASSIGNED_TOTAL,
    record_cache_lookup,
)
from app.core.tracing import create_span, record_exception
from app.modules.admin.middleware import SYSTEM_ADMIN_ID, AdminIdentity
from app.modules.agent.models import Agent
from app.modules.agent.repository import AgentRepository
from app.modules.assignment.engine import (
    AgentWorkload,
    AssignmentPlan,
    AssignmentStrategy,
    plan_assignments,
    validate_file_ids,
)
from app.modules.assignment.errors import (
    AgentNotFoundError,
    DocumentFileNotFoundError,
    InvalidArgumentError,
    PartialWriteFailureError,
    StoreUnavailableError,
)
from app.modules.assignment.models import AssignmentAction
from app.modules.assignment.repository import AssignmentLogRepository
from app.modules.assignment.schemas import (
    AgentDistribution,
    AgentWorkloadInfo,
    AssignmentInfo,
    AssignmentStatsResponse,
    BulkAssignmentResult,
    UnassignResponse,
)
from app.modules.file.models import PENDING_STATUSES, DocumentFile, FileStatus, normalize_status
from app.modules.file.repository import FileRepository, WorkloadCount
from app.modules.file.service import FILES_CACHE_RESOURCE

logger = logging.getLogger(__name__)

T = TypeVar("T")

ASSIGN_CACHE_RESOURCE = "assign"
AGENT_FILES_CACHE_RESOURCE = "agent-files"
USER_FILES_CACHE_RESOURCE = "user-files"

MANUAL_STRATEGY = "manual"

# Files in later stages are being worked on and cannot change hands
ASSIGNABLE_STATUSES = frozenset({FileStatus.PAID, FileStatus.ASSIGNED})


@dataclass(frozen=True)
class FileOrigin:
    """Where a file sat before this write phase.

    Plain values copied out of the ORM row; a failed batch rolls the session
    back and expires every loaded row.
    """
    previous_agent_id: Optional[str]
    user_id: Optional[str]


def capture_origins(files_by_id: dict[str, DocumentFile]) -> dict[str, FileOrigin]:
    """Snapshot assignee and owner per file before anything is written."""
    return {
        file_id: FileOrigin(previous_agent_id=f.assigned_agent_id, user_id=f.user_id)
        for file_id, f in files_by_id.items()
    }


def build_agent_workloads(
    agents: Sequence[Agent], counts: Iterable[WorkloadCount]
) -> list[AgentWorkload]:
    """Fold per-status file counts into one workload record per agent.

    Agents with no files get zero counts. Counts for agents missing from
    ``agents`` are ignored, as are statuses that carry no load. A negative
    count from a bad aggregate reads as zero.
    """
    pending: dict[str, int] = defaultdict(int)
    completed: dict[str, int] = defaultdict(int)
    for row in counts:
        status = normalize_status(row.status)
        if status in PENDING_STATUSES:
            pending[row.agent_id] += max(row.count or 0, 0)
        elif status == FileStatus.COMPLETED:
            completed[row.agent_id] += max(row.count or 0, 0)

    return [
        AgentWorkload(
            agent_id=agent.id,
            agent_name=agent.display_name,
            is_active=agent.is_active,
            pending_files=pending[agent.id],
            completed_files=completed[agent.id],
        )
        for agent in agents
    ]


def release_reassigned_files(
    workloads: Sequence[AgentWorkload], files: Iterable[DocumentFile]
) -> None:
    """Take files that are about to change hands off their current agent's load."""
    by_id = {w.agent_id: w for w in workloads}
    for file in files:
        current = by_id.get(file.assigned_agent_id) if file.assigned_agent_id else None
        if current is None or normalize_status(file.status) not in PENDING_STATUSES:
            continue
        current.pending_files = max(current.pending_files - 1, 0)


class AssignmentService:
    """Service for assigning files to agents."""

    def __init__(
        self,
        session: AsyncSession,
        cache: ResponseCache,
        batch_size: Optional[int] = None,
    ):
        self.session = session
        self.cache = cache
        self.batch_size = max(batch_size or settings.ASSIGNMENT_BATCH_SIZE, 1)
        self.agent_repo = AgentRepository(session)
        self.file_repo = FileRepository(session)
        self.log_repo = AssignmentLogRepository(session)

    # ==================== Statistics ====================

    async def get_assignment_stats(self) -> AssignmentStatsResponse:
        """Get dashboard statistics, served from cache when fresh."""
        cache_key = make_key(ASSIGN_CACHE_RESOURCE, ["stats"])
        cached = self.cache.get(cache_key)
        record_cache_lookup(ASSIGN_CACHE_RESOURCE, cached is not None)
        if cached is not None:
            return cached

        agents, counts, totals = await self._read_store(self._load_stats_snapshot())

        workloads = build_agent_workloads(agents, counts)
        files_per_agent: dict[str, int] = defaultdict(int)
        for row in counts:
            files_per_agent[row.agent_id] += row.count or 0

        agent_workload = [
            AgentWorkloadInfo(
                agent_id=w.agent_id,
                agent_name=w.agent_name,
                is_active=w.is_active,
                total_files=files_per_agent[w.agent_id],
                pending_files=w.pending_files,
                completed_files=w.completed_files,
                total_workload=w.total_workload,
            )
            for w in workloads
        ]
        agent_workload.sort(key=lambda info: (info.pending_files, info.total_workload))

        response = AssignmentStatsResponse(
            total_files=totals.total_files,
            assigned_files=totals.assigned_files,
            unassigned_files=totals.unassigned_files,
            unassigned_paid_files=totals.unassigned_paid_files,
            total_agents=len(agents),
            active_agents=sum(1 for a in agents if a.is_active),
            agent_workload=agent_workload,
            generated_at=datetime.now(timezone.utc),
        )
        self.cache.set(cache_key, response, settings.ASSIGN_STATS_TTL_SECONDS)
        return response

    # ==================== Assignment ====================

    async def auto_assign(
        self,
        admin: AdminIdentity,
        file_ids: Sequence[str],
        strategy: AssignmentStrategy = AssignmentStrategy.LOAD_BALANCED,
        action: AssignmentAction = AssignmentAction.AUTO_ASSIGNMENT,
    ) -> BulkAssignmentResult:
        """Spread files across active agents.

        Raises:
            InvalidArgumentError: Empty, malformed, unknown or locked files
            NoEligibleAgentsError: No active agent; nothing is written
            StoreUnavailableError: The snapshot could not be read
            PartialWriteFailureError: Some batches committed, later ones failed
        """
        ids = validate_file_ids(file_ids)
        files, agents, counts = await self._read_store(self._load_assignment_snapshot(ids))
        files_by_id = self._check_assignable(ids, files)

        roster = build_agent_workloads(agents, counts)
        release_reassigned_files(roster, files_by_id.values())

        plan = self._plan(ids, roster, strategy)
        origins = capture_origins(files_by_id)
        return await self._write_plan(admin, plan, origins, action, strategy.value)

    async def assign_to_agent(
        self,
        admin: AdminIdentity,
        file_ids: Sequence[str],
        agent_id: str,
    ) -> BulkAssignmentResult:
        """Hand every file in the selection to one agent.

        The agent does not need to be active; an admin may route work to
        anyone on the roster.
        """
        ids = validate_file_ids(file_ids)
        agent = await self._read_store(self.agent_repo.get_agent_by_id(agent_id))
        if agent is None:
            raise AgentNotFoundError(f"Agent {agent_id} not found")

        files = await self._read_store(self.file_repo.get_files_by_ids(ids))
        files_by_id = self._check_assignable(ids, files)
        counts = await self._read_store(self.file_repo.get_workload_counts())

        roster = build_agent_workloads([agent], counts)
        release_reassigned_files(roster, files_by_id.values())
        roster[0].is_active = True

        plan = self._plan(ids, roster, AssignmentStrategy.LOAD_BALANCED)
        origins = capture_origins(files_by_id)
        return await self._write_plan(
            admin, plan, origins, AssignmentAction.FILE_ASSIGNED, MANUAL_STRATEGY
        )

    async def unassign_file(self, admin: AdminIdentity, file_id: str) -> UnassignResponse:
        """Clear a file's assignee."""
        if not file_id or not file_id.strip():
            raise InvalidArgumentError("File ID is required")

        file = await self._read_store(self.file_repo.get_file_by_id(file_id))
        if file is None:
            raise DocumentFileNotFoundError(f"File {file_id} not found")

        previous_agent_id = file.assigned_agent_id
        try:
            file = await self.file_repo.clear_assignment(file)
        except SQLAlchemyError as e:
            raise StoreUnavailableError(f"Could not unassign file {file_id}") from e

        self._invalidate([previous_agent_id], [file.user_id])
        await self._append_log(
            admin,
            AssignmentAction.FILE_UNASSIGNED,
            {"file_id": file_id, "previous_agent_id": previous_agent_id},
        )
        log_info(
            logger,
            "File unassigned",
            file_id=file_id,
            previous_agent_id=previous_agent_id,
            admin_id=admin.admin_id,
        )

        return UnassignResponse(
            file_id=file_id,
            previous_agent_id=previous_agent_id,
            status=file.status,
            message="File unassigned successfully" if previous_agent_id else "File was not assigned",
        )

    async def assign_unassigned_paid_files(self, admin: AdminIdentity) -> BulkAssignmentResult:
        """Auto-assign paid files nobody has picked up yet, oldest first."""
        ids = await self._read_store(
            self.file_repo.get_unassigned_paid_file_ids(settings.UNASSIGNED_SCAN_LIMIT)
        )
        if not ids:
            return BulkAssignmentResult(
                success=True,
                message="No unassigned paid files found",
                strategy=AssignmentStrategy.LOAD_BALANCED.value,
                planned_count=0,
                assigned_count=0,
            )

        action = (
            AssignmentAction.BACKGROUND_AUTO_ASSIGNMENT
            if admin.admin_id == SYSTEM_ADMIN_ID
            else AssignmentAction.AUTO_ASSIGNMENT
        )
        return await self.auto_assign(admin, ids, AssignmentStrategy.LOAD_BALANCED, action)

    # ==================== Store access ====================

    async def _read_store(self, awaitable: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(awaitable, timeout=settings.STORE_TIMEOUT_SECONDS)
        except asyncio.TimeoutError as e:
            raise StoreUnavailableError("Timed out reading the document store") from e
        except SQLAlchemyError as e:
            raise StoreUnavailableError("Could not read the document store") from e

    async def _load_stats_snapshot(self):
        agents = await self.agent_repo.get_all_agents()
        counts = await self.file_repo.get_workload_counts()
        totals = await self.file_repo.get_assignment_counts()
        return agents, counts, totals

    async def _load_assignment_snapshot(self, ids: list[str]):
        files = await self.file_repo.get_files_by_ids(ids)
        agents = await self.agent_repo.get_active_agents()
        counts = await self.file_repo.get_workload_counts()
        return files, agents, counts

    def _check_assignable(
        self, ids: list[str], files: Iterable[DocumentFile]
    ) -> dict[str, DocumentFile]:
        files_by_id = {f.id: f for f in files}
        unknown = [fid for fid in ids if fid not in files_by_id]
        if unknown:
            raise InvalidArgumentError(f"Unknown file IDs: {', '.join(unknown)}")

        locked = [
            f"{fid} ({files_by_id[fid].status})"
            for fid in ids
            if normalize_status(files_by_id[fid].status) not in ASSIGNABLE_STATUSES
        ]
        if locked:
            raise InvalidArgumentError(
                f"Files cannot be assigned in their current status: {', '.join(locked)}"
            )
        return files_by_id

    def _plan(
        self,
        ids: list[str],
        roster: list[AgentWorkload],
        strategy: AssignmentStrategy,
    ) -> AssignmentPlan:
        with create_span(
            "assignment.plan",
            {"assignment.files": len(ids), "assignment.agents": len(roster)},
        ):
            started = time.perf_counter()
            plan = plan_assignments(ids, roster, strategy)
            ASSIGNMENT_PLAN_DURATION_SECONDS.observe(time.perf_counter() - started)
        return plan

    async def _persist(self, plan: AssignmentPlan) -> tuple[list[str], list[str]]:
        """Write the plan batch by batch.

        Returns:
            Tuple of (committed file IDs, file IDs that were not written)
        """
        pairs = [(a.file_id, a.agent_id) for a in plan.assignments]
        assigned_at = datetime.now(timezone.utc)
        committed: list[str] = []

        for start in range(0, len(pairs), self.batch_size):
            batch = pairs[start:start + self.batch_size]
            try:
                await self.file_repo.apply_assignment_batch(batch, assigned_at=assigned_at)
            except SQLAlchemyError as e:
                ASSIGNMENT_BATCH_FAILURES_TOTAL.inc()
                record_exception(e)
                log_error(
                    logger,
                    "Assignment batch failed to commit",
                    e,
                    batch_start=start,
                    batch_size=len(batch),
                    committed=len(committed),
                )
                return committed, [file_id for file_id, _ in pairs[start:]]
            committed.extend(file_id for file_id, _ in batch)

        return committed, []

    async def _write_plan(
        self,
        admin: AdminIdentity,
        plan: AssignmentPlan,
        origins: dict[str, FileOrigin],
        action: AssignmentAction,
        strategy_label: str,
    ) -> BulkAssignmentResult:
        with create_span(
            "assignment.persist",
            {"assignment.files": len(plan), "assignment.strategy": strategy_label},
        ):
            committed, failed = await self._persist(plan)

        committed_set = set(committed)
        written = [a for a in plan.assignments if a.file_id in committed_set]

        new_agents = list(dict.fromkeys(a.agent_id for a in written))
        previous_agents = [origins[fid].previous_agent_id for fid in committed]
        owners = [origins[fid].user_id for fid in committed]

        if new_agents:
            try:
                await self.agent_repo.touch_last_assigned(new_agents)
            except SQLAlchemyError as e:
                await self.session.rollback()
                log_warning(logger, "Could not stamp last_assigned_at", error=str(e))

        self._invalidate([*new_agents, *previous_agents], owners)

        result = self._build_result(plan, written, failed, strategy_label)
        await self._append_log(
            admin,
            action,
            {
                "strategy": strategy_label,
                "file_ids": committed,
                "failed_file_ids": failed,
                "assignments": [{"file_id": a.file_id, "agent_id": a.agent_id} for a in written],
                "distribution": [d.model_dump() for d in result.distribution_summary],
            },
        )

        FILES_ASSIGNED_TOTAL.labels(strategy=strategy_label).inc(len(committed))
        log_info(
            logger,
            result.message,
            admin_id=admin.admin_id,
            strategy=strategy_label,
            assigned=len(committed),
            failed=len(failed),
        )

        if failed:
            raise PartialWriteFailureError(committed, failed, result)
        return result

    def _build_result(
        self,
        plan: AssignmentPlan,
        written: list,
        failed: list[str],
        strategy_label: str,
    ) -> BulkAssignmentResult:
        names = {w.agent_id: w.agent_name for w in plan.workloads}
        received: dict[str, int] = defaultdict(int)
        for a in written:
            received[a.agent_id] += 1

        # Final workloads assume every placement landed; take back the ones that did not.
        unwritten: dict[str, int] = defaultdict(int)
        failed_set = set(failed)
        for a in plan.assignments:
            if a.file_id in failed_set:
                unwritten[a.agent_id] += 1

        distribution = [
            AgentDistribution(
                agent_id=w.agent_id,
                agent_name=w.agent_name or "",
                pending_files=w.pending_files - unwritten[w.agent_id],
                completed_files=w.completed_files,
                total_workload=w.total_workload - unwritten[w.agent_id],
                files_assigned=received[w.agent_id],
            )
            for w in plan.workloads
            if w.is_active
        ]

        return BulkAssignmentResult(
            success=not failed,
            message=f"Assigned {len(written)} of {len(plan)} file(s)",
            strategy=strategy_label,
            planned_count=len(plan),
            assigned_count=len(written),
            assigned_file_ids=[a.file_id for a in written],
            failed_file_ids=list(failed),
            assignments=[
                AssignmentInfo(
                    file_id=a.file_id,
                    agent_id=a.agent_id,
                    agent_name=names.get(a.agent_id) or "",
                    pending_files=a.pending_files,
                    total_workload=a.total_workload,
                )
                for a in written
            ],
            distribution_summary=distribution,
        )

    # ==================== Side effects ====================

    def _invalidate(self, agent_ids: Iterable[str], user_ids: Iterable[str]) -> None:
        for resource in (ASSIGN_CACHE_RESOURCE, FILES_CACHE_RESOURCE):
            removed = self._invalidate_view(make_key(resource))
            CACHE_INVALIDATIONS_TOTAL.labels(namespace=resource).inc(removed)

        for agent_id in dict.fromkeys(filter(None, agent_ids)):
            self._invalidate_view(make_key(AGENT_FILES_CACHE_RESOURCE, [agent_id]))
        for user_id in dict.fromkeys(filter(None, user_ids)):
            self._invalidate_view(make_key(USER_FILES_CACHE_RESOURCE, [user_id]))

    def _invalidate_view(self, key: str) -> int:
        # Match on a part boundary so "a1" leaves "a10" and "assign" leaves "assignments" alone.
        removed = int(self.cache.delete(key))
        return removed + self.cache.delete_by_prefix(f"{key}:")

    async def _append_log(
        self, admin: AdminIdentity, action: AssignmentAction, details: dict
    ) -> None:
        try:
            await self.log_repo.append(
                action=action,
                admin_id=admin.admin_id,
                admin_name=admin.name,
                details=details,
            )
        except SQLAlchemyError as e:
            await self.session.rollback()
            log_error(logger, "Failed to write assignment audit log", e, action=action.value)
