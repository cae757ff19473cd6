"""Workload-balanced file assignment planning.

Given the files to place and the current per-agent workload, produce a
file -> agent plan that keeps agents' load as even as possible. The least
loaded agent is recomputed after every single placement, so a large batch
spreads out instead of piling onto whoever looked idle at the start.

Ranking, smallest first:
    1. pending_files   (active load dominates)
    2. total_workload  (completed + pending)
    3. roster position (earlier agent wins a full tie)

This is a greedy heuristic, not a global minimax solution. Planning is
pure and synchronous; reading the snapshot and writing the plan back are
the caller's job.
"""

import heapq
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Iterable, Optional, Sequence

from app.modules.assignment.errors import InvalidArgumentError, NoEligibleAgentsError


class AssignmentStrategy(str, Enum):
    """How files are spread across agents."""
    LOAD_BALANCED = "load_balanced"
    ROUND_ROBIN = "round_robin"


@dataclass
class AgentWorkload:
    """An agent's current burden as seen by the planner.

    ``total_workload`` is always derived from the two counts so it can
    never drift from them.
    """
    agent_id: str
    completed_files: int = 0
    pending_files: int = 0
    is_active: bool = True
    agent_name: Optional[str] = None

    def __post_init__(self) -> None:
        if self.completed_files < 0 or self.pending_files < 0:
            raise InvalidArgumentError(
                f"Workload counts for agent {self.agent_id} must be non-negative"
            )

    @property
    def total_workload(self) -> int:
        return self.completed_files + self.pending_files

    def rank(self) -> tuple[int, int]:
        """Selection key; lower ranks receive the next file."""
        return (self.pending_files, self.total_workload)


@dataclass(frozen=True)
class PlannedAssignment:
    """One placement and the agent's load right after it."""
    file_id: str
    agent_id: str
    pending_files: int
    total_workload: int


@dataclass
class AssignmentPlan:
    """Output of one planning run."""
    strategy: AssignmentStrategy
    assignments: list[PlannedAssignment] = field(default_factory=list)
    workloads: list[AgentWorkload] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.assignments)

    def as_mapping(self) -> dict[str, str]:
        """file_id -> agent_id."""
        return {a.file_id: a.agent_id for a in self.assignments}

    def file_ids_by_agent(self) -> dict[str, list[str]]:
        """agent_id -> files placed on that agent, in placement order."""
        grouped: dict[str, list[str]] = {}
        for a in self.assignments:
            grouped.setdefault(a.agent_id, []).append(a.file_id)
        return grouped


def validate_file_ids(file_ids: Iterable[str]) -> list[str]:
    """Check a file selection and return it as a list.

    Raises:
        InvalidArgumentError: If the selection is empty, has blank IDs or
            repeats an ID
    """
    ids = list(file_ids)
    if not ids:
        raise InvalidArgumentError("At least one file ID is required")

    if any(not isinstance(fid, str) or not fid.strip() for fid in ids):
        raise InvalidArgumentError("File IDs must be non-empty strings")

    seen: set[str] = set()
    duplicates = []
    for fid in ids:
        if fid in seen:
            duplicates.append(fid)
        seen.add(fid)
    if duplicates:
        raise InvalidArgumentError(
            f"Duplicate file IDs in selection: {', '.join(sorted(set(duplicates)))}"
        )
    return ids


def select_least_loaded_agent(agents: Sequence[AgentWorkload]) -> Optional[AgentWorkload]:
    """Return the active agent that should receive the next file, or None."""
    best: Optional[AgentWorkload] = None
    for agent in agents:
        if not agent.is_active:
            continue
        if best is None or agent.rank() < best.rank():
            best = agent
    return best


def plan_assignments(
    file_ids: Iterable[str],
    agents: Sequence[AgentWorkload],
    strategy: AssignmentStrategy = AssignmentStrategy.LOAD_BALANCED,
) -> AssignmentPlan:
    """Plan where each file goes.

    The input records are not mutated; the plan carries updated copies.

    Args:
        file_ids: Files to place, in placement order
        agents: Workload snapshot for the roster; inactive agents are skipped
        strategy: Load-balanced (default) or plain round robin

    Returns:
        The plan plus the final workload of every agent passed in

    Raises:
        InvalidArgumentError: If the file selection is empty or malformed
        NoEligibleAgentsError: If no agent is active
    """
    ids = validate_file_ids(file_ids)

    workloads = [replace(agent) for agent in agents]
    roster = [agent for agent in workloads if agent.is_active]
    if not roster:
        raise NoEligibleAgentsError()

    if strategy == AssignmentStrategy.ROUND_ROBIN:
        assignments = _place_round_robin(ids, roster)
    else:
        assignments = _place_least_loaded(ids, roster)

    return AssignmentPlan(strategy=strategy, assignments=assignments, workloads=workloads)


def _place_least_loaded(ids: list[str], roster: list[AgentWorkload]) -> list[PlannedAssignment]:
    # Heap entries are (pending, total, roster index): the index makes the
    # order total, so the pick matches a stable re-sort of the roster.
    heap = [(*agent.rank(), index) for index, agent in enumerate(roster)]
    heapq.heapify(heap)

    assignments = []
    for file_id in ids:
        index = heap[0][2]
        agent = roster[index]
        assignments.append(_place(file_id, agent))
        heapq.heapreplace(heap, (*agent.rank(), index))
    return assignments


def _place_round_robin(ids: list[str], roster: list[AgentWorkload]) -> list[PlannedAssignment]:
    return [_place(file_id, roster[i % len(roster)]) for i, file_id in enumerate(ids)]


def _place(file_id: str, agent: AgentWorkload) -> PlannedAssignment:
    # New work is pending; completed_files never changes here.
    agent.pending_files += 1
    return PlannedAssignment(
        file_id=file_id,
        agent_id=agent.agent_id,
        pending_files=agent.pending_files,
        total_workload=agent.total_workload,
    )
