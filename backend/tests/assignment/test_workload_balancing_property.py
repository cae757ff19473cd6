"""Property-based tests for workload-balanced file assignment.

**Feature: document-desk, Property 2: Workload Balancing**
**Validates: least-loaded selection, deterministic tie-breaks, count conservation**

For any roster with at least one active agent and any non-empty file
selection, every file SHALL go to an active agent whose
(pending, total) load was minimal at the moment of placement, with
earlier roster positions winning ties.
"""

from dataclasses import replace

import pytest
from hypothesis import given, settings, strategies as st

from app.modules.assignment.engine import (
    AgentWorkload,
    AssignmentStrategy,
    plan_assignments,
    select_least_loaded_agent,
    validate_file_ids,
)
from app.modules.assignment.errors import InvalidArgumentError, NoEligibleAgentsError


def reference_plan(file_ids: list[str], agents: list[AgentWorkload]) -> list[tuple[str, str]]:
    """Re-sort the whole roster before every placement.

    Python's sort is stable, so equal keys keep roster order; this is the
    straightforward version the heap-based planner must agree with.
    """
    roster = [replace(a) for a in agents if a.is_active]
    placed = []
    for file_id in file_ids:
        ranked = sorted(roster, key=lambda a: (a.pending_files, a.total_workload))
        chosen = ranked[0]
        chosen.pending_files += 1
        placed.append((file_id, chosen.agent_id))
    return placed


# Strategies for generating test data
agent_strategy = st.builds(
    lambda completed, pending, active: (completed, pending, active),
    st.integers(min_value=0, max_value=50),
    st.integers(min_value=0, max_value=50),
    st.booleans(),
)

roster_strategy = st.lists(agent_strategy, min_size=1, max_size=12).map(
    lambda rows: [
        AgentWorkload(
            agent_id=f"agent-{i}",
            completed_files=completed,
            pending_files=pending,
            is_active=active,
        )
        for i, (completed, pending, active) in enumerate(rows)
    ]
).filter(lambda roster: any(a.is_active for a in roster))

file_ids_strategy = st.integers(min_value=1, max_value=60).map(
    lambda n: [f"file-{i}" for i in range(n)]
)


class TestLeastLoadedSelection:
    """Each placement goes to a minimal-load active agent."""

    @given(agents=roster_strategy, file_ids=file_ids_strategy)
    @settings(max_examples=100)
    def test_matches_stable_resort_reference(self, agents, file_ids):
        plan = plan_assignments(file_ids, agents)
        actual = [(a.file_id, a.agent_id) for a in plan.assignments]

        assert actual == reference_plan(file_ids, agents), (
            "Heap-based planner diverged from a per-file stable re-sort"
        )

    @given(agents=roster_strategy, file_ids=file_ids_strategy)
    @settings(max_examples=100)
    def test_each_pick_was_minimal_at_placement_time(self, agents, file_ids):
        plan = plan_assignments(file_ids, agents)

        live = {a.agent_id: replace(a) for a in agents if a.is_active}
        for placed in plan.assignments:
            chosen = live[placed.agent_id]
            best = min((a.pending_files, a.total_workload) for a in live.values())
            assert (chosen.pending_files, chosen.total_workload) == best, (
                f"{placed.file_id} went to {placed.agent_id} with load "
                f"{(chosen.pending_files, chosen.total_workload)}, minimum was {best}"
            )
            chosen.pending_files += 1
            assert placed.pending_files == chosen.pending_files
            assert placed.total_workload == chosen.total_workload

    @given(agents=roster_strategy, file_ids=file_ids_strategy)
    @settings(max_examples=100)
    def test_inactive_agents_never_receive_files(self, agents, file_ids):
        plan = plan_assignments(file_ids, agents)
        inactive = {a.agent_id for a in agents if not a.is_active}

        assert not inactive & {a.agent_id for a in plan.assignments}

    def test_select_least_loaded_prefers_pending_then_total_then_order(self):
        agents = [
            AgentWorkload("a", completed_files=9, pending_files=1),
            AgentWorkload("b", completed_files=2, pending_files=1),
            AgentWorkload("c", completed_files=2, pending_files=1),
            AgentWorkload("d", completed_files=0, pending_files=0, is_active=False),
        ]
        assert select_least_loaded_agent(agents).agent_id == "b"

    def test_select_least_loaded_returns_none_without_active_agents(self):
        assert select_least_loaded_agent([AgentWorkload("a", is_active=False)]) is None
        assert select_least_loaded_agent([]) is None


class TestPlanShape:
    """Every file is placed exactly once and counts are conserved."""

    @given(agents=roster_strategy, file_ids=file_ids_strategy)
    @settings(max_examples=100)
    def test_every_file_assigned_once_in_input_order(self, agents, file_ids):
        plan = plan_assignments(file_ids, agents)

        assert [a.file_id for a in plan.assignments] == file_ids
        assert len(plan.as_mapping()) == len(file_ids)

    @given(agents=roster_strategy, file_ids=file_ids_strategy)
    @settings(max_examples=100)
    def test_pending_grows_by_exactly_the_files_received(self, agents, file_ids):
        plan = plan_assignments(file_ids, agents)
        received = {k: len(v) for k, v in plan.file_ids_by_agent().items()}

        for before, after in zip(agents, plan.workloads):
            assert after.agent_id == before.agent_id
            assert after.completed_files == before.completed_files
            assert after.pending_files == before.pending_files + received.get(before.agent_id, 0)
            assert after.total_workload == after.completed_files + after.pending_files

        added = sum(a.pending_files for a in plan.workloads) - sum(a.pending_files for a in agents)
        assert added == len(file_ids)

    @given(agents=roster_strategy, file_ids=file_ids_strategy)
    @settings(max_examples=100)
    def test_input_roster_is_not_mutated(self, agents, file_ids):
        snapshot = [(a.agent_id, a.pending_files, a.completed_files) for a in agents]
        plan_assignments(file_ids, agents)

        assert [(a.agent_id, a.pending_files, a.completed_files) for a in agents] == snapshot

    @given(agents=roster_strategy, file_ids=file_ids_strategy)
    @settings(max_examples=100)
    def test_planning_is_deterministic(self, agents, file_ids):
        first = plan_assignments(file_ids, agents)
        second = plan_assignments(file_ids, agents)

        assert first.assignments == second.assignments


class TestBalance:
    """Starting from equal loads, a batch stays within one file of even."""

    @given(
        agent_count=st.integers(min_value=1, max_value=10),
        base_pending=st.integers(min_value=0, max_value=20),
        file_ids=file_ids_strategy,
    )
    @settings(max_examples=100)
    def test_equal_start_spreads_evenly(self, agent_count, base_pending, file_ids):
        agents = [
            AgentWorkload(f"agent-{i}", completed_files=5, pending_files=base_pending)
            for i in range(agent_count)
        ]
        plan = plan_assignments(file_ids, agents)
        pending = [a.pending_files for a in plan.workloads]

        assert max(pending) - min(pending) <= 1

    def test_idle_agent_absorbs_files_until_caught_up(self):
        agents = [
            AgentWorkload("A", completed_files=0, pending_files=0),
            AgentWorkload("B", completed_files=0, pending_files=3),
        ]
        plan = plan_assignments([f"f{i}" for i in range(1, 6)], agents)

        assert [a.agent_id for a in plan.assignments] == ["A", "A", "A", "A", "B"]
        assert [a.pending_files for a in plan.workloads] == [4, 4]

    def test_total_workload_breaks_pending_ties(self):
        agents = [
            AgentWorkload("veteran", completed_files=40, pending_files=2),
            AgentWorkload("newcomer", completed_files=1, pending_files=2),
        ]
        plan = plan_assignments(["f1"], agents)

        assert plan.assignments[0].agent_id == "newcomer"

    def test_roster_order_breaks_full_ties(self):
        agents = [AgentWorkload("first"), AgentWorkload("second")]
        plan = plan_assignments(["f1", "f2", "f3"], agents)

        assert [a.agent_id for a in plan.assignments] == ["first", "second", "first"]


class TestRoundRobin:
    """Round robin cycles through active agents in roster order."""

    @given(agents=roster_strategy, file_ids=file_ids_strategy)
    @settings(max_examples=100)
    def test_cycles_active_agents(self, agents, file_ids):
        active = [a.agent_id for a in agents if a.is_active]
        plan = plan_assignments(file_ids, agents, AssignmentStrategy.ROUND_ROBIN)

        assert [a.agent_id for a in plan.assignments] == [
            active[i % len(active)] for i in range(len(file_ids))
        ]
        assert plan.strategy == AssignmentStrategy.ROUND_ROBIN

    def test_round_robin_ignores_load(self):
        agents = [
            AgentWorkload("busy", pending_files=30),
            AgentWorkload("idle", pending_files=0),
        ]
        plan = plan_assignments(["f1", "f2"], agents, AssignmentStrategy.ROUND_ROBIN)

        assert [a.agent_id for a in plan.assignments] == ["busy", "idle"]
        assert plan.workloads[0].pending_files == 31


class TestPlanningErrors:
    """Invalid input fails before any placement."""

    def test_empty_selection_is_rejected(self):
        with pytest.raises(InvalidArgumentError):
            plan_assignments([], [AgentWorkload("a")])

    @pytest.mark.parametrize("file_ids", [["f1", ""], ["  "], ["f1", None]])
    def test_blank_ids_are_rejected(self, file_ids):
        with pytest.raises(InvalidArgumentError):
            validate_file_ids(file_ids)

    def test_duplicate_ids_are_rejected(self):
        with pytest.raises(InvalidArgumentError, match="f1"):
            plan_assignments(["f1", "f2", "f1"], [AgentWorkload("a")])

    def test_no_active_agents(self):
        with pytest.raises(NoEligibleAgentsError, match="Activate an agent first"):
            plan_assignments(["f1"], [AgentWorkload("a", is_active=False)])

    def test_empty_roster(self):
        with pytest.raises(NoEligibleAgentsError):
            plan_assignments(["f1"], [])

    def test_invalid_argument_wins_over_missing_agents(self):
        with pytest.raises(InvalidArgumentError):
            plan_assignments([], [])

    @given(
        completed=st.integers(max_value=-1),
        pending=st.integers(min_value=0, max_value=5),
    )
    @settings(max_examples=100)
    def test_negative_counts_are_rejected(self, completed, pending):
        with pytest.raises(InvalidArgumentError):
            AgentWorkload("a", completed_files=completed, pending_files=pending)

    def test_generator_input_is_accepted(self):
        plan = plan_assignments((f"f{i}" for i in range(3)), [AgentWorkload("a")])
        assert len(plan) == 3
