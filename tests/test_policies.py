"""Tests for the scheduling decisions of the built-in policies.

Each test builds a context by hand (a current process or none, plus a
ready queue), calls ``schedule`` once, and checks both the returned
process and what happened to the ready queue.
"""

import pytest

from py_sched.context import SchedContext
from py_sched.policies import (
    FCFSPolicy,
    PriorityPolicy,
    RoundRobinPolicy,
    SJFPolicy,
    STCFPolicy,
)
from py_sched.process import Process, ProcessStatus

PRIORITY_LOW = 1
PRIORITY_MEDIUM = 5
PRIORITY_HIGH = 10


def _context(*specs: tuple[int, int]) -> tuple[SchedContext, list[Process]]:
    """Admit one process per ``(lifespan, priority)`` spec, PIDs from 1."""
    ctx = SchedContext(nr_resources=2)
    processes = []
    for pid, (lifespan, priority) in enumerate(specs, start=1):
        process = Process(pid=pid, lifespan=lifespan, priority=priority)
        ctx.admit(process)
        processes.append(process)
    return ctx, processes


def _make_current(ctx: SchedContext, process: Process, *, age: int = 0) -> None:
    ctx.take(process)
    process.dispatch()
    process.age = age
    ctx.current = process


def _block_current(ctx: SchedContext) -> None:
    current = ctx.current
    assert current is not None
    ctx.block(current, ctx.resource(0))


ALL_POLICIES = [FCFSPolicy, SJFPolicy, STCFPolicy, RoundRobinPolicy, PriorityPolicy]


class TestCommonBehaviour:
    """Behaviour every policy shares."""

    @pytest.mark.parametrize("policy_class", ALL_POLICIES)
    def test_nothing_to_run_returns_none(self, policy_class: type[FCFSPolicy]) -> None:
        """No current and an empty ready queue is an idle tick, not an error."""
        ctx = SchedContext(nr_resources=1)
        assert policy_class().schedule(ctx) is None

    @pytest.mark.parametrize("policy_class", ALL_POLICIES)
    def test_lone_runnable_current_keeps_cpu(self, policy_class: type[FCFSPolicy]) -> None:
        """With nobody waiting the current process continues."""
        ctx, (p1,) = _context((3, PRIORITY_LOW))
        _make_current(ctx, p1, age=1)
        assert policy_class().schedule(ctx) is p1

    @pytest.mark.parametrize("policy_class", ALL_POLICIES)
    def test_blocked_current_is_not_requeued(self, policy_class: type[FCFSPolicy]) -> None:
        """A blocked current stays in its wait queue; a waiter is chosen."""
        ctx, (p1, p2) = _context((3, PRIORITY_HIGH), (3, PRIORITY_LOW))
        _make_current(ctx, p1, age=1)
        _block_current(ctx)
        assert policy_class().schedule(ctx) is p2
        assert ctx.ready_queue.is_empty()
        assert ctx.waiting_on(p1) is ctx.resource(0)

    @pytest.mark.parametrize("policy_class", ALL_POLICIES)
    def test_finished_current_is_not_requeued(self, policy_class: type[FCFSPolicy]) -> None:
        """A current with no lifespan left is replaced and not put back."""
        ctx, (p1, p2) = _context((2, PRIORITY_HIGH), (3, PRIORITY_LOW))
        _make_current(ctx, p1, age=2)
        assert policy_class().schedule(ctx) is p2
        assert ctx.ready_queue.is_empty()

    @pytest.mark.parametrize("policy_class", ALL_POLICIES)
    def test_lone_finished_current_yields_none(self, policy_class: type[FCFSPolicy]) -> None:
        """A finished current with nobody waiting leaves the CPU idle."""
        ctx, (p1,) = _context((2, PRIORITY_LOW))
        _make_current(ctx, p1, age=2)
        assert policy_class().schedule(ctx) is None

    @pytest.mark.parametrize("policy_class", ALL_POLICIES)
    def test_lifecycle_hooks_are_idempotent(self, policy_class: type[FCFSPolicy]) -> None:
        """initialize/finalize can be called repeatedly."""
        ctx = SchedContext(nr_resources=1)
        policy = policy_class()
        assert policy.initialize(ctx)
        assert policy.initialize(ctx)
        policy.finalize(ctx)
        policy.finalize(ctx)


class TestFCFS:
    """First Come, First Served."""

    def test_picks_ready_head(self) -> None:
        """Without a current process the earliest arrival runs."""
        ctx, (p1, _p2) = _context((5, PRIORITY_LOW), (2, PRIORITY_HIGH))
        assert FCFSPolicy().schedule(ctx) is p1
        assert ctx.ready_queue.pids == [2]

    def test_never_preempts(self) -> None:
        """A running process keeps the CPU while waiters exist."""
        ctx, (p1, _p2) = _context((5, PRIORITY_LOW), (1, PRIORITY_HIGH))
        _make_current(ctx, p1, age=1)
        assert FCFSPolicy().schedule(ctx) is p1
        assert ctx.ready_queue.pids == [2]


class TestSJF:
    """Shortest Job First."""

    def test_picks_minimum_lifespan(self) -> None:
        """The shortest total lifespan is selected."""
        ctx, (_p1, p2, _p3) = _context((5, 0), (2, 0), (8, 0))
        assert SJFPolicy().schedule(ctx) is p2
        assert ctx.ready_queue.pids == [1, 3]

    def test_tie_goes_to_earliest(self) -> None:
        """Equal lifespans are served in queue order."""
        ctx, (_p1, p2, _p3) = _context((5, 0), (2, 0), (2, 0))
        assert SJFPolicy().schedule(ctx) is p2

    def test_uses_total_lifespan_not_remaining(self) -> None:
        """A long job that has mostly run still counts as long."""
        ctx, (p1, p2) = _context((10, 0), (4, 0))
        p1.age = 8
        assert SJFPolicy().schedule(ctx) is p2

    def test_shorter_arrival_does_not_preempt(self) -> None:
        """A running job continues even when a shorter one is waiting."""
        ctx, (p1, _p2) = _context((8, 0), (1, 0))
        _make_current(ctx, p1, age=2)
        assert SJFPolicy().schedule(ctx) is p1


class TestSTCF:
    """Shortest Time-to-Complete First."""

    def test_preempts_for_strictly_shorter(self) -> None:
        """A waiter with less remaining time takes over; current goes to the tail."""
        ctx, (p1, p2) = _context((5, 0), (2, 0))
        _make_current(ctx, p1, age=1)
        assert STCFPolicy().schedule(ctx) is p2
        assert ctx.ready_queue.pids == [1]
        assert p1.status is ProcessStatus.READY

    def test_equal_remaining_keeps_current(self) -> None:
        """A tie does not preempt."""
        ctx, (p1, _p2) = _context((5, 0), (3, 0))
        _make_current(ctx, p1, age=2)
        assert STCFPolicy().schedule(ctx) is p1
        assert ctx.ready_queue.pids == [2]

    def test_compares_remaining_time(self) -> None:
        """A long waiter close to completion beats a short fresh current."""
        ctx, (p1, p2) = _context((4, 0), (10, 0))
        _make_current(ctx, p1, age=0)
        p2.age = 9
        assert STCFPolicy().schedule(ctx) is p2

    def test_minimum_remaining_tie_goes_to_earliest(self) -> None:
        """Among equally short waiters the earliest queued wins."""
        ctx, (_p1, p2, _p3) = _context((6, 0), (2, 0), (2, 0))
        assert STCFPolicy().schedule(ctx) is p2


class TestRoundRobin:
    """Round Robin with a one-tick quantum."""

    def test_rotates_current_to_tail(self) -> None:
        """The head runs next and the current joins the back of the line."""
        ctx, (p1, p2, _p3) = _context((3, 0), (3, 0), (3, 0))
        _make_current(ctx, p1, age=1)
        assert RoundRobinPolicy().schedule(ctx) is p2
        assert ctx.ready_queue.pids == [3, 1]

    def test_ignores_priority(self) -> None:
        """Order is purely positional."""
        ctx, (p1, _p2) = _context((3, PRIORITY_LOW), (3, PRIORITY_HIGH))
        assert RoundRobinPolicy().schedule(ctx) is p1


class TestPriority:
    """Preemptive priority scheduling."""

    def test_picks_highest_priority(self) -> None:
        """The highest effective priority in the queue runs."""
        ctx, (_p1, p2, _p3) = _context((3, PRIORITY_LOW), (3, PRIORITY_HIGH), (3, PRIORITY_MEDIUM))
        assert PriorityPolicy().schedule(ctx) is p2
        assert ctx.ready_queue.pids == [1, 3]

    def test_tie_in_scan_goes_to_earliest(self) -> None:
        """Equal-priority waiters are served in queue order."""
        ctx, (_p1, p2, _p3) = _context((3, PRIORITY_LOW), (3, PRIORITY_HIGH), (3, PRIORITY_HIGH))
        assert PriorityPolicy().schedule(ctx) is p2

    def test_strictly_higher_current_continues(self) -> None:
        """A more important current keeps the CPU and the queue is untouched."""
        ctx, (p1, _p2) = _context((3, PRIORITY_HIGH), (3, PRIORITY_MEDIUM))
        _make_current(ctx, p1, age=1)
        assert PriorityPolicy().schedule(ctx) is p1
        assert ctx.ready_queue.pids == [2]

    def test_equal_priority_rotates(self) -> None:
        """On a tie the current yields and goes to the tail."""
        ctx, (p1, p2) = _context((3, PRIORITY_MEDIUM), (3, PRIORITY_MEDIUM))
        _make_current(ctx, p1, age=1)
        assert PriorityPolicy().schedule(ctx) is p2
        assert ctx.ready_queue.pids == [1]

    def test_higher_waiter_preempts(self) -> None:
        """A more important waiter preempts the current."""
        ctx, (p1, p2) = _context((3, PRIORITY_LOW), (3, PRIORITY_HIGH))
        _make_current(ctx, p1, age=1)
        assert PriorityPolicy().schedule(ctx) is p2
        assert p1.status is ProcessStatus.READY

    def test_compares_effective_priority(self) -> None:
        """A boosted process outranks its base priority."""
        ctx, (_p1, p2) = _context((3, PRIORITY_MEDIUM), (3, PRIORITY_LOW))
        p2.effective_priority = PRIORITY_HIGH
        assert PriorityPolicy().schedule(ctx) is p2
