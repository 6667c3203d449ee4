"""Tests for the priority extensions: aging, priority ceiling, inheritance.

The scheduling decision is PriorityPolicy's in every case; these tests
focus on how each extension moves ``effective_priority`` around.
"""

import pytest

from py_sched.context import SchedContext
from py_sched.inheritance import PriorityInheritance
from py_sched.policies import (
    AgingPriorityPolicy,
    PriorityCeilingPolicy,
    PriorityInheritancePolicy,
)
from py_sched.process import Process, ProcessStatus

PRIORITY_LOW = 1
PRIORITY_MEDIUM = 5
PRIORITY_HIGH = 10
CEILING_MEDIUM = 7
CEILING_HIGH = 12
R0 = 0
R1 = 1


def _context(*priorities: int) -> tuple[SchedContext, list[Process]]:
    ctx = SchedContext(nr_resources=2)
    processes = []
    for pid, priority in enumerate(priorities, start=1):
        process = Process(pid=pid, lifespan=20, priority=priority)
        ctx.admit(process)
        processes.append(process)
    return ctx, processes


def _switch_to(ctx: SchedContext, process: Process) -> None:
    """Preempt a still-running current and dispatch *process*, like the driver."""
    current = ctx.current
    if current is not None and current.status is ProcessStatus.RUNNING:
        ctx.requeue(current)
    ctx.take(process)
    process.dispatch()
    ctx.current = process


class TestAging:
    """Verify the aging bonus and its reset."""

    def test_rejects_non_positive_interval(self) -> None:
        """An aging interval below one is meaningless."""
        with pytest.raises(ValueError, match="aging_interval"):
            AgingPriorityPolicy(aging_interval=0)

    def test_waiter_gains_one_level_per_round(self) -> None:
        """Each scheduling round raises a waiter's effective priority by the boost."""
        ctx, (high, low) = _context(PRIORITY_HIGH, PRIORITY_LOW)
        _switch_to(ctx, high)
        policy = AgingPriorityPolicy()
        rounds = 3
        for _ in range(rounds):
            assert policy.schedule(ctx) is high
        assert low.effective_priority == PRIORITY_LOW + rounds
        assert low.priority == PRIORITY_LOW

    def test_interval_slows_the_boost(self) -> None:
        """With an interval of two, the bonus grows every second round."""
        ctx, (high, low) = _context(PRIORITY_HIGH, PRIORITY_LOW)
        _switch_to(ctx, high)
        policy = AgingPriorityPolicy(aging_interval=2)
        for _ in range(3):
            policy.schedule(ctx)
        assert policy.bonus(low) == 1

    def test_bonus_is_capped(self) -> None:
        """The accumulated bonus never exceeds max_boost."""
        ctx, (high, low) = _context(PRIORITY_HIGH, PRIORITY_LOW)
        _switch_to(ctx, high)
        cap = 2
        policy = AgingPriorityPolicy(max_boost=cap)
        for _ in range(PRIORITY_HIGH):
            assert policy.schedule(ctx) is high
        assert low.effective_priority == PRIORITY_LOW + cap

    def test_aged_waiter_eventually_wins_and_resets(self) -> None:
        """Once the bonus ties the runner, the waiter runs and both lose their bonus."""
        ctx, (high, low) = _context(PRIORITY_MEDIUM, PRIORITY_LOW)
        _switch_to(ctx, high)
        policy = AgingPriorityPolicy()
        rounds_to_tie = PRIORITY_MEDIUM - PRIORITY_LOW
        for _ in range(rounds_to_tie - 1):
            assert policy.schedule(ctx) is high
        assert policy.schedule(ctx) is low
        assert low.effective_priority == PRIORITY_LOW
        assert high.effective_priority == PRIORITY_MEDIUM
        assert policy.bonus(low) == 0
        assert ctx.ready_queue.pids == [high.pid]

    def test_initialize_forgets_counters(self) -> None:
        """A new run starts without any accumulated waiting."""
        ctx, (high, low) = _context(PRIORITY_HIGH, PRIORITY_LOW)
        _switch_to(ctx, high)
        policy = AgingPriorityPolicy()
        policy.schedule(ctx)
        assert policy.initialize(ctx)
        assert policy.bonus(low) == 0


class TestPriorityCeiling:
    """Verify immediate ceiling raising and release."""

    def test_acquire_raises_to_ceiling(self) -> None:
        """The new owner runs at the resource's ceiling."""
        ctx, (p1,) = _context(PRIORITY_LOW)
        ctx.resource(R0).ceiling = CEILING_HIGH
        _switch_to(ctx, p1)
        assert PriorityCeilingPolicy().acquire(ctx, R0)
        assert p1.effective_priority == CEILING_HIGH

    def test_low_ceiling_never_lowers(self) -> None:
        """A ceiling below the owner's priority leaves it unchanged."""
        ctx, (p1,) = _context(PRIORITY_HIGH)
        ctx.resource(R0).ceiling = PRIORITY_LOW
        _switch_to(ctx, p1)
        PriorityCeilingPolicy().acquire(ctx, R0)
        assert p1.effective_priority == PRIORITY_HIGH

    def test_resource_without_ceiling(self) -> None:
        """An unused ceiling slot means no raise."""
        ctx, (p1,) = _context(PRIORITY_LOW)
        _switch_to(ctx, p1)
        PriorityCeilingPolicy().acquire(ctx, R0)
        assert p1.effective_priority == PRIORITY_LOW

    def test_refused_acquire_does_not_raise(self) -> None:
        """Only owners are raised, not blocked requesters."""
        ctx, (p1, p2) = _context(PRIORITY_LOW, PRIORITY_LOW)
        ctx.resource(R0).ceiling = CEILING_HIGH
        policy = PriorityCeilingPolicy()
        _switch_to(ctx, p1)
        policy.acquire(ctx, R0)
        _switch_to(ctx, p2)
        assert not policy.acquire(ctx, R0)
        assert p2.effective_priority == PRIORITY_LOW

    def test_release_steps_down_through_held_ceilings(self) -> None:
        """Releasing drops to the highest ceiling still held, then to base."""
        ctx, (p1,) = _context(PRIORITY_LOW)
        ctx.resource(R0).ceiling = CEILING_MEDIUM
        ctx.resource(R1).ceiling = CEILING_HIGH
        policy = PriorityCeilingPolicy()
        _switch_to(ctx, p1)
        policy.acquire(ctx, R0)
        policy.acquire(ctx, R1)
        assert p1.effective_priority == CEILING_HIGH
        policy.release(ctx, R1)
        assert p1.effective_priority == CEILING_MEDIUM
        policy.release(ctx, R0)
        assert p1.effective_priority == PRIORITY_LOW


class TestPriorityInheritance:
    """Verify donation along owner chains and restoration on release."""

    def test_blocked_waiter_donates_to_owner(self) -> None:
        """The owner inherits the priority of a higher waiter."""
        ctx, (low, high) = _context(PRIORITY_LOW, PRIORITY_HIGH)
        policy = PriorityInheritancePolicy()
        _switch_to(ctx, low)
        policy.acquire(ctx, R0)
        _switch_to(ctx, high)
        assert not policy.acquire(ctx, R0)
        assert low.effective_priority == PRIORITY_HIGH
        assert low.priority == PRIORITY_LOW

    def test_lower_waiter_does_not_lower_owner(self) -> None:
        """Donation only ever raises."""
        ctx, (high, low) = _context(PRIORITY_HIGH, PRIORITY_LOW)
        policy = PriorityInheritancePolicy()
        _switch_to(ctx, high)
        policy.acquire(ctx, R0)
        _switch_to(ctx, low)
        policy.acquire(ctx, R0)
        assert high.effective_priority == PRIORITY_HIGH

    def test_donation_is_transitive(self) -> None:
        """A donation follows the chain of owners that are themselves blocked."""
        ctx, (low, medium, high) = _context(PRIORITY_LOW, PRIORITY_MEDIUM, PRIORITY_HIGH)
        policy = PriorityInheritancePolicy()
        _switch_to(ctx, low)
        policy.acquire(ctx, R0)
        _switch_to(ctx, medium)
        policy.acquire(ctx, R1)
        assert not policy.acquire(ctx, R0)
        _switch_to(ctx, high)
        assert not policy.acquire(ctx, R1)
        assert medium.effective_priority == PRIORITY_HIGH
        assert low.effective_priority == PRIORITY_HIGH

    def test_cycle_terminates(self) -> None:
        """A deadlock cycle does not make the donation walk loop forever."""
        ctx, (p1, p2) = _context(PRIORITY_LOW, PRIORITY_MEDIUM)
        policy = PriorityInheritancePolicy()
        _switch_to(ctx, p1)
        policy.acquire(ctx, R0)
        _switch_to(ctx, p2)
        policy.acquire(ctx, R1)
        _switch_to(ctx, p1)
        assert not policy.acquire(ctx, R1)
        _switch_to(ctx, p2)
        assert not policy.acquire(ctx, R0)
        assert p1.effective_priority == PRIORITY_MEDIUM
        assert p1.blocked
        assert p2.blocked

    def test_release_restores_base(self) -> None:
        """After release the owner drops back and the waiter is READY."""
        ctx, (low, high) = _context(PRIORITY_LOW, PRIORITY_HIGH)
        policy = PriorityInheritancePolicy()
        _switch_to(ctx, low)
        policy.acquire(ctx, R0)
        _switch_to(ctx, high)
        policy.acquire(ctx, R0)
        _switch_to(ctx, low)
        policy.release(ctx, R0)
        assert low.effective_priority == PRIORITY_LOW
        assert high.status is ProcessStatus.READY
        assert ctx.resource(R0).owner is None

    def test_release_keeps_other_donations(self) -> None:
        """Waiters on a resource still held keep the owner boosted."""
        ctx, (low, medium, high) = _context(PRIORITY_LOW, PRIORITY_MEDIUM, PRIORITY_HIGH)
        policy = PriorityInheritancePolicy()
        _switch_to(ctx, low)
        policy.acquire(ctx, R0)
        policy.acquire(ctx, R1)
        _switch_to(ctx, medium)
        policy.acquire(ctx, R0)
        _switch_to(ctx, high)
        policy.acquire(ctx, R1)
        assert low.effective_priority == PRIORITY_HIGH
        _switch_to(ctx, low)
        policy.release(ctx, R1)
        assert low.effective_priority == PRIORITY_MEDIUM

    def test_max_waiter_priority_without_resources(self) -> None:
        """A process holding nothing has only its own base priority."""
        ctx, (p1,) = _context(PRIORITY_MEDIUM)
        assert PriorityInheritance.max_waiter_priority(ctx, p1) == PRIORITY_MEDIUM
