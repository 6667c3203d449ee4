"""Scheduling policies — decide, once per tick, who occupies the CPU.

Every policy implements the same small interface (``SchedulingPolicy``):

- ``initialize`` / ``finalize`` — per-run setup and teardown hooks.
  Most policies need neither, and both are safe to call repeatedly.
- ``acquire`` / ``release`` — the resource protocol, delegated to an
  arbiter (``py_sched.arbitration``).
- ``schedule`` — a decision over {current process, ready queue} that
  returns the process to run next, or None for an idle tick.

Built-in policies:

- **FCFSPolicy**: non-preemptive, strict arrival order.
- **SJFPolicy** (Shortest Job First): non-preemptive; on reselection
  picks the smallest *total* lifespan.  A shorter job that arrives later
  never interrupts a running one.
- **STCFPolicy** (Shortest Time-to-Complete First): preemptive SJF over
  *remaining* time.  The running process is displaced only by a strictly
  shorter waiter.
- **RoundRobinPolicy**: preemptive, one-tick quantum, rotate to the tail.
- **PriorityPolicy**: preemptive, highest effective priority first.  A
  running process keeps the CPU only against strictly lower priorities;
  on a tie it rotates to the tail so equal peers interleave.

Extension policies (all share PriorityPolicy's decision and the priority
arbiter; they only maintain ``effective_priority`` differently):

- **AgingPriorityPolicy**: waiting processes earn a bonus over time.
- **PriorityCeilingPolicy**: owners run at their resources' ceilings.
- **PriorityInheritancePolicy**: blocked waiters lend their priority to
  the owner.

Shared conventions:

- A process is *runnable* when it is present, not blocked, and has
  lifespan left.
- Ready-queue scans run head to tail and only replace the best candidate
  on a strict improvement, so the earliest-queued process wins ties.
- A blocked current process is never put back on the ready queue; it
  already sits in a resource's wait queue.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from py_sched.arbitration import FCFSArbiter, PriorityArbiter
from py_sched.inheritance import PriorityCeiling, PriorityInheritance
from py_sched.logging import LogLevel

if TYPE_CHECKING:
    from py_sched.context import SchedContext
    from py_sched.process import Process


class SchedulingPolicy(Protocol):
    """Interface that every scheduling policy must satisfy."""

    name: str

    def initialize(self, ctx: SchedContext) -> bool:
        """Prepare per-run state; return False if the policy cannot run."""
        ...  # pragma: no cover

    def finalize(self, ctx: SchedContext) -> None:
        """Tear down per-run state."""
        ...  # pragma: no cover

    def acquire(self, ctx: SchedContext, resource_id: int) -> bool:
        """Try to grant *resource_id* to the current process."""
        ...  # pragma: no cover

    def release(self, ctx: SchedContext, resource_id: int) -> None:
        """Release *resource_id* held by the current process."""
        ...  # pragma: no cover

    def schedule(self, ctx: SchedContext) -> Process | None:
        """Return the process to run next, or None if nothing can run."""
        ...  # pragma: no cover


def runnable(process: Process | None) -> bool:
    """Return True if *process* exists, is not blocked, and has lifespan left."""
    return process is not None and not process.blocked and not process.finished


class FCFSPolicy:
    """First Come, First Served — run each process to completion in arrival order."""

    name = "FCFS"

    def __init__(self) -> None:
        """Create the policy with its resource arbiter."""
        self._arbiter = self._make_arbiter()

    @staticmethod
    def _make_arbiter() -> FCFSArbiter:
        return FCFSArbiter()

    def initialize(self, ctx: SchedContext) -> bool:  # noqa: ARG002
        """Nothing to prepare."""
        return True

    def finalize(self, ctx: SchedContext) -> None:  # noqa: ARG002
        """Nothing to tear down."""

    def acquire(self, ctx: SchedContext, resource_id: int) -> bool:
        """Delegate to the arbiter."""
        return self._arbiter.acquire(ctx, resource_id)

    def release(self, ctx: SchedContext, resource_id: int) -> None:
        """Delegate to the arbiter."""
        self._arbiter.release(ctx, resource_id)

    def schedule(self, ctx: SchedContext) -> Process | None:
        """Keep the current process while it can run; otherwise pop the ready head."""
        current = ctx.current
        if runnable(current):
            return current
        return self.pick_next(ctx)

    def pick_next(self, ctx: SchedContext) -> Process | None:
        """Remove and return the next process from the ready queue, or None."""
        return ctx.ready_queue.pop_head()


class SJFPolicy(FCFSPolicy):
    """Shortest Job First — non-preemptive, smallest total lifespan first."""

    name = "Shortest-Job First"

    def pick_next(self, ctx: SchedContext) -> Process | None:
        """Remove and return the ready process with the smallest lifespan."""
        shortest: Process | None = None
        for process in ctx.ready_queue:
            if shortest is None or process.lifespan < shortest.lifespan:
                shortest = process
        if shortest is None:
            return None
        return ctx.take(shortest)


class STCFPolicy(FCFSPolicy):
    """Shortest Time-to-Complete First — preempt for a strictly shorter remainder."""

    name = "Shortest Time-to-Complete First"

    def schedule(self, ctx: SchedContext) -> Process | None:
        """Pick the smallest remaining time, preempting the current if beaten.

        The current process's remaining time is None (rather than a huge
        sentinel) when it is absent, blocked, or finished, in which case
        any waiter wins.
        """
        current = ctx.current
        running = current if runnable(current) else None
        if running is not None and ctx.ready_queue.is_empty():
            return running

        best = running.remaining if running is not None else None
        winner: Process | None = None
        for process in ctx.ready_queue:
            if best is None or process.remaining < best:
                winner = process
                best = process.remaining

        if winner is None:
            return running

        if running is not None:
            ctx.log(
                LogLevel.DEBUG,
                f"pid {winner.pid} ({winner.remaining} left) preempts pid {running.pid} "
                f"({running.remaining} left)",
                source="policy",
            )
            ctx.requeue(running)
        return ctx.take(winner)


class RoundRobinPolicy(FCFSPolicy):
    """Round Robin — one-tick quantum, the preempted process goes to the tail."""

    name = "Round-Robin"

    def schedule(self, ctx: SchedContext) -> Process | None:
        """Rotate: take the ready head, then requeue the still-runnable current."""
        current = ctx.current
        running = current if runnable(current) else None
        if running is not None and ctx.ready_queue.is_empty():
            return running

        following = ctx.ready_queue.pop_head()
        if following is None:
            return None
        if running is not None:
            ctx.requeue(running)
        return following


class PriorityPolicy(FCFSPolicy):
    """Preemptive priority scheduling — higher integer means more important.

    Equal priority is resolved as a rotation, not as continuation: a
    running process facing a peer of the same priority goes to the tail.
    Resources are handed to the highest-priority waiter.
    """

    name = "Priority"

    @staticmethod
    def _make_arbiter() -> FCFSArbiter:
        return PriorityArbiter()

    def schedule(self, ctx: SchedContext) -> Process | None:
        """Pick the highest effective priority, keeping the current only if strictly higher."""
        current = ctx.current
        running = current if runnable(current) else None
        if running is not None and ctx.ready_queue.is_empty():
            return running

        winner: Process | None = None
        for process in ctx.ready_queue:
            if winner is None or process.effective_priority > winner.effective_priority:
                winner = process
        if winner is None:
            return None

        if running is not None:
            if running.effective_priority > winner.effective_priority:
                return running
            ctx.log(
                LogLevel.DEBUG,
                f"pid {running.pid} (prio {running.effective_priority}) yields to "
                f"pid {winner.pid} (prio {winner.effective_priority})",
                source="policy",
            )
            ctx.requeue(running)
        return ctx.take(winner)


class AgingPriorityPolicy(PriorityPolicy):
    """Priority scheduling with aging — bound starvation of low priorities.

    Each ``schedule`` call is one aging round: every process in the ready
    queue has its wait counter incremented, and its effective priority
    becomes ``priority + min(max_boost, (waited // aging_interval) *
    aging_boost)``.  Once a process is selected, or is preempted back to
    the ready queue, its counter and bonus reset.
    """

    name = "Priority + aging"

    def __init__(self, *, aging_interval: int = 1, aging_boost: int = 1, max_boost: int = 10) -> None:
        """Create an aging priority policy.

        Args:
            aging_interval: Scheduling rounds a process must wait per boost.
            aging_boost: Priority bonus awarded every *aging_interval* rounds.
            max_boost: Cap on the accumulated bonus.

        """
        if aging_interval < 1:
            msg = f"aging_interval must be positive, got {aging_interval}"
            raise ValueError(msg)
        super().__init__()
        self._aging_interval = aging_interval
        self._aging_boost = aging_boost
        self._max_boost = max_boost
        self._waited: dict[int, int] = {}  # PID → scheduling rounds spent waiting

    @property
    def aging_interval(self) -> int:
        """Return the number of waiting rounds per boost."""
        return self._aging_interval

    @property
    def aging_boost(self) -> int:
        """Return the per-interval priority bonus."""
        return self._aging_boost

    @property
    def max_boost(self) -> int:
        """Return the maximum accumulated bonus."""
        return self._max_boost

    def initialize(self, ctx: SchedContext) -> bool:  # noqa: ARG002
        """Forget all wait counters."""
        self._waited.clear()
        return True

    def finalize(self, ctx: SchedContext) -> None:  # noqa: ARG002
        """Forget all wait counters."""
        self._waited.clear()

    def bonus(self, process: Process) -> int:
        """Return the aging bonus *process* has accumulated."""
        rounds = self._waited.get(process.pid, 0)
        return min(self._max_boost, (rounds // self._aging_interval) * self._aging_boost)

    def schedule(self, ctx: SchedContext) -> Process | None:
        """Age every waiter, then decide exactly like PriorityPolicy."""
        for process in ctx.ready_queue:
            self._waited[process.pid] = self._waited.get(process.pid, 0) + 1
            process.effective_priority = process.priority + self.bonus(process)

        current = ctx.current
        chosen = super().schedule(ctx)
        if chosen is not None and chosen is not current:
            self._reset(chosen)
            if current is not None and current in ctx.ready_queue:
                self._reset(current)
        return chosen

    def _reset(self, process: Process) -> None:
        self._waited.pop(process.pid, None)
        process.effective_priority = process.priority


class PriorityCeilingPolicy(PriorityPolicy):
    """Priority scheduling with the (immediate) priority ceiling protocol."""

    name = "Priority + PCP Protocol"

    def __init__(self) -> None:
        """Create the policy with its ceiling bookkeeping."""
        super().__init__()
        self._ceiling = PriorityCeiling()

    def acquire(self, ctx: SchedContext, resource_id: int) -> bool:
        """Grant as usual, then raise the new owner to the resource ceiling."""
        granted = super().acquire(ctx, resource_id)
        owner = ctx.current
        if granted and owner is not None:
            self._ceiling.on_acquire(ctx, owner, ctx.resource(resource_id))
        return granted

    def release(self, ctx: SchedContext, resource_id: int) -> None:
        """Release as usual, then drop the releaser to its remaining ceilings."""
        releaser = ctx.current
        super().release(ctx, resource_id)
        if releaser is not None:
            self._ceiling.on_release(ctx, releaser)


class PriorityInheritancePolicy(PriorityPolicy):
    """Priority scheduling with the priority inheritance protocol."""

    name = "Priority + PIP Protocol"

    def __init__(self) -> None:
        """Create the policy with its inheritance bookkeeping."""
        super().__init__()
        self._inheritance = PriorityInheritance()

    def acquire(self, ctx: SchedContext, resource_id: int) -> bool:
        """On a failed acquire, donate the waiter's priority up the owner chain."""
        requester = ctx.current
        granted = super().acquire(ctx, resource_id)
        if not granted and requester is not None:
            self._inheritance.on_block(ctx, requester, ctx.resource(resource_id))
        return granted

    def release(self, ctx: SchedContext, resource_id: int) -> None:
        """Release as usual, then give back any priority no longer donated."""
        releaser = ctx.current
        super().release(ctx, resource_id)
        if releaser is not None:
            self._inheritance.on_release(ctx, releaser)
