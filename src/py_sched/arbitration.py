"""Resource arbitration — who gets an exclusive resource, and who waits.

Both arbiters share the same acquire protocol:

- If the resource is free, the requester (the current process) becomes
  its owner and the call reports success.
- Otherwise the requester is marked BLOCKED, parked at the tail of the
  resource's wait queue, and the call reports the resource unavailable.
  The driver then asks the policy to schedule someone else.

They differ only in *which* waiter a release wakes:

- **FCFSArbiter** wakes the waiter that arrived first.  Ties cannot
  happen: the first arrival is structurally at the head of the queue.
- **PriorityArbiter** wakes the waiter with the strictly greatest
  effective priority; among equals, the earliest arrival wins.  Nobody
  is boosted, so a low-priority waiter can starve indefinitely.

A release never transfers ownership.  The woken process goes back to
the ready queue and re-issues its acquisition when it is next scheduled,
competing with anybody else who asks in the meantime.

Releasing a resource the caller does not own is a broken invariant, not
a runtime condition, so it raises ``ConsistencyError``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from py_sched.errors import ConsistencyError
from py_sched.logging import LogLevel

if TYPE_CHECKING:
    from py_sched.context import Resource, SchedContext
    from py_sched.process import Process


class FCFSArbiter:
    """Serve each resource in request order, ignoring priority."""

    def acquire(self, ctx: SchedContext, resource_id: int) -> bool:
        """Grant *resource_id* to the current process, or block it.

        Args:
            ctx: The simulation context (``ctx.current`` is the requester).
            resource_id: Index into the resource table.

        Returns:
            True if the resource was granted, False if the requester is
            now BLOCKED in the resource's wait queue.

        Raises:
            ConsistencyError: If there is no current process, or it is
                not running.

        """
        requester = ctx.current
        if requester is None:
            msg = f"acquire({resource_id}) called with no current process"
            raise ConsistencyError(msg)
        resource = ctx.resource(resource_id)

        if resource.is_free:
            resource.owner = requester.pid
            ctx.log(
                LogLevel.DEBUG,
                f"resource {resource_id} granted to pid {requester.pid}",
                source="arbiter",
            )
            return True

        ctx.block(requester, resource)
        ctx.log(
            LogLevel.DEBUG,
            f"pid {requester.pid} blocked on resource {resource_id} (owner pid {resource.owner})",
            source="arbiter",
        )
        return False

    def release(self, ctx: SchedContext, resource_id: int) -> Process | None:
        """Give up *resource_id* and wake at most one waiter.

        Returns:
            The waiter moved to the ready queue, or None if nobody waited.

        Raises:
            ConsistencyError: If the current process does not own the
                resource, or the chosen waiter is not BLOCKED.

        """
        resource = ctx.resource(resource_id)
        releaser = ctx.current
        if releaser is None or resource.owner != releaser.pid:
            who = "no process" if releaser is None else f"pid {releaser.pid}"
            msg = f"Resource {resource_id} released by {who}, but owned by {resource.owner}"
            raise ConsistencyError(msg)

        resource.owner = None
        ctx.log(
            LogLevel.DEBUG,
            f"pid {releaser.pid} released resource {resource_id}",
            source="arbiter",
        )

        waiter = self.pick_waiter(resource)
        if waiter is None:
            return None
        ctx.wake(waiter)
        ctx.log(
            LogLevel.DEBUG,
            f"pid {waiter.pid} woken by release of resource {resource_id}",
            source="arbiter",
        )
        return waiter

    def pick_waiter(self, resource: Resource) -> Process | None:
        """Return the earliest waiter, or None."""
        return resource.waitqueue.head()


class PriorityArbiter(FCFSArbiter):
    """Wake the highest-priority waiter first (FIFO among equals)."""

    def pick_waiter(self, resource: Resource) -> Process | None:
        """Return the waiter with the greatest effective priority, or None.

        The scan walks the wait queue head to tail and only replaces the
        best candidate on a *strictly* greater priority, so the earliest
        arrival wins ties.
        """
        best: Process | None = None
        for waiter in resource.waitqueue:
            if best is None or waiter.effective_priority > best.effective_priority:
                best = waiter
        return best
