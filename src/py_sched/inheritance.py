"""Priority inheritance and priority ceilings — bounding priority inversion.

Priority inversion happens when a high-priority process blocks on a
resource held by a low-priority process, while medium-priority processes
(which don't need the resource at all) keep winning the CPU.  The
high-priority process waits for as long as the medium ones keep running.

Two classic protocols shorten that window by raising the *holder's*
effective priority while it owns the resource:

- **Priority inheritance** (``PriorityInheritance``): when a waiter
  blocks, it donates its effective priority to the owner if that is
  higher.  If the owner is itself blocked on another resource, the
  donation travels along the chain of owners.  On release, the releaser
  falls back to the highest priority still donated to it by the waiters
  of the resources it keeps holding, or to its base priority.
- **Priority ceiling** (``PriorityCeiling``): each resource carries a
  static ceiling: the highest base priority of anyone who ever uses it.
  The moment a process acquires the resource, it runs at the ceiling.
  On release it drops to the highest ceiling among the resources it
  still holds, or to its base priority.

Both work purely on ``SchedContext`` state: the owner of a resource and
the contents of its wait queue are the only bookkeeping needed, so there
is no second copy of ownership to keep in sync.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from py_sched.logging import LogLevel

if TYPE_CHECKING:
    from py_sched.context import Resource, SchedContext
    from py_sched.process import Process


class PriorityInheritance:
    """Donate waiter priority to resource owners, transitively."""

    def on_block(self, ctx: SchedContext, waiter: Process, resource: Resource) -> None:
        """Boost the owner of *resource* (and its blockers) to *waiter*'s priority.

        Walks the blocked-on chain: owner → resource it waits on → that
        resource's owner → ...  A visited set stops the walk on cycles
        (a deadlock), so the donation terminates either way.

        Args:
            ctx: The simulation context.
            waiter: The process that just blocked on *resource*.
            resource: The contended resource.

        """
        priority = waiter.effective_priority
        visited: set[int] = {waiter.pid}
        target = resource

        while target.owner is not None and target.owner not in visited:
            owner = ctx.table.get(target.owner)
            if owner.effective_priority < priority:
                ctx.log(
                    LogLevel.DEBUG,
                    f"pid {owner.pid} inherits priority {priority} from pid {waiter.pid} "
                    f"(was {owner.effective_priority})",
                    source="inheritance",
                )
                owner.effective_priority = priority
            visited.add(owner.pid)

            next_target = ctx.waiting_on(owner)
            if next_target is None:
                break
            target = next_target

    def on_release(self, ctx: SchedContext, releaser: Process) -> None:
        """Recompute *releaser*'s effective priority after giving up a resource."""
        restored = max(releaser.priority, self.max_waiter_priority(ctx, releaser))
        if restored != releaser.effective_priority:
            ctx.log(
                LogLevel.DEBUG,
                f"pid {releaser.pid} priority restored {releaser.effective_priority} -> {restored}",
                source="inheritance",
            )
        releaser.effective_priority = restored

    @staticmethod
    def max_waiter_priority(ctx: SchedContext, process: Process) -> int:
        """Return the highest effective priority among waiters on *process*'s resources."""
        best = process.priority
        for resource in ctx.held_by(process):
            for waiter in resource.waitqueue:
                best = max(best, waiter.effective_priority)
        return best


class PriorityCeiling:
    """Run resource owners at the resource's static priority ceiling."""

    def on_acquire(self, ctx: SchedContext, owner: Process, resource: Resource) -> None:
        """Raise *owner* to the ceiling of the resource it just acquired."""
        if resource.ceiling is None or resource.ceiling <= owner.effective_priority:
            return
        ctx.log(
            LogLevel.DEBUG,
            f"pid {owner.pid} raised to ceiling {resource.ceiling} of resource {resource.rid}",
            source="inheritance",
        )
        owner.effective_priority = resource.ceiling

    def on_release(self, ctx: SchedContext, releaser: Process) -> None:
        """Drop *releaser* to the highest ceiling it still holds (or base)."""
        ceilings = [r.ceiling for r in ctx.held_by(releaser) if r.ceiling is not None]
        restored = max([releaser.priority, *ceilings])
        if restored != releaser.effective_priority:
            ctx.log(
                LogLevel.DEBUG,
                f"pid {releaser.pid} priority restored {releaser.effective_priority} -> {restored}",
                source="inheritance",
            )
        releaser.effective_priority = restored
