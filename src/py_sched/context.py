"""Simulation context — the state every policy operation works on.

The context bundles what a scheduling policy needs to see and mutate:

- the **process table** (arena of live processes, see ``py_sched.queue``),
- the **ready queue** of processes eligible for the CPU,
- the **resource table**: a fixed number of exclusive resources, each
  with an optional owner and a wait queue of blocked requesters,
- the **current** slot: the process that occupies the CPU, if any,
- the simulated **tick** and the event **logger**.

Passing the context explicitly (instead of sharing module globals) means
several independent simulations can run side by side, and a single
policy decision can be tested against a hand-built context.

The helpers here are the only way processes change queues.  Each of them
performs the status transition and the queue move together, so the
invariant "a live process is in exactly one of {current slot, ready
queue, one wait queue}" can only be broken by a bug that
``check_invariants`` will catch.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from py_sched.errors import ConsistencyError
from py_sched.logging import Logger, LogLevel
from py_sched.process import Process, ProcessStatus
from py_sched.queue import ProcessQueue, ProcessTable

if TYPE_CHECKING:
    from collections.abc import Iterator

DEFAULT_NR_RESOURCES = 32


class Resource:
    """An exclusive resource: at most one owner, FIFO-ordered waiters.

    ``ceiling`` is the static priority ceiling used by the priority
    ceiling protocol; it stays None unless a workload or the driver sets
    it.
    """

    def __init__(self, rid: int, *, table: ProcessTable, ceiling: int | None = None) -> None:
        """Create a free resource with an empty wait queue."""
        self._rid = rid
        self.owner: int | None = None
        self.waitqueue = ProcessQueue(f"resource {rid}", table=table)
        self.ceiling = ceiling

    @property
    def rid(self) -> int:
        """Return the resource id."""
        return self._rid

    @property
    def is_free(self) -> bool:
        """Return True if nobody owns the resource."""
        return self.owner is None

    def __repr__(self) -> str:
        """Return a debug-friendly representation."""
        return f"Resource({self._rid}, owner={self.owner}, waiters={self.waitqueue.pids})"


class SchedContext:
    """Explicit state of one simulation, shared by driver and policy."""

    def __init__(
        self,
        *,
        nr_resources: int = DEFAULT_NR_RESOURCES,
        logger: Logger | None = None,
    ) -> None:
        """Create an empty context.

        Args:
            nr_resources: Size of the (fixed) resource table.
            logger: Event log; a fresh one is created when omitted.

        """
        if nr_resources < 1:
            msg = f"nr_resources must be positive, got {nr_resources}"
            raise ValueError(msg)
        self.table = ProcessTable()
        self.ready_queue = ProcessQueue("ready", table=self.table)
        self.resources: tuple[Resource, ...] = tuple(
            Resource(rid, table=self.table) for rid in range(nr_resources)
        )
        self._waitqueues: dict[int, Resource] = {id(r.waitqueue): r for r in self.resources}
        self._current: int | None = None
        self.tick = 0
        self.logger = logger if logger is not None else Logger()

    # -- Current slot ---------------------------------------------------------

    @property
    def current(self) -> Process | None:
        """Return the process occupying the CPU, or None."""
        if self._current is None:
            return None
        return self.table.get(self._current)

    @current.setter
    def current(self, process: Process | None) -> None:
        """Hand the CPU slot to *process* (or empty it)."""
        self._current = None if process is None else process.pid

    # -- Lookup ---------------------------------------------------------------

    def resource(self, rid: int) -> Resource:
        """Return resource *rid*.

        Raises:
            ConsistencyError: If *rid* is outside the resource table.

        """
        if not 0 <= rid < len(self.resources):
            msg = f"Resource {rid} does not exist (table has {len(self.resources)})"
            raise ConsistencyError(msg)
        return self.resources[rid]

    def waiting_on(self, process: Process) -> Resource | None:
        """Return the resource *process* is blocked on, or None."""
        queue = self.table.queue_of(process)
        if queue is None:
            return None
        return self._waitqueues.get(id(queue))

    def held_by(self, process: Process) -> Iterator[Resource]:
        """Yield every resource currently owned by *process*."""
        return (r for r in self.resources if r.owner == process.pid)

    # -- Moves ----------------------------------------------------------------

    def admit(self, process: Process) -> None:
        """Register a newly forked READY process and queue it at the ready tail."""
        if process.status is not ProcessStatus.READY:
            msg = f"Cannot admit process {process.pid}: status is {process.status}, expected ready"
            raise ConsistencyError(msg)
        self.table.add(process)
        self.ready_queue.append(process)

    def take(self, process: Process) -> Process:
        """Remove *process* from the ready queue so it can be dispatched."""
        self.ready_queue.remove(process)
        return process

    def requeue(self, process: Process) -> None:
        """Preempt the running *process* and append it to the ready tail."""
        process.preempt()
        self.table.move(process, self.ready_queue)

    def block(self, process: Process, resource: Resource) -> None:
        """Mark *process* BLOCKED and park it at the tail of the wait queue."""
        process.block()
        self.table.move(process, resource.waitqueue)

    def wake(self, process: Process) -> None:
        """Mark a BLOCKED *process* READY and move it to the ready tail."""
        process.wake()
        self.table.move(process, self.ready_queue)

    def retire(self, process: Process) -> None:
        """Finish *process* and drop it from the table and the CPU slot."""
        process.finish()
        if self._current == process.pid:
            self._current = None
        self.table.discard(process)

    # -- Diagnostics ----------------------------------------------------------

    def log(self, level: LogLevel, message: str, *, source: str) -> None:
        """Record an event stamped with the current tick."""
        self.logger.log(level, message, source=source, tick=self.tick)

    def check_invariants(self) -> None:
        """Verify mutual exclusion and the queue partition.

        Raises:
            ConsistencyError: On the first violated invariant.

        """
        current = self._current
        for process in self.table:
            queue = self.table.queue_of(process)
            in_cpu = process.pid == current
            match process.status:
                case ProcessStatus.READY:
                    ok = queue is self.ready_queue and not in_cpu
                case ProcessStatus.RUNNING:
                    ok = queue is None and in_cpu
                case ProcessStatus.BLOCKED:
                    ok = self.waiting_on(process) is not None
                case _:
                    ok = False
            if not ok:
                where = queue.name if queue is not None else ("cpu" if in_cpu else "nowhere")
                msg = f"Process {process.pid} is {process.status} but sits in {where}"
                raise ConsistencyError(msg)
        for resource in self.resources:
            if resource.owner is not None and resource.owner not in self.table:
                msg = f"Resource {resource.rid} is owned by unknown PID {resource.owner}"
                raise ConsistencyError(msg)
            if resource.owner in resource.waitqueue.pids:
                msg = f"PID {resource.owner} both owns and waits on resource {resource.rid}"
                raise ConsistencyError(msg)
