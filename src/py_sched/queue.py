"""Process arena and ordered queues of process handles.

Processes live in a ``ProcessTable`` keyed by PID.  Queues never hold
process objects; they hold PIDs, and resolve them through the table
when iterated.  The table also owns the *membership index*: for every
PID, the one queue it currently sits in (if any).

That index is what makes the central invariant checkable by
construction: a process is in at most one queue at a time.  Appending a
PID that is already queued somewhere raises ``ConsistencyError``;
``ProcessTable.move`` takes a handle out of its source queue and puts it
into the destination in a single step.

``ProcessQueue`` is backed by an insertion-ordered ``dict`` rather than a
``deque``, so that both tail-append and removal-by-handle are O(1) while
iteration still preserves arrival order.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from py_sched.errors import ConsistencyError

if TYPE_CHECKING:
    from collections.abc import Iterator

    from py_sched.process import Process


class ProcessTable:
    """Arena of live processes plus the queue-membership index."""

    def __init__(self) -> None:
        """Create an empty table."""
        self._processes: dict[int, Process] = {}
        self._membership: dict[int, ProcessQueue] = {}

    def add(self, process: Process) -> None:
        """Register *process* in the arena.

        Raises:
            ConsistencyError: If the PID is already registered.

        """
        if process.pid in self._processes:
            msg = f"PID {process.pid} is already in the process table"
            raise ConsistencyError(msg)
        self._processes[process.pid] = process

    def discard(self, process: Process) -> None:
        """Remove *process* from the arena.

        Raises:
            ConsistencyError: If the process is still sitting in a queue.

        """
        queue = self._membership.get(process.pid)
        if queue is not None:
            msg = f"Cannot remove PID {process.pid}: still queued on {queue.name}"
            raise ConsistencyError(msg)
        self._processes.pop(process.pid, None)

    def get(self, pid: int) -> Process:
        """Return the process with *pid*.

        Raises:
            ConsistencyError: If no such process is registered.

        """
        try:
            return self._processes[pid]
        except KeyError:
            msg = f"Unknown PID {pid}"
            raise ConsistencyError(msg) from None

    def queue_of(self, process: Process) -> ProcessQueue | None:
        """Return the queue *process* is in, or None."""
        return self._membership.get(process.pid)

    def enroll(self, process: Process, queue: ProcessQueue) -> None:
        """Record that *process* joined *queue* (called by ``ProcessQueue``).

        Raises:
            ConsistencyError: If the process is unknown or already queued.

        """
        if process.pid not in self._processes:
            msg = f"Cannot queue unknown PID {process.pid} on {queue.name}"
            raise ConsistencyError(msg)
        owner = self._membership.get(process.pid)
        if owner is not None:
            msg = f"PID {process.pid} is already queued on {owner.name}, cannot join {queue.name}"
            raise ConsistencyError(msg)
        self._membership[process.pid] = queue

    def withdraw(self, process: Process) -> None:
        """Clear the membership slot of *process* (called by ``ProcessQueue``)."""
        self._membership.pop(process.pid, None)

    def move(self, process: Process, dest: ProcessQueue) -> None:
        """Move *process* from whatever queue it is in to the tail of *dest*."""
        source = self._membership.get(process.pid)
        if source is not None:
            source.remove(process)
        dest.append(process)

    def __contains__(self, pid: object) -> bool:
        """Return True if *pid* is a registered process."""
        return pid in self._processes

    def __iter__(self) -> Iterator[Process]:
        """Iterate over registered processes in PID-registration order."""
        return iter(list(self._processes.values()))

    def __len__(self) -> int:
        """Return the number of registered processes."""
        return len(self._processes)


class ProcessQueue:
    """An ordered queue of process handles.

    Supports tail-append, head-peek, head-pop, removal by handle and an
    emptiness query.  Iteration yields ``Process`` objects in queue order.
    """

    def __init__(self, name: str, *, table: ProcessTable) -> None:
        """Create an empty queue bound to *table*.

        Args:
            name: Label used in diagnostics (e.g. ``"ready"``).
            table: The arena that resolves PIDs and tracks membership.

        """
        self._name = name
        self._table = table
        self._pids: dict[int, None] = {}

    @property
    def name(self) -> str:
        """Return the queue label."""
        return self._name

    @property
    def pids(self) -> list[int]:
        """Return a snapshot of the queued PIDs in order."""
        return list(self._pids)

    def append(self, process: Process) -> None:
        """Append *process* at the tail.

        Raises:
            ConsistencyError: If the process is already in any queue.

        """
        self._table.enroll(process, self)
        self._pids[process.pid] = None

    def remove(self, process: Process) -> None:
        """Remove *process* from this queue.

        Raises:
            ConsistencyError: If the process is not in this queue.

        """
        if process.pid not in self._pids:
            msg = f"PID {process.pid} is not queued on {self._name}"
            raise ConsistencyError(msg)
        del self._pids[process.pid]
        self._table.withdraw(process)

    def head(self) -> Process | None:
        """Return the process at the head without removing it, or None."""
        for pid in self._pids:
            return self._table.get(pid)
        return None

    def pop_head(self) -> Process | None:
        """Remove and return the process at the head, or None if empty."""
        process = self.head()
        if process is not None:
            self.remove(process)
        return process

    def is_empty(self) -> bool:
        """Return True if the queue holds no processes."""
        return not self._pids

    def __contains__(self, process: object) -> bool:
        """Return True if *process* (a ``Process``) is in this queue."""
        pid = getattr(process, "pid", None)
        return pid in self._pids

    def __iter__(self) -> Iterator[Process]:
        """Iterate over a snapshot of the queued processes, head first."""
        return iter([self._table.get(pid) for pid in self._pids])

    def __len__(self) -> int:
        """Return the number of queued processes."""
        return len(self._pids)

    def __bool__(self) -> bool:
        """Return True if the queue is non-empty."""
        return bool(self._pids)

    def __repr__(self) -> str:
        """Return a debug-friendly representation."""
        return f"ProcessQueue({self._name!r}, pids={list(self._pids)})"
