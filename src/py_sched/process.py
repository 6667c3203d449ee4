"""Process — the unit of work the scheduler hands the CPU to.

A simulated process knows how long it needs the CPU (its *lifespan*),
how long it has had it so far (its *age*), and how important it is (its
*priority*).  It carries no queue links of its own: queue membership is
tracked by the ``ProcessTable`` arena, so a process is referenced
everywhere by its PID.

Status transitions are enforced: each transition method checks the
source status and raises ``ConsistencyError`` if the caller got it
wrong.  A broken transition always means a bug in the driver or in a
policy, so there is nothing to recover.

State machine::

    READY ⇄ RUNNING → FINISHED
      ↑        ↓
      └─── BLOCKED

Priorities come in two flavours.  ``priority`` is the *base* priority
from the workload and never changes.  ``effective_priority`` is what the
priority-family policies compare; it starts equal to the base and is
raised or restored by aging, priority ceilings and priority inheritance.
"""

from __future__ import annotations

from enum import StrEnum

from py_sched.errors import ConsistencyError


class ProcessStatus(StrEnum):
    """Lifecycle status of a simulated process.

    - READY: waiting in the ready queue for CPU time.
    - RUNNING: occupying the CPU (the current process).
    - BLOCKED: parked in a resource's wait queue.
    - FINISHED: consumed its whole lifespan.
    """

    READY = "ready"
    RUNNING = "running"
    BLOCKED = "blocked"
    FINISHED = "finished"


class Process:
    """A simulated process (the Process Control Block)."""

    def __init__(
        self,
        *,
        pid: int,
        lifespan: int,
        priority: int = 0,
        name: str | None = None,
        arrival: int = 0,
    ) -> None:
        """Create a READY process.

        Args:
            pid: Stable handle used by every queue and resource.
            lifespan: Total CPU ticks the process needs (must be positive).
            priority: Base priority (higher = more important).
            name: Human-readable label; defaults to ``P<pid>``.
            arrival: Tick at which the driver forked it.

        Raises:
            ValueError: If *lifespan* is not positive.

        """
        if lifespan < 1:
            msg = f"Process {pid}: lifespan must be positive, got {lifespan}"
            raise ValueError(msg)
        self._pid = pid
        self._name = name if name is not None else f"P{pid}"
        self._lifespan = lifespan
        self._priority = priority
        self._effective_priority = priority
        self._arrival = arrival
        self._status = ProcessStatus.READY
        self.age = 0

    @property
    def pid(self) -> int:
        """Return the process identifier."""
        return self._pid

    @property
    def name(self) -> str:
        """Return the process name."""
        return self._name

    @property
    def lifespan(self) -> int:
        """Return the total number of ticks the process needs."""
        return self._lifespan

    @property
    def arrival(self) -> int:
        """Return the tick the process was forked at."""
        return self._arrival

    @property
    def priority(self) -> int:
        """Return the base priority (immutable)."""
        return self._priority

    @property
    def effective_priority(self) -> int:
        """Return the priority the scheduler compares (may be boosted)."""
        return self._effective_priority

    @effective_priority.setter
    def effective_priority(self, value: int) -> None:
        """Set the effective priority (aging, ceilings, inheritance)."""
        self._effective_priority = value

    @property
    def status(self) -> ProcessStatus:
        """Return the current status."""
        return self._status

    @property
    def remaining(self) -> int:
        """Return the ticks still needed to complete (never negative)."""
        return max(self._lifespan - self.age, 0)

    @property
    def finished(self) -> bool:
        """Return True once the process has consumed its whole lifespan."""
        return self.age >= self._lifespan

    @property
    def blocked(self) -> bool:
        """Return True while the process waits on a resource."""
        return self._status is ProcessStatus.BLOCKED

    def _transition(self, action: str, expected: ProcessStatus, target: ProcessStatus) -> None:
        """Move from *expected* to *target* or raise ``ConsistencyError``."""
        if self._status is not expected:
            msg = f"Cannot {action}: process {self._pid} is {self._status}, expected {expected}"
            raise ConsistencyError(msg)
        self._status = target

    def dispatch(self) -> None:
        """Transition READY → RUNNING. Give the process the CPU."""
        self._transition("dispatch", ProcessStatus.READY, ProcessStatus.RUNNING)

    def preempt(self) -> None:
        """Transition RUNNING → READY. Put the process back in line."""
        self._transition("preempt", ProcessStatus.RUNNING, ProcessStatus.READY)

    def block(self) -> None:
        """Transition RUNNING → BLOCKED. Wait for a resource."""
        self._transition("block", ProcessStatus.RUNNING, ProcessStatus.BLOCKED)

    def wake(self) -> None:
        """Transition BLOCKED → READY. The awaited resource was released."""
        self._transition("wake", ProcessStatus.BLOCKED, ProcessStatus.READY)

    def finish(self) -> None:
        """Transition RUNNING → FINISHED.

        Raises:
            ConsistencyError: If the process still has lifespan left.

        """
        if not self.finished:
            msg = f"Cannot finish: process {self._pid} has {self.remaining} ticks left"
            raise ConsistencyError(msg)
        self._transition("finish", ProcessStatus.RUNNING, ProcessStatus.FINISHED)

    def __repr__(self) -> str:
        """Return a debug-friendly representation."""
        return (
            f"Process(pid={self._pid}, name={self._name!r}, status={self._status}, "
            f"age={self.age}/{self._lifespan}, prio={self._effective_priority})"
        )
