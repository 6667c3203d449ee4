"""Tick driver — advance simulated time and let the policy decide.

The ``Simulator`` owns one ``SchedContext`` and drives a policy over a
parsed ``Workload``.  Every tick follows the same script:

1. **Fork** — processes whose arrival tick has come are created READY
   and appended to the ready queue in workload order.
2. **Schedule** — ask the policy who runs.  The chosen process then
   issues any acquisitions due at its current age.  If one is refused,
   the process is now BLOCKED in a wait queue and the policy is asked
   again, straight away, within the same tick.
3. **Run** — the chosen process ages by one tick; resources whose
   holding time has elapsed are released through the policy, which may
   wake a waiter.  A process that has consumed its lifespan finishes and
   leaves the table.  With nobody to run, the tick is idle.

The run ends when every process has finished, when nothing can ever run
again (all survivors are blocked: a deadlock, reported but not
resolved), or at ``config.max_ticks``.

Broken invariants (``ConsistencyError``) are fatal: the driver logs them
and lets them propagate.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from py_sched.config import SimulationConfig
from py_sched.context import SchedContext
from py_sched.errors import ConsistencyError
from py_sched.logging import Logger, LogLevel
from py_sched.process import Process

if TYPE_CHECKING:
    from collections.abc import Callable

    from py_sched.policies import SchedulingPolicy
    from py_sched.workload import Acquisition, ProcessSpec, Workload


@dataclass
class ProcessStats:
    """Per-process accounting collected during a run.

    ``first_run`` is the tick the process first held the CPU and
    ``finish`` the tick right after its last one (its completion time).
    """

    pid: int
    name: str
    arrival: int
    lifespan: int
    priority: int
    first_run: int | None = None
    finish: int | None = None

    @property
    def turnaround(self) -> int | None:
        """Return completion time minus arrival, or None if unfinished."""
        return None if self.finish is None else self.finish - self.arrival

    @property
    def waiting(self) -> int | None:
        """Return ticks spent not running between arrival and completion."""
        turnaround = self.turnaround
        return None if turnaround is None else turnaround - self.lifespan

    @property
    def response(self) -> int | None:
        """Return ticks between arrival and the first run, or None."""
        return None if self.first_run is None else self.first_run - self.arrival


@dataclass
class SimulationResult:
    """Outcome of one simulation run."""

    policy_name: str
    timeline: list[int | None] = field(default_factory=lambda: [])  # noqa: PIE807
    stats: dict[int, ProcessStats] = field(default_factory=lambda: {})  # noqa: PIE807
    context_switches: int = 0
    stalled: list[int] = field(default_factory=lambda: [])  # noqa: PIE807
    truncated: bool = False

    @property
    def ticks(self) -> int:
        """Return the number of simulated ticks."""
        return len(self.timeline)

    @property
    def finished(self) -> dict[int, int]:
        """Return PID → completion tick for every finished process."""
        return {pid: s.finish for pid, s in self.stats.items() if s.finish is not None}

    def run_order(self) -> list[int]:
        """Return the timeline with idle ticks and repeats collapsed."""
        order: list[int] = []
        for pid in self.timeline:
            if pid is not None and (not order or order[-1] != pid):
                order.append(pid)
        return order

    def averages(self) -> dict[str, float]:
        """Return average waiting, turnaround and response time of finished processes."""
        done = [s for s in self.stats.values() if s.finish is not None]
        if not done:
            return {"waiting": 0.0, "turnaround": 0.0, "response": 0.0}
        count = len(done)
        return {
            "waiting": sum(s.waiting or 0 for s in done) / count,
            "turnaround": sum(s.turnaround or 0 for s in done) / count,
            "response": sum(s.response or 0 for s in done) / count,
        }


class Simulator:
    """Drive a scheduling policy over a workload, one tick at a time."""

    def __init__(
        self,
        *,
        policy: SchedulingPolicy,
        workload: Workload,
        config: SimulationConfig | None = None,
        logger: Logger | None = None,
    ) -> None:
        """Create a simulator; nothing runs until ``run()``.

        Args:
            policy: The scheduling policy under test.
            workload: Parsed workload; PIDs are assigned in declaration
                order starting at 1.
            config: Run settings; defaults when omitted.
            logger: Event log; a fresh one is created when omitted.

        """
        self._config = config if config is not None else SimulationConfig()
        self._policy = policy
        self._ctx = SchedContext(nr_resources=self._config.nr_resources, logger=logger)
        for rid, ceiling in workload.derived_ceilings().items():
            self._ctx.resource(rid).ceiling = ceiling

        specs = list(enumerate(workload.processes, start=1))
        self._pending: list[tuple[int, ProcessSpec]] = sorted(specs, key=lambda s: s[1].arrival)
        self._due: dict[int, list[Acquisition]] = {pid: list(s.acquisitions) for pid, s in specs}
        self._held: dict[int, list[Acquisition]] = {pid: [] for pid, _ in specs}
        self._result = SimulationResult(policy_name=policy.name)
        for pid, spec in specs:
            self._result.stats[pid] = ProcessStats(
                pid=pid,
                name=spec.name,
                arrival=spec.arrival,
                lifespan=spec.lifespan,
                priority=spec.priority,
            )

    @property
    def context(self) -> SchedContext:
        """Return the simulation context (for inspection and status dumps)."""
        return self._ctx

    @property
    def logger(self) -> Logger:
        """Return the event log."""
        return self._ctx.logger

    @property
    def result(self) -> SimulationResult:
        """Return the result collected so far."""
        return self._result

    def run(self, *, on_tick: Callable[[SchedContext], None] | None = None) -> SimulationResult:
        """Run the simulation to completion, stall, or the tick limit.

        Args:
            on_tick: Called with the context after every simulated tick
                (e.g. to print a status dump).

        Raises:
            ConsistencyError: If the policy fails to initialise or any
                invariant breaks during the run.

        """
        ctx = self._ctx
        if not self._policy.initialize(ctx):
            msg = f"Policy {self._policy.name!r} failed to initialize"
            raise ConsistencyError(msg)
        ctx.log(LogLevel.INFO, f"simulation started with {self._policy.name}", source="driver")
        try:
            while self.step():
                if on_tick is not None:
                    on_tick(ctx)
        except ConsistencyError as e:
            ctx.log(LogLevel.ERROR, str(e), source="driver")
            raise
        finally:
            self._policy.finalize(ctx)
        ctx.log(
            LogLevel.INFO,
            f"simulation ended after {self._result.ticks} ticks",
            source="driver",
        )
        return self._result

    def step(self) -> bool:
        """Simulate one tick; return False once the run is over."""
        ctx = self._ctx
        if ctx.tick >= self._config.max_ticks:
            self._result.truncated = True
            ctx.log(LogLevel.WARNING, "tick limit reached", source="driver")
            return False

        self._fork()
        if not self._pending and len(ctx.table) == 0:
            return False

        running = self._select()
        if running is None:
            if not self._pending and ctx.ready_queue.is_empty():
                self._result.stalled = sorted(p.pid for p in ctx.table)
                ctx.log(
                    LogLevel.WARNING,
                    f"no runnable process left; blocked: {self._result.stalled}",
                    source="driver",
                )
                return False
            self._result.timeline.append(None)
            ctx.log(LogLevel.DEBUG, "idle", source="driver")
        else:
            self._run(running)

        if self._config.check_invariants:
            ctx.check_invariants()
        ctx.tick += 1
        return True

    # -- Tick phases -----------------------------------------------------------

    def _fork(self) -> None:
        """Admit every pending process whose arrival tick has come."""
        ctx = self._ctx
        while self._pending and self._pending[0][1].arrival <= ctx.tick:
            pid, spec = self._pending.pop(0)
            process = Process(
                pid=pid,
                name=spec.name,
                lifespan=spec.lifespan,
                priority=spec.priority,
                arrival=spec.arrival,
            )
            ctx.admit(process)
            ctx.log(
                LogLevel.INFO,
                f"forked pid {pid} ({spec.name}, lifespan {spec.lifespan}, prio {spec.priority})",
                source="driver",
            )

    def _select(self) -> Process | None:
        """Ask the policy for the next process until one gets all it needs."""
        ctx = self._ctx
        while True:
            previous = ctx.current
            chosen = self._policy.schedule(ctx)
            if chosen is None:
                ctx.current = None
                return None

            if chosen is not previous:
                if ctx.table.queue_of(chosen) is not None:
                    msg = f"Policy returned pid {chosen.pid} while it is still queued"
                    raise ConsistencyError(msg)
                chosen.dispatch()
                ctx.current = chosen
                self._result.context_switches += 1
                ctx.log(LogLevel.DEBUG, f"dispatched pid {chosen.pid}", source="driver")

            if self._acquire_due(chosen):
                return chosen

    def _acquire_due(self, process: Process) -> bool:
        """Issue the acquisitions due at *process*'s age; False if it blocked."""
        due = self._due[process.pid]
        for acq in [a for a in due if a.at == process.age]:
            if not self._policy.acquire(self._ctx, acq.resource):
                return False
            due.remove(acq)
            self._held[process.pid].append(acq)
        return True

    def _run(self, process: Process) -> None:
        """Give *process* one tick of CPU, then release and retire as due."""
        ctx = self._ctx
        stats = self._result.stats[process.pid]
        if stats.first_run is None:
            stats.first_run = ctx.tick
        self._result.timeline.append(process.pid)
        process.age += 1

        held = self._held[process.pid]
        for acq in [a for a in held if a.until == process.age]:
            self._policy.release(ctx, acq.resource)
            held.remove(acq)

        if process.finished:
            ctx.retire(process)
            stats.finish = ctx.tick + 1
            ctx.log(LogLevel.INFO, f"pid {process.pid} finished", source="driver")


def run_simulation(
    policy: SchedulingPolicy,
    workload: Workload,
    config: SimulationConfig | None = None,
) -> SimulationResult:
    """Run *workload* under *policy* and return the result."""
    return Simulator(policy=policy, workload=workload, config=config).run()

