"""Human-readable reports: status dumps, timelines and summaries.

All functions here are pure (they take state and return strings), so
the CLI, the web API and the tests can share them.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from py_sched.context import SchedContext
    from py_sched.process import Process
    from py_sched.simulator import SimulationResult

_RULE = "-" * 48


def _describe(process: Process) -> str:
    prio = f"prio {process.effective_priority}"
    if process.effective_priority != process.priority:
        prio += f" (base {process.priority})"
    return f"{process.pid:3d} {process.name:<12} age {process.age}/{process.lifespan}  {prio}"


def dump_status(ctx: SchedContext) -> str:
    """Return a snapshot of the current slot, the ready queue and busy resources."""
    lines = [f"tick {ctx.tick}", _RULE, "current:"]
    current = ctx.current
    lines.append(f"  {_describe(current)}  {current.status}" if current else "  (idle)")

    lines.append("ready queue:")
    lines.extend(f"  {_describe(p)}" for p in ctx.ready_queue)
    if ctx.ready_queue.is_empty():
        lines.append("  (empty)")

    lines.append("resources:")
    busy = [r for r in ctx.resources if r.owner is not None or r.waitqueue]
    for resource in busy:
        owner = "free" if resource.owner is None else f"owned by {resource.owner}"
        ceiling = "" if resource.ceiling is None else f", ceiling {resource.ceiling}"
        lines.append(f"  {resource.rid:3d}: {owner}{ceiling}")
        lines.extend(f"       waiting {_describe(w)}" for w in resource.waitqueue)
    if not busy:
        lines.append("  (none in use)")
    lines.append(_RULE)
    return "\n".join(lines)


def format_timeline(result: SimulationResult) -> str:
    """Return one line per tick naming the process that ran (or idle)."""
    lines = []
    for tick, pid in enumerate(result.timeline):
        if pid is None:
            lines.append(f"{tick:5d}: idle")
        else:
            lines.append(f"{tick:5d}: {result.stats[pid].name} (pid {pid})")
    return "\n".join(lines)


def format_summary(result: SimulationResult) -> str:
    """Return a per-process table plus averages and run flags."""
    header = f"{'PID':>4} {'NAME':<12} {'ARR':>4} {'LIFE':>5} {'PRIO':>5} {'END':>5} {'WAIT':>5}"
    lines = [f"policy: {result.policy_name}", header]
    for stats in result.stats.values():
        end = "-" if stats.finish is None else str(stats.finish)
        wait = "-" if stats.waiting is None else str(stats.waiting)
        lines.append(
            f"{stats.pid:>4} {stats.name:<12} {stats.arrival:>4} {stats.lifespan:>5} "
            f"{stats.priority:>5} {end:>5} {wait:>5}"
        )
    avg = result.averages()
    lines.append(
        f"ticks {result.ticks}, context switches {result.context_switches}, "
        f"avg wait {avg['waiting']:.2f}, avg turnaround {avg['turnaround']:.2f}, "
        f"avg response {avg['response']:.2f}"
    )
    if result.stalled:
        lines.append(f"STALLED: blocked forever: {', '.join(map(str, result.stalled))}")
    if result.truncated:
        lines.append("TRUNCATED: tick limit reached")
    return "\n".join(lines)
