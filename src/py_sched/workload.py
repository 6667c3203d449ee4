"""Workload descriptions — which processes exist and what they need.

A workload is plain text.  ``#`` starts a comment, blank lines are
ignored, and each line is one command made of whitespace-separated
tokens::

    # optional: pin a resource's priority ceiling
    resource 1 ceiling 7

    process editor
        arrival 0
        lifespan 6
        prio 2
        acquire 1 2 3     # resource 1 at age 2, held for 3 ticks
    end

``acquire <rid> <at> <duration>`` means: when the process has consumed
*at* ticks, it needs resource *rid* before it can run again, and it gives
the resource back after running *duration* more ticks.

The parser is strict.  Every problem is reported as a ``WorkloadError``
carrying the line number, and structural checks that need the whole
block (a missing lifespan, an acquisition outlasting the process) are
made when the block closes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from py_sched.context import DEFAULT_NR_RESOURCES
from py_sched.errors import WorkloadError

if TYPE_CHECKING:
    from pathlib import Path

_COMMENT = "#"


@dataclass(frozen=True)
class Acquisition:
    """A timed request for an exclusive resource.

    Attributes:
        resource: The resource id.
        at: Process age at which the resource is needed.
        duration: Ticks of CPU time the resource is held for.

    """

    resource: int
    at: int
    duration: int

    @property
    def until(self) -> int:
        """Return the process age at which the resource is released."""
        return self.at + self.duration


@dataclass(frozen=True)
class ProcessSpec:
    """One process as described by the workload."""

    name: str
    lifespan: int
    arrival: int = 0
    priority: int = 0
    acquisitions: tuple[Acquisition, ...] = ()


@dataclass(frozen=True)
class Workload:
    """A parsed workload: processes in declaration order plus resource ceilings."""

    processes: tuple[ProcessSpec, ...] = ()
    ceilings: dict[int, int] = field(default_factory=lambda: {})  # noqa: PIE807

    def derived_ceilings(self) -> dict[int, int]:
        """Return the ceiling of every resource any process acquires.

        An explicit ``resource <id> ceiling <n>`` line wins; otherwise the
        ceiling is the highest base priority among the processes that
        declare an acquisition of that resource.
        """
        ceilings: dict[int, int] = {}
        for spec in self.processes:
            for acq in spec.acquisitions:
                ceilings[acq.resource] = max(ceilings.get(acq.resource, spec.priority), spec.priority)
        ceilings.update(self.ceilings)
        return ceilings


def tokenize(line: str) -> list[str]:
    """Split a workload line into tokens, dropping any trailing comment."""
    return line.split(_COMMENT, 1)[0].split()


def _integer(token: str, what: str, lineno: int) -> int:
    try:
        return int(token)
    except ValueError:
        msg = f"{what} must be an integer, got {token!r}"
        raise WorkloadError(msg, line=lineno) from None


def _expect(tokens: list[str], count: int, usage: str, lineno: int) -> None:
    if len(tokens) != count:
        msg = f"usage: {usage}"
        raise WorkloadError(msg, line=lineno)


class _Block:
    """Accumulates one ``process ... end`` block while parsing."""

    def __init__(self, name: str, lineno: int) -> None:
        self.name = name
        self.lineno = lineno
        self.arrival = 0
        self.lifespan: int | None = None
        self.priority = 0
        self.acquisitions: list[tuple[Acquisition, int]] = []

    def close(self) -> ProcessSpec:
        """Validate the whole block and freeze it into a ``ProcessSpec``."""
        if self.lifespan is None:
            msg = f"process {self.name!r} has no lifespan"
            raise WorkloadError(msg, line=self.lineno)
        for acq, lineno in self.acquisitions:
            if acq.until > self.lifespan:
                msg = (
                    f"acquisition of resource {acq.resource} ends at age {acq.until}, "
                    f"after lifespan {self.lifespan}"
                )
                raise WorkloadError(msg, line=lineno)
        for i, (first, _) in enumerate(self.acquisitions):
            for second, lineno in self.acquisitions[i + 1 :]:
                overlap = first.at < second.until and second.at < first.until
                if first.resource == second.resource and overlap:
                    msg = f"resource {second.resource} is acquired twice over overlapping ages"
                    raise WorkloadError(msg, line=lineno)
        return ProcessSpec(
            name=self.name,
            lifespan=self.lifespan,
            arrival=self.arrival,
            priority=self.priority,
            acquisitions=tuple(acq for acq, _ in self.acquisitions),
        )


def parse_workload(text: str, *, nr_resources: int = DEFAULT_NR_RESOURCES) -> Workload:
    """Parse workload *text*.

    Args:
        text: The workload description.
        nr_resources: Size of the resource table; resource ids must lie
            in ``[0, nr_resources)``.

    Returns:
        The parsed workload.

    Raises:
        WorkloadError: On the first malformed line or block.

    """
    processes: list[ProcessSpec] = []
    ceilings: dict[int, int] = {}
    names: set[str] = set()
    block: _Block | None = None

    def resource_id(token: str, lineno: int) -> int:
        rid = _integer(token, "resource id", lineno)
        if not 0 <= rid < nr_resources:
            msg = f"resource {rid} is out of range [0, {nr_resources})"
            raise WorkloadError(msg, line=lineno)
        return rid

    for lineno, line in enumerate(text.splitlines(), start=1):
        tokens = tokenize(line)
        if not tokens:
            continue
        command, args = tokens[0].lower(), tokens[1:]

        if block is None:
            match command:
                case "process":
                    _expect(tokens, 2, "process <name>", lineno)
                    if args[0] in names:
                        msg = f"duplicate process name {args[0]!r}"
                        raise WorkloadError(msg, line=lineno)
                    names.add(args[0])
                    block = _Block(args[0], lineno)
                case "resource":
                    _expect(tokens, 4, "resource <id> ceiling <priority>", lineno)
                    if args[1].lower() != "ceiling":
                        msg = f"unknown resource attribute {args[1]!r}"
                        raise WorkloadError(msg, line=lineno)
                    rid = resource_id(args[0], lineno)
                    ceilings[rid] = _integer(args[2], "ceiling", lineno)
                case _:
                    msg = f"unknown command {tokens[0]!r}"
                    raise WorkloadError(msg, line=lineno)
            continue

        match command:
            case "arrival":
                _expect(tokens, 2, "arrival <tick>", lineno)
                block.arrival = _integer(args[0], "arrival", lineno)
                if block.arrival < 0:
                    msg = f"arrival must not be negative, got {block.arrival}"
                    raise WorkloadError(msg, line=lineno)
            case "lifespan":
                _expect(tokens, 2, "lifespan <ticks>", lineno)
                block.lifespan = _integer(args[0], "lifespan", lineno)
                if block.lifespan < 1:
                    msg = f"lifespan must be positive, got {block.lifespan}"
                    raise WorkloadError(msg, line=lineno)
            case "prio":
                _expect(tokens, 2, "prio <priority>", lineno)
                block.priority = _integer(args[0], "prio", lineno)
            case "acquire":
                _expect(tokens, 4, "acquire <resource> <at> <duration>", lineno)
                acq = Acquisition(
                    resource=resource_id(args[0], lineno),
                    at=_integer(args[1], "at", lineno),
                    duration=_integer(args[2], "duration", lineno),
                )
                if acq.at < 0 or acq.duration < 1:
                    msg = "acquire needs at >= 0 and duration >= 1"
                    raise WorkloadError(msg, line=lineno)
                block.acquisitions.append((acq, lineno))
            case "end":
                _expect(tokens, 1, "end", lineno)
                processes.append(block.close())
                block = None
            case _:
                msg = f"unknown command {tokens[0]!r} inside process {block.name!r}"
                raise WorkloadError(msg, line=lineno)

    if block is not None:
        msg = f"process {block.name!r} (line {block.lineno}) is missing 'end'"
        raise WorkloadError(msg)
    return Workload(processes=tuple(processes), ceilings=ceilings)


def load_workload(path: Path, *, nr_resources: int = DEFAULT_NR_RESOURCES) -> Workload:
    """Read and parse the workload file at *path*.

    Raises:
        WorkloadError: If the file cannot be read or is malformed.

    """
    try:
        text = path.read_text()
    except OSError as e:
        msg = f"Cannot read workload {path}: {e}"
        raise WorkloadError(msg) from e
    return parse_workload(text, nr_resources=nr_resources)
