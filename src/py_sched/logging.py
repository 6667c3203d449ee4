"""Simulation event log.

Each notable step of a run (a fork, a dispatch, a blocked acquisition, a
hand-off, a priority boost) is recorded as a structured entry stamped
with the simulated tick.  Think of it as the simulator's ``dmesg``: the
CLI prints it, ``--dump`` shows the events of each tick next to the
status snapshot, and the tests query it.

Sources used by the core: ``driver``, ``policy``, ``arbiter`` and
``inheritance``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator


class LogLevel(IntEnum):
    """Severity of a log entry; ordered so ``>=`` selects a minimum level."""

    DEBUG = 0
    INFO = 1
    WARNING = 2
    ERROR = 3


@dataclass(frozen=True)
class LogEntry:
    """One event of a simulation run.

    Attributes:
        level: Severity.
        message: What happened, in words.
        source: Emitting component (``"driver"``, ``"arbiter"``, ...).
        tick: Simulated time of the event.

    """

    level: LogLevel
    message: str
    source: str
    tick: int = 0

    def __str__(self) -> str:
        """Format as ``[tick] LEVEL source: message``."""
        return f"[{self.tick:4d}] {self.level.name:<7} {self.source}: {self.message}"


class Logger:
    """In-memory, append-only event log of one simulation."""

    def __init__(self) -> None:
        """Create an empty log."""
        self._entries: list[LogEntry] = []

    @property
    def entries(self) -> list[LogEntry]:
        """Return a copy of every entry, oldest first."""
        return list(self._entries)

    def log(self, level: LogLevel, message: str, *, source: str, tick: int = 0) -> None:
        """Record an event."""
        self._entries.append(LogEntry(level=level, message=message, source=source, tick=tick))

    def filter(
        self,
        *,
        min_level: LogLevel | None = None,
        source: str | None = None,
        ticks: range | None = None,
    ) -> list[LogEntry]:
        """Return the entries that satisfy every given criterion.

        Args:
            min_level: Keep entries at or above this level.
            source: Keep entries from this component only.
            ticks: Keep entries whose tick lies in this range.

        Returns:
            A new list; changing it does not affect the log.

        """
        return [
            entry
            for entry in self._entries
            if (min_level is None or entry.level >= min_level)
            and (source is None or entry.source == source)
            and (ticks is None or entry.tick in ticks)
        ]

    def at_tick(self, tick: int) -> list[LogEntry]:
        """Return the entries recorded during *tick*."""
        return self.filter(ticks=range(tick, tick + 1))

    def render(self, *, min_level: LogLevel = LogLevel.DEBUG) -> str:
        """Return one formatted line per entry at or above *min_level*."""
        return "\n".join(str(entry) for entry in self.filter(min_level=min_level))

    def clear(self) -> None:
        """Drop every entry."""
        self._entries.clear()

    def __iter__(self) -> Iterator[LogEntry]:
        """Iterate over a snapshot of the entries."""
        return iter(self.entries)

    def __len__(self) -> int:
        """Return the number of entries."""
        return len(self._entries)
