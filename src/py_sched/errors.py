"""Exception taxonomy for the scheduling simulator.

The simulator is a closed world, so the error surface is narrow:

- **ConsistencyError** — an internal invariant broke (a non-owner
  released a resource, a process landed in two queues, an illegal status
  transition).  These are bugs in the driver or a policy, never runtime
  conditions, so nothing in the core catches them.
- **WorkloadError** — the workload text could not be parsed.
- **ConfigError** — the configuration file could not be loaded.

"Nothing to run" and "resource unavailable" are *not* errors: they are
ordinary scheduling outcomes reported through return values.
"""


class ConsistencyError(RuntimeError):
    """Raise when a simulation invariant is violated (fatal)."""


class WorkloadError(ValueError):
    """Raise when a workload description is malformed.

    Carries the 1-based line number of the offending line (0 when the
    error is not tied to a single line, e.g. an unterminated block).
    """

    def __init__(self, message: str, *, line: int = 0) -> None:
        """Create a workload error for *line*."""
        self.line = line
        super().__init__(f"line {line}: {message}" if line else message)


class ConfigError(ValueError):
    """Raise when a simulation config file cannot be read or is invalid."""
