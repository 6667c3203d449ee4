"""Simulation configuration.

A ``SimulationConfig`` carries every knob the driver and the policy
catalog read: which policy to run, how many resources exist, how long a
run may last, and the aging parameters.  Defaults are usable as-is; a
JSON file can override any subset of them::

    {"policy": "pa", "nr_resources": 8, "aging_interval": 2}

Unknown keys are rejected so that a typo does not silently fall back to
a default.
"""

from __future__ import annotations

import dataclasses
import json
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from py_sched.context import DEFAULT_NR_RESOURCES
from py_sched.errors import ConfigError

if TYPE_CHECKING:
    from pathlib import Path

DEFAULT_MAX_TICKS = 10_000

_INT_FIELDS = ("nr_resources", "max_ticks", "aging_interval", "aging_boost", "max_boost")
_FLAG_FIELDS = ("check_invariants", "quiet")


@dataclass(frozen=True)
class SimulationConfig:
    """Immutable settings for one simulation run.

    Attributes:
        policy: Catalog key of the scheduling policy (e.g. ``"rr"``).
        nr_resources: Size of the fixed resource table.
        max_ticks: Hard stop for runaway or livelocked workloads.
        check_invariants: Verify the context invariants after every tick.
        aging_interval: Waiting rounds per aging boost (``pa`` only).
        aging_boost: Priority bonus per interval (``pa`` only).
        max_boost: Cap on the accumulated aging bonus (``pa`` only).
        quiet: Suppress the per-tick timeline in CLI output.

    """

    policy: str = "fcfs"
    nr_resources: int = DEFAULT_NR_RESOURCES
    max_ticks: int = DEFAULT_MAX_TICKS
    check_invariants: bool = True
    aging_interval: int = 1
    aging_boost: int = 1
    max_boost: int = 10
    quiet: bool = False

    def __post_init__(self) -> None:
        """Validate value types, then numeric ranges.

        A JSON config file can hold any value for any key, so ``1.5``,
        ``true`` or ``"8"`` may arrive where a count is expected.

        Raises:
            ConfigError: If a value has the wrong type or is out of range.

        """
        if not isinstance(self.policy, str):
            msg = f"policy must be a string, got {self.policy!r}"
            raise ConfigError(msg)
        for name in _INT_FIELDS:
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                msg = f"{name} must be an integer, got {value!r}"
                raise ConfigError(msg)
        for name in _FLAG_FIELDS:
            if not isinstance(getattr(self, name), bool):
                msg = f"{name} must be true or false, got {getattr(self, name)!r}"
                raise ConfigError(msg)
        for name in ("nr_resources", "max_ticks", "aging_interval"):
            if getattr(self, name) < 1:
                msg = f"{name} must be positive, got {getattr(self, name)}"
                raise ConfigError(msg)
        for name in ("aging_boost", "max_boost"):
            if getattr(self, name) < 0:
                msg = f"{name} must not be negative, got {getattr(self, name)}"
                raise ConfigError(msg)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SimulationConfig:
        """Build a config from a mapping, rejecting unknown keys.

        Raises:
            ConfigError: If a key is unknown or a value is invalid.

        """
        known = {f.name for f in dataclasses.fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            msg = f"Unknown config keys: {', '.join(unknown)}"
            raise ConfigError(msg)
        try:
            return cls(**data)
        except TypeError as e:
            msg = f"Invalid config: {e}"
            raise ConfigError(msg) from e

    @classmethod
    def from_file(cls, path: Path) -> SimulationConfig:
        """Load a config from a JSON file.

        Raises:
            ConfigError: If the file cannot be read, is not valid JSON, or
                does not hold a JSON object of known keys.

        """
        try:
            data = json.loads(path.read_text())
        except (OSError, json.JSONDecodeError) as e:
            msg = f"Cannot load config {path}: {e}"
            raise ConfigError(msg) from e
        if not isinstance(data, dict):
            msg = f"Config {path} must contain a JSON object"
            raise ConfigError(msg)
        return cls.from_dict(data)

    def replace(self, **overrides: Any) -> SimulationConfig:
        """Return a copy with *overrides* applied."""
        return dataclasses.replace(self, **overrides)
