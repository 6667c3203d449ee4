"""Policy catalog — every selectable scheduling policy, by short key.

The keys are what the CLI, the config file, and the web API accept::

    fcfs  FCFS
    sjf   Shortest-Job First
    stcf  Shortest Time-to-Complete First
    rr    Round-Robin
    prio  Priority
    pa    Priority + aging
    pcp   Priority + PCP Protocol
    pip   Priority + PIP Protocol

Each entry is a factory taking the ``SimulationConfig`` so that tunable
policies (aging) can read their parameters; every call builds a fresh
policy instance, so independent simulations never share policy state.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from py_sched.config import SimulationConfig
from py_sched.policies import (
    AgingPriorityPolicy,
    FCFSPolicy,
    PriorityCeilingPolicy,
    PriorityInheritancePolicy,
    PriorityPolicy,
    RoundRobinPolicy,
    SJFPolicy,
    STCFPolicy,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from py_sched.policies import SchedulingPolicy


def _aging(config: SimulationConfig) -> SchedulingPolicy:
    return AgingPriorityPolicy(
        aging_interval=config.aging_interval,
        aging_boost=config.aging_boost,
        max_boost=config.max_boost,
    )


POLICIES: dict[str, Callable[[SimulationConfig], SchedulingPolicy]] = {
    "fcfs": lambda _config: FCFSPolicy(),
    "sjf": lambda _config: SJFPolicy(),
    "stcf": lambda _config: STCFPolicy(),
    "rr": lambda _config: RoundRobinPolicy(),
    "prio": lambda _config: PriorityPolicy(),
    "pa": _aging,
    "pcp": lambda _config: PriorityCeilingPolicy(),
    "pip": lambda _config: PriorityInheritancePolicy(),
}


def create_policy(key: str, config: SimulationConfig | None = None) -> SchedulingPolicy:
    """Build a fresh policy for catalog *key*.

    Args:
        key: One of the ``POLICIES`` keys (case-insensitive).
        config: Settings for tunable policies; defaults when omitted.

    Raises:
        ValueError: If *key* is not in the catalog.

    """
    factory = POLICIES.get(key.lower())
    if factory is None:
        msg = f"Unknown scheduling policy: {key} (choose from {', '.join(POLICIES)})"
        raise ValueError(msg)
    return factory(config if config is not None else SimulationConfig())


def policy_names() -> list[tuple[str, str]]:
    """Return ``(key, descriptive name)`` for every catalog entry."""
    return [(key, factory(SimulationConfig()).name) for key, factory in POLICIES.items()]
