"""py-sched — a tick-driven CPU scheduling and resource arbitration simulator.

Re-exports public symbols so callers can write::

    from py_sched import RoundRobinPolicy, Simulator, parse_workload
"""

from py_sched.arbitration import FCFSArbiter, PriorityArbiter
from py_sched.catalog import POLICIES, create_policy, policy_names
from py_sched.config import SimulationConfig
from py_sched.context import Resource, SchedContext
from py_sched.errors import ConfigError, ConsistencyError, WorkloadError
from py_sched.policies import (
    AgingPriorityPolicy,
    FCFSPolicy,
    PriorityCeilingPolicy,
    PriorityInheritancePolicy,
    PriorityPolicy,
    RoundRobinPolicy,
    SchedulingPolicy,
    SJFPolicy,
    STCFPolicy,
)
from py_sched.process import Process, ProcessStatus
from py_sched.simulator import SimulationResult, Simulator, run_simulation
from py_sched.workload import Workload, load_workload, parse_workload

__version__ = "0.1.0"

__all__ = [
    "POLICIES",
    "AgingPriorityPolicy",
    "ConfigError",
    "ConsistencyError",
    "FCFSArbiter",
    "FCFSPolicy",
    "PriorityArbiter",
    "PriorityCeilingPolicy",
    "PriorityInheritancePolicy",
    "PriorityPolicy",
    "Process",
    "ProcessStatus",
    "Resource",
    "RoundRobinPolicy",
    "SJFPolicy",
    "STCFPolicy",
    "SchedContext",
    "SchedulingPolicy",
    "SimulationConfig",
    "SimulationResult",
    "Simulator",
    "Workload",
    "WorkloadError",
    "create_policy",
    "load_workload",
    "parse_workload",
    "policy_names",
    "run_simulation",
]
