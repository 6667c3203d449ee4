"""Command-line entry point (``py-sched``).

Usage::

    py-sched [-p POLICY] [-c CONFIG] [-q] [-v] [--dump] WORKLOAD
    py-sched --list

The command prints the per-tick timeline, then a summary table.
``-q`` keeps only the summary, ``-v`` adds the DEBUG event log, and
``--dump`` prints a status snapshot after every tick.

Exit status: 0 on success, 1 for bad input (workload, config, policy
name), 2 when the simulation hits a broken invariant.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from py_sched.catalog import POLICIES, create_policy, policy_names
from py_sched.config import SimulationConfig
from py_sched.errors import ConsistencyError
from py_sched.logging import LogLevel
from py_sched.report import dump_status, format_summary, format_timeline
from py_sched.simulator import Simulator
from py_sched.workload import load_workload

if TYPE_CHECKING:
    from py_sched.context import SchedContext

EXIT_OK = 0
EXIT_BAD_INPUT = 1
EXIT_FATAL = 2


def build_parser() -> argparse.ArgumentParser:
    """Return the argument parser for ``py-sched``."""
    parser = argparse.ArgumentParser(
        prog="py-sched",
        description="Simulate CPU scheduling with exclusive resources.",
    )
    parser.add_argument("workload", nargs="?", type=Path, help="workload description file")
    parser.add_argument(
        "-p",
        "--policy",
        choices=sorted(POLICIES),
        help="scheduling policy (default: from config, else fcfs)",
    )
    parser.add_argument("-c", "--config", type=Path, help="JSON config file")
    parser.add_argument("-q", "--quiet", action="store_true", help="print only the summary")
    parser.add_argument("-v", "--verbose", action="store_true", help="print the debug event log")
    parser.add_argument("--dump", action="store_true", help="print a status dump after every tick")
    parser.add_argument("--list", action="store_true", help="list the available policies")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Run the CLI and return the process exit status."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.list:
        for key, name in policy_names():
            print(f"{key:<6} {name}")  # noqa: T201
        return EXIT_OK
    if args.workload is None:
        parser.error("the workload file is required")

    try:
        config = SimulationConfig.from_file(args.config) if args.config else SimulationConfig()
        if args.policy:
            config = config.replace(policy=args.policy)
        if args.quiet:
            config = config.replace(quiet=True)
        policy = create_policy(config.policy, config)
        workload = load_workload(args.workload, nr_resources=config.nr_resources)
    except ValueError as e:  # ConfigError, WorkloadError, unknown policy
        print(f"py-sched: {e}", file=sys.stderr)  # noqa: T201
        return EXIT_BAD_INPUT

    simulator = Simulator(policy=policy, workload=workload, config=config)

    def dump(ctx: SchedContext) -> None:
        # ctx.tick has already advanced past the tick just simulated
        for entry in simulator.logger.at_tick(ctx.tick - 1):
            print(f"  {entry}")  # noqa: T201
        print(dump_status(ctx))  # noqa: T201

    try:
        result = simulator.run(on_tick=dump if args.dump else None)
    except ConsistencyError as e:
        print(f"py-sched: fatal: {e}", file=sys.stderr)  # noqa: T201
        return EXIT_FATAL
    finally:
        if args.verbose or not config.quiet:
            min_level = LogLevel.DEBUG if args.verbose else LogLevel.WARNING
            log_text = simulator.logger.render(min_level=min_level)
            if log_text:
                print(log_text)  # noqa: T201

    if not config.quiet:
        print(format_timeline(result))  # noqa: T201
    print(format_summary(result))  # noqa: T201
    return EXIT_OK


def run() -> None:
    """Console-script wrapper around ``main``."""
    sys.exit(main())
