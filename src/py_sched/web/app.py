"""Flask application factory for the simulator's JSON API.

The ``create_app`` function returns a Flask app with two endpoints:

- ``GET /api/policies`` — list the catalog as ``{"key": ..., "name": ...}``.
- ``POST /api/simulate`` — body ``{"workload": "...", "policy": "rr"}``;
  runs the workload and returns the timeline, per-process statistics,
  averages, and the stall / truncation flags.

Every request runs its own ``Simulator``, so concurrent requests never
share simulation state.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from flask import Flask, Response, jsonify, request

from py_sched.catalog import create_policy, policy_names
from py_sched.config import SimulationConfig
from py_sched.simulator import Simulator
from py_sched.workload import parse_workload

if TYPE_CHECKING:
    from py_sched.simulator import SimulationResult

_HTTP_BAD_REQUEST = 400


def result_to_json(result: SimulationResult) -> dict[str, Any]:
    """Convert a simulation result into JSON-serialisable data."""
    return {
        "policy": result.policy_name,
        "ticks": result.ticks,
        "timeline": result.timeline,
        "context_switches": result.context_switches,
        "processes": [
            {
                "pid": s.pid,
                "name": s.name,
                "arrival": s.arrival,
                "lifespan": s.lifespan,
                "priority": s.priority,
                "first_run": s.first_run,
                "finish": s.finish,
                "turnaround": s.turnaround,
                "waiting": s.waiting,
                "response": s.response,
            }
            for s in result.stats.values()
        ],
        "averages": result.averages(),
        "stalled": result.stalled,
        "truncated": result.truncated,
    }


def create_app(config: SimulationConfig | None = None) -> Flask:
    """Create and configure the Flask application.

    Args:
        config: Base settings for every simulation; the request's
            ``policy`` field overrides ``config.policy``.

    Returns:
        A configured Flask application ready to serve.

    """
    base_config = config if config is not None else SimulationConfig()
    app = Flask(__name__)

    @app.route("/api/policies")
    def policies() -> Response:  # pyright: ignore[reportUnusedFunction]
        """Return the policy catalog."""
        return jsonify([{"key": key, "name": name} for key, name in policy_names()])

    @app.route("/api/simulate", methods=["POST"])
    def simulate() -> tuple[Response, int] | Response:  # pyright: ignore[reportUnusedFunction]
        """Run a workload and return the result as JSON.

        Expects JSON body: ``{"workload": "...", "policy": "..."}``
        (``policy`` is optional).

        """
        data = request.get_json(silent=True)
        if not isinstance(data, dict) or "workload" not in data:
            return jsonify({"error": "Missing 'workload' field"}), _HTTP_BAD_REQUEST

        run_config = base_config
        if "policy" in data:
            run_config = run_config.replace(policy=str(data["policy"]))
        try:
            policy = create_policy(run_config.policy, run_config)
            workload = parse_workload(str(data["workload"]), nr_resources=run_config.nr_resources)
        except ValueError as e:
            return jsonify({"error": str(e)}), _HTTP_BAD_REQUEST

        result = Simulator(policy=policy, workload=workload, config=run_config).run()
        return jsonify(result_to_json(result))

    return app


def main() -> None:
    """Run the web API development server.

    This is the ``py-sched-web`` console entry point.
    """
    app = create_app()
    app.run(debug=True, port=8080)
