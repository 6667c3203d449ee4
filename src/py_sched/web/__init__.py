"""JSON web API for the scheduling simulator.

This package provides a Flask application that runs simulations on
request.  It is an **optional** extra; install with::

    pip install py-sched[web]

The ``create_app`` factory in ``app.py`` serves two endpoints:

- ``GET /api/policies`` — the policy catalog.
- ``POST /api/simulate`` — run a workload and return the result as JSON.
"""
