"""
Service Banner and Health Probes.

Public endpoints (no identity required) for load balancers and
orchestrators:

    GET /               - Service banner
    GET /health         - Basic health status
    GET /health/ready   - Readiness: 503 when the task store is unavailable
    GET /health/live    - Liveness
"""

from __future__ import annotations

import time
from datetime import datetime, timezone

from flask import Blueprint, Response, current_app, jsonify

from ..store import get_task_store

health_bp = Blueprint("health", __name__)

_STARTED_AT = time.monotonic()


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _uptime_seconds() -> int:
    return int(time.monotonic() - _STARTED_AT)


@health_bp.route("/", methods=["GET"])
def index() -> tuple[Response, int]:
    return (
        jsonify(
            {
                "message": "Taskboard API",
                "version": current_app.config["SERVICE_VERSION"],
                "status": "running",
                "timestamp": _now_iso(),
                "environment": current_app.config["ENVIRONMENT"],
            }
        ),
        200,
    )


@health_bp.route("/health", methods=["GET"])
def health_check() -> tuple[Response, int]:
    """
    Return service health status.

    Returns:
        JSON object with service name, status, version, environment and
        uptime in seconds.
    """
    return (
        jsonify(
            {
                "status": "healthy",
                "service": current_app.config["SERVICE_NAME"],
                "version": current_app.config["SERVICE_VERSION"],
                "environment": current_app.config["ENVIRONMENT"],
                "timestamp": _now_iso(),
                "uptime": _uptime_seconds(),
            }
        ),
        200,
    )


@health_bp.route("/health/ready", methods=["GET"])
def readiness() -> tuple[Response, int]:
    """Report whether the task store can serve requests."""
    store = get_task_store()
    if store.ping():
        return (
            jsonify(
                {
                    "status": "ready",
                    "store": type(store).__name__,
                    "timestamp": _now_iso(),
                    "message": "Service is ready to handle requests",
                }
            ),
            200,
        )
    return (
        jsonify(
            {
                "status": "not ready",
                "store": type(store).__name__,
                "timestamp": _now_iso(),
                "message": "Service is not ready to handle requests",
            }
        ),
        503,
    )


@health_bp.route("/health/live", methods=["GET"])
def liveness() -> tuple[Response, int]:
    return (
        jsonify(
            {
                "status": "alive",
                "timestamp": _now_iso(),
                "uptime": _uptime_seconds(),
                "message": "Service is alive and running",
            }
        ),
        200,
    )
