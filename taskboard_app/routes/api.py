"""
REST API Endpoints for the Taskboard API.

Exposes a CRUD interface for tasks, per-user statistics and the caller's
profile.  Every endpoint is protected by ``require_identity`` and every
store call is scoped to the caller's user id, so users only ever see their
own tasks.  A task owned by someone else is reported exactly like a task
that does not exist (404), never as forbidden.

Endpoints:
    GET    /api/tasks                   - List tasks (filters and sorting)
    POST   /api/tasks                   - Create a new task
    GET    /api/tasks/stats             - Counts by status/priority, overdue
    GET    /api/tasks/<id>              - Retrieve a single task
    PUT    /api/tasks/<id>              - Partial (merge) update of a task
    DELETE /api/tasks/<id>              - Delete a task
    GET    /api/user/profile            - The authenticated caller

Key Concepts Demonstrated:
- RESTful CRUD with Flask blueprints
- Validate -> execute -> respond pipeline per request
- Tenant isolation via the gateway-asserted ``user_id``
"""

from __future__ import annotations

import logging

from flask import Blueprint, Response, g, jsonify, request

from ..identity import require_identity
from ..store import get_task_store
from ..validation import parse_list_query, validate_create_payload, validate_update_payload

logger = logging.getLogger(__name__)

api_bp = Blueprint("task_api", __name__)


@api_bp.route("/tasks", methods=["GET"])
@require_identity
def get_tasks() -> tuple[Response, int]:
    """
    List the caller's tasks.

    Supports optional query-string filters (``status``, ``priority``) and
    sorting (``sortBy`` field, ``sortOrder`` asc/desc).

    Returns:
        JSON object with ``tasks``, their ``total`` and the applied
        ``filters``.
    """
    task_filter = parse_list_query(request.args)
    logger.info("GET /api/tasks - Fetching tasks for user_id=%s", g.identity.user_id)

    tasks = get_task_store().list(g.identity.user_id, task_filter)
    return (
        jsonify(
            {
                "tasks": [task.to_dict() for task in tasks],
                "total": len(tasks),
                "filters": {
                    "status": task_filter.status,
                    "priority": task_filter.priority,
                    "sortBy": task_filter.sort_by,
                    "sortOrder": task_filter.sort_order,
                },
            }
        ),
        200,
    )


@api_bp.route("/tasks", methods=["POST"])
@require_identity
def create_task() -> tuple[Response, int]:
    """
    Create a new task owned by the caller.

    ``createdBy`` is taken from the caller's display name (or email) at
    creation time.

    Returns:
        ``{message, task}`` with a 201 status.
    """
    fields = validate_create_payload(request.get_json())
    task = get_task_store().create(g.identity.user_id, fields, g.identity.label)
    return jsonify({"message": "Task created successfully", "task": task.to_dict()}), 201


@api_bp.route("/tasks/stats", methods=["GET"])
@require_identity
def get_task_stats() -> tuple[Response, int]:
    """Return task counts for the caller."""
    return jsonify({"stats": get_task_store().stats(g.identity.user_id)}), 200


@api_bp.route("/tasks/<task_id>", methods=["GET"])
@require_identity
def get_task(task_id: str) -> tuple[Response, int]:
    """
    Retrieve a single task by ID.

    Args:
        task_id: The task identifier.

    Returns:
        ``{task}``, or a 404 error if the task does not exist or belongs to
        another user.
    """
    task = get_task_store().get(task_id, g.identity.user_id)
    return jsonify({"task": task.to_dict()}), 200


@api_bp.route("/tasks/<task_id>", methods=["PUT"])
@require_identity
def update_task(task_id: str) -> tuple[Response, int]:
    """
    Merge the supplied fields into an existing task.

    Only fields present in the JSON body change; everything else is kept.
    The payload is validated before the store is touched, so an invalid
    update never applies partially.

    Args:
        task_id: The task identifier.

    Returns:
        ``{message, task}``, or 400/404 on error.
    """
    fields = validate_update_payload(request.get_json())
    task = get_task_store().update(task_id, g.identity.user_id, fields)
    return jsonify({"message": "Task updated successfully", "task": task.to_dict()}), 200


@api_bp.route("/tasks/<task_id>", methods=["DELETE"])
@require_identity
def delete_task(task_id: str) -> tuple[Response, int]:
    """Delete a task owned by the caller."""
    deleted_id = get_task_store().delete(task_id, g.identity.user_id)
    return jsonify({"message": "Task deleted successfully", "taskId": deleted_id}), 200


@api_bp.route("/user/profile", methods=["GET"])
@require_identity
def get_profile() -> tuple[Response, int]:
    """Echo the gateway-asserted identity of the caller."""
    identity = g.identity
    profile = {
        "id": identity.user_id,
        "email": identity.email,
        "name": identity.name,
        "username": identity.username,
        "groups": list(identity.groups),
        "roles": list(identity.roles),
        "profileComplete": bool(identity.name and identity.email),
    }
    return jsonify({"message": "User profile retrieved successfully", "profile": profile}), 200
