"""
Request Validation for Task Endpoints.

Checks incoming payloads and query strings before they reach the task
store.  Each contract collects one detail per failing field and raises a
single ``ValidationError``, so a rejected request never mutates anything.

Detail entries look like ``{"field": "title", "message": "...", "type":
"string.max"}``.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Any

from .errors import ValidationError
from .models import TaskPriority, TaskStatus, to_utc
from .store import DEFAULT_SORT_KEY, DEFAULT_SORT_ORDER, SORT_KEYS, SORT_ORDERS, TaskFilter

TITLE_MAX_LENGTH = 200
DESCRIPTION_MAX_LENGTH = 1000

VALID_STATUSES = [status.value for status in TaskStatus]
VALID_PRIORITIES = [priority.value for priority in TaskPriority]

# JSON field name -> store field name.
PAYLOAD_FIELDS = {
    "title": "title",
    "description": "description",
    "priority": "priority",
    "status": "status",
    "dueDate": "due_date",
}

INVALID_TASK_DATA = "Invalid task data"


def _detail(field: str, message: str, error_type: str) -> dict[str, str]:
    return {"field": field, "message": message, "type": error_type}


def parse_due_date(value: str) -> datetime:
    """
    Parse an ISO-8601 date or date-time string into a UTC datetime.

    A trailing ``Z`` is accepted and naive values are taken as UTC.

    Raises:
        ValueError: If the string is not a valid ISO-8601 date, or its UTC
            equivalent falls outside the representable datetime range.
    """
    parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    try:
        return to_utc(parsed)
    except OverflowError as exc:
        raise ValueError(f"dueDate out of range: {value!r}") from exc


def _check_title(value: Any, details: list[dict[str, str]]) -> str | None:
    if not isinstance(value, str):
        details.append(_detail("title", "title must be a string", "string.base"))
        return None
    if not value:
        details.append(_detail("title", "title is not allowed to be empty", "string.empty"))
        return None
    if len(value) > TITLE_MAX_LENGTH:
        details.append(
            _detail(
                "title",
                f"title length must be less than or equal to {TITLE_MAX_LENGTH} characters long",
                "string.max",
            )
        )
        return None
    return value


def _check_description(value: Any, details: list[dict[str, str]]) -> str | None:
    if not isinstance(value, str):
        details.append(_detail("description", "description must be a string", "string.base"))
        return None
    if len(value) > DESCRIPTION_MAX_LENGTH:
        details.append(
            _detail(
                "description",
                "description length must be less than or equal to "
                f"{DESCRIPTION_MAX_LENGTH} characters long",
                "string.max",
            )
        )
        return None
    return value


def _check_choice(
    field: str, value: Any, choices: list[str], details: list[dict[str, str]]
) -> str | None:
    if not isinstance(value, str) or value not in choices:
        details.append(
            _detail(field, f"{field} must be one of [{', '.join(choices)}]", "any.only")
        )
        return None
    return value


def _check_due_date(value: Any, details: list[dict[str, str]]) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, str):
        try:
            return parse_due_date(value)
        except ValueError:
            pass
    details.append(
        _detail("dueDate", "dueDate must be a valid ISO 8601 date", "date.format")
    )
    return None


def _validate_fields(data: Any, *, require_title: bool) -> dict[str, Any]:
    if not isinstance(data, Mapping):
        raise ValidationError(
            INVALID_TASK_DATA,
            [_detail("body", "Request body must be a JSON object", "object.base")],
        )

    details: list[dict[str, str]] = []
    fields: dict[str, Any] = {}

    for key in data:
        if key not in PAYLOAD_FIELDS:
            details.append(_detail(key, f"{key} is not allowed", "object.unknown"))

    if require_title and "title" not in data:
        details.append(_detail("title", "title is required", "any.required"))

    if "title" in data:
        fields["title"] = _check_title(data["title"], details)
    if "description" in data:
        fields["description"] = _check_description(data["description"], details)
    if "priority" in data:
        fields["priority"] = _check_choice(
            "priority", data["priority"], VALID_PRIORITIES, details
        )
    if "status" in data:
        fields["status"] = _check_choice("status", data["status"], VALID_STATUSES, details)
    if "dueDate" in data:
        fields["due_date"] = _check_due_date(data["dueDate"], details)

    if details:
        raise ValidationError(INVALID_TASK_DATA, details)
    return fields


def validate_create_payload(data: Any) -> dict[str, Any]:
    """
    Validate a task creation payload.

    ``title`` is required; ``priority`` and ``status`` default to
    ``medium`` and ``todo`` and ``description`` to an empty string.

    Returns:
        Store-ready fields keyed by their Python names.

    Raises:
        ValidationError: With one detail per offending field.
    """
    fields = _validate_fields(data, require_title=True)
    fields.setdefault("description", "")
    fields.setdefault("priority", TaskPriority.MEDIUM.value)
    fields.setdefault("status", TaskStatus.TODO.value)
    fields.setdefault("due_date", None)
    return fields


def validate_update_payload(data: Any) -> dict[str, Any]:
    """
    Validate a partial update: same field rules, nothing required, but the
    payload must carry at least one field.
    """
    if isinstance(data, Mapping) and not data:
        raise ValidationError(
            INVALID_TASK_DATA,
            [_detail("body", "Update must contain at least 1 field", "object.min")],
        )
    return _validate_fields(data, require_title=False)


def parse_list_query(args: Mapping[str, str]) -> TaskFilter:
    """Build a ``TaskFilter`` from the listing query string."""
    details: list[dict[str, str]] = []

    status = args.get("status") or None
    if status is not None:
        _check_choice("status", status, VALID_STATUSES, details)

    priority = args.get("priority") or None
    if priority is not None:
        _check_choice("priority", priority, VALID_PRIORITIES, details)

    sort_by = args.get("sortBy") or DEFAULT_SORT_KEY
    _check_choice("sortBy", sort_by, list(SORT_KEYS), details)

    sort_order = args.get("sortOrder") or DEFAULT_SORT_ORDER
    _check_choice("sortOrder", sort_order, list(SORT_ORDERS), details)

    if details:
        raise ValidationError("Invalid query parameters", details)
    return TaskFilter(
        status=status, priority=priority, sort_by=sort_by, sort_order=sort_order
    )
