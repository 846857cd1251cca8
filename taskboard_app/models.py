"""
Task Models for the Taskboard API.

Defines the ``Task`` record handed out by every task store, the
enumerations used for task status and priority, and the SQLAlchemy row
(``TaskRecord``) used by the SQL-backed store.  Each task is scoped to
exactly one owner via ``user_id``, which enables strict tenant isolation:
users can only see and modify their own tasks.

Python attributes are snake_case; ``Task.to_dict`` produces the camelCase
JSON representation served by the API.

Key Concepts Demonstrated:
- ``str, Enum`` inheritance for JSON-friendly enumeration values
- Immutable dataclass records copied out of the store
- Timezone-aware datetime handling (UTC normalisation)
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from . import db


class TaskStatus(str, Enum):
    """
    Enumeration of possible task lifecycle statuses.

    Inherits from ``str`` so that each member's value is a plain string.
    This allows direct JSON serialisation and seamless comparison with raw
    strings from request payloads and database columns.
    """

    TODO = "todo"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class TaskPriority(str, Enum):
    """Enumeration of task priority levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# Fields a caller may supply on create/update, in their Python spelling.
EDITABLE_FIELDS = ("title", "description", "priority", "status", "due_date")


def to_utc(value: datetime | None) -> datetime | None:
    """
    Normalise a datetime to UTC.

    SQLite does not store timezone information, so datetimes read back
    from the database may be naive even though they were written in UTC.
    Naive values are assumed UTC and get their ``tzinfo`` attached; aware
    values are converted.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _to_utc_iso(value: datetime | None) -> str | None:
    value = to_utc(value)
    return value.isoformat() if value is not None else None


@dataclass(frozen=True)
class Task:
    """
    A user-owned task.

    Instances are immutable; stores produce new instances on update with
    ``dataclasses.replace`` so a record handed to a caller can never be
    used to mutate store state.

    Attributes:
        id: Opaque unique identifier assigned by the store.
        user_id: Owner identity (the ``sub`` claim of the creator).
        title: Short summary (1-200 characters).
        description: Longer free text, possibly empty.
        priority: One of ``TaskPriority``.
        status: One of ``TaskStatus``.
        due_date: Optional timezone-aware deadline.
        created_at: Creation timestamp (UTC).
        updated_at: Timestamp of the last mutation (UTC).
        created_by: Display name or email of the creator, if known.
    """

    id: str
    user_id: str
    title: str
    description: str
    priority: str
    status: str
    due_date: datetime | None
    created_at: datetime
    updated_at: datetime
    created_by: str | None = None

    def is_overdue(self, now: datetime) -> bool:
        """True when the task has a past due date and is not completed."""
        if self.due_date is None or self.status == TaskStatus.COMPLETED.value:
            return False
        return to_utc(self.due_date) < to_utc(now)

    def to_dict(self) -> dict[str, Any]:
        """
        Serialise the task to the API's JSON representation.

        Returns:
            A dictionary with camelCase keys and datetime values converted
            to UTC ISO-8601 strings.
        """
        return {
            "id": self.id,
            "userId": self.user_id,
            "title": self.title,
            "description": self.description,
            "priority": self.priority,
            "status": self.status,
            "dueDate": _to_utc_iso(self.due_date),
            "createdAt": _to_utc_iso(self.created_at),
            "updatedAt": _to_utc_iso(self.updated_at),
            "createdBy": self.created_by,
        }


class TaskRecord(db.Model):
    """
    Database row backing ``SQLAlchemyTaskStore``.

    Timestamps are written explicitly by the store (from its injected
    clock) rather than by column defaults, so both store backends stamp
    records the same way.
    """

    __tablename__ = "tasks"

    id: str = db.Column(db.String(36), primary_key=True)
    # Every store query filters on user_id; indexed for per-owner listing.
    user_id: str = db.Column(db.String(255), nullable=False, index=True)
    title: str = db.Column(db.String(200), nullable=False)
    description: str = db.Column(db.Text, nullable=False, default="")
    priority: str = db.Column(
        db.String(20), nullable=False, default=TaskPriority.MEDIUM.value
    )
    status: str = db.Column(db.String(20), nullable=False, default=TaskStatus.TODO.value)
    due_date: datetime | None = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at: datetime = db.Column(db.DateTime(timezone=True), nullable=False)
    updated_at: datetime = db.Column(db.DateTime(timezone=True), nullable=False)
    created_by: str | None = db.Column(db.String(255), nullable=True)

    def to_task(self) -> Task:
        return Task(
            id=self.id,
            user_id=self.user_id,
            title=self.title,
            description=self.description,
            priority=self.priority,
            status=self.status,
            due_date=to_utc(self.due_date),
            created_at=to_utc(self.created_at),
            updated_at=to_utc(self.updated_at),
            created_by=self.created_by,
        )

    def __repr__(self) -> str:
        return f"<TaskRecord {self.id}: {self.title}>"
