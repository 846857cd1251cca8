"""
Task Stores.

A ``TaskStore`` owns every task record and is the only component that
mutates them.  Request handlers receive the store through the application
(``get_task_store``) rather than importing a global, so the backend can be
swapped without touching the routes:

  * ``InMemoryTaskStore`` -- a dict guarded by a single lock; the default.
  * ``SQLAlchemyTaskStore`` -- rows in the ``tasks`` table via
    Flask-SQLAlchemy.

Both backends share ``sort_tasks`` and ``compute_stats`` so listing order
and statistics are identical regardless of where the rows live.

Ownership rule: every single-task operation takes the caller's owner id
and raises ``NotFoundError`` both for unknown ids and for tasks owned by
someone else.
"""

from __future__ import annotations

import logging
import threading
import uuid
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any

from flask import current_app
from sqlalchemy import select, text
from sqlalchemy.exc import SQLAlchemyError

from . import db
from .errors import NotFoundError
from .models import EDITABLE_FIELDS, Task, TaskPriority, TaskRecord, TaskStatus, to_utc

logger = logging.getLogger(__name__)

TASK_NOT_FOUND = "Task not found"
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# Wire name of each sort key -> Task attribute.
DATE_SORT_KEYS = {"createdAt": "created_at", "updatedAt": "updated_at", "dueDate": "due_date"}
TEXT_SORT_KEYS = {"title": "title", "priority": "priority"}
SORT_KEYS = ("createdAt", "updatedAt", "title", "priority", "dueDate")
SORT_ORDERS = ("asc", "desc")
DEFAULT_SORT_KEY = "createdAt"
DEFAULT_SORT_ORDER = "asc"

MAX_ID_ATTEMPTS = 5


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_task_id() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True)
class TaskFilter:
    """Listing options: exact-match filters plus sort key and direction."""

    status: str | None = None
    priority: str | None = None
    sort_by: str = DEFAULT_SORT_KEY
    sort_order: str = DEFAULT_SORT_ORDER

    def matches(self, task: Task) -> bool:
        if self.status and task.status != self.status:
            return False
        if self.priority and task.priority != self.priority:
            return False
        return True


def _sort_value(task: Task, sort_by: str) -> Any:
    if sort_by in DATE_SORT_KEYS:
        # Missing dates sort as the Unix epoch.
        return to_utc(getattr(task, DATE_SORT_KEYS[sort_by])) or EPOCH
    if sort_by in TEXT_SORT_KEYS:
        return getattr(task, TEXT_SORT_KEYS[sort_by]) or ""
    raise ValueError(f"Unsupported sort key: {sort_by!r}")


def sort_tasks(
    tasks: Iterable[Task],
    sort_by: str = DEFAULT_SORT_KEY,
    sort_order: str = DEFAULT_SORT_ORDER,
) -> list[Task]:
    """
    Order tasks by one of ``SORT_KEYS``.

    Date keys compare by instant, text keys lexicographically.  Ties are
    broken by task id so the order is deterministic; ``desc`` reverses the
    complete ordering, tie-break included.
    """
    return sorted(
        tasks,
        key=lambda task: (_sort_value(task, sort_by), task.id),
        reverse=sort_order == "desc",
    )


def compute_stats(tasks: Iterable[Task], now: datetime) -> dict[str, Any]:
    """Aggregate counts per status and priority plus the overdue count."""
    by_status = {status.value: 0 for status in TaskStatus}
    by_priority = {priority.value: 0 for priority in TaskPriority}
    total = 0
    overdue = 0

    for task in tasks:
        total += 1
        if task.status in by_status:
            by_status[task.status] += 1
        if task.priority in by_priority:
            by_priority[task.priority] += 1
        if task.is_overdue(now):
            overdue += 1

    return {
        "total": total,
        "byStatus": by_status,
        "byPriority": by_priority,
        "overdue": overdue,
    }


def _editable(fields: Mapping[str, Any]) -> dict[str, Any]:
    """Keep only caller-editable fields; identity and timestamps are store-owned."""
    return {name: fields[name] for name in EDITABLE_FIELDS if name in fields}


class TaskStore(ABC):
    """
    Interface shared by every task store backend.

    Args:
        clock: Returns the current time as an aware UTC datetime.
        id_factory: Returns a new opaque task identifier.
    """

    def __init__(
        self,
        clock: Callable[[], datetime] | None = None,
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        self._clock = clock or utc_now
        self._id_factory = id_factory or new_task_id

    def now(self) -> datetime:
        return to_utc(self._clock())

    @abstractmethod
    def create(
        self, owner_id: str, fields: Mapping[str, Any], created_by: str | None = None
    ) -> Task:
        """Store a new task for *owner_id* and return it."""

    @abstractmethod
    def get(self, task_id: str, owner_id: str) -> Task:
        """Return the task, or raise ``NotFoundError``."""

    @abstractmethod
    def list(self, owner_id: str, task_filter: TaskFilter | None = None) -> list[Task]:
        """Return the owner's tasks, filtered and sorted."""

    @abstractmethod
    def update(self, task_id: str, owner_id: str, fields: Mapping[str, Any]) -> Task:
        """Merge *fields* into the task and return the result."""

    @abstractmethod
    def delete(self, task_id: str, owner_id: str) -> str:
        """Remove the task and return its id."""

    def stats(self, owner_id: str) -> dict[str, Any]:
        return compute_stats(self.list(owner_id), self.now())

    def ping(self) -> bool:
        """Report whether the backend can serve requests."""
        return True

    def _new_task(
        self, task_id: str, owner_id: str, fields: Mapping[str, Any], created_by: str | None
    ) -> Task:
        values = _editable(fields)
        now = self.now()
        return Task(
            id=task_id,
            user_id=owner_id,
            title=values["title"],
            description=values.get("description") or "",
            priority=values.get("priority") or TaskPriority.MEDIUM.value,
            status=values.get("status") or TaskStatus.TODO.value,
            due_date=to_utc(values.get("due_date")),
            created_at=now,
            updated_at=now,
            created_by=created_by,
        )

    def _touch_time(self, task: Task) -> datetime:
        # Never move updated_at backwards, even if the clock does.
        return max(self.now(), task.updated_at)


class InMemoryTaskStore(TaskStore):
    """
    Process-local store keyed by task id.

    A single re-entrant lock serialises every operation, reads included,
    which is sufficient for a single-process deployment.  Records are
    immutable ``Task`` instances, so returning them never exposes mutable
    store state.
    """

    def __init__(
        self,
        clock: Callable[[], datetime] | None = None,
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        super().__init__(clock=clock, id_factory=id_factory)
        self._tasks: dict[str, Task] = {}
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._tasks)

    def _allocate_id(self) -> str:
        for _ in range(MAX_ID_ATTEMPTS):
            task_id = self._id_factory()
            if task_id not in self._tasks:
                return task_id
        raise RuntimeError("Unable to allocate a unique task id")

    def _owned(self, task_id: str, owner_id: str) -> Task:
        task = self._tasks.get(task_id)
        if task is None or task.user_id != owner_id:
            raise NotFoundError(TASK_NOT_FOUND)
        return task

    def create(
        self, owner_id: str, fields: Mapping[str, Any], created_by: str | None = None
    ) -> Task:
        with self._lock:
            task = self._new_task(self._allocate_id(), owner_id, fields, created_by)
            self._tasks[task.id] = task
        logger.info("Created task %s for user %s", task.id, owner_id)
        return task

    def get(self, task_id: str, owner_id: str) -> Task:
        with self._lock:
            return self._owned(task_id, owner_id)

    def list(self, owner_id: str, task_filter: TaskFilter | None = None) -> list[Task]:
        task_filter = task_filter or TaskFilter()
        with self._lock:
            owned = [
                task
                for task in self._tasks.values()
                if task.user_id == owner_id and task_filter.matches(task)
            ]
        return sort_tasks(owned, task_filter.sort_by, task_filter.sort_order)

    def update(self, task_id: str, owner_id: str, fields: Mapping[str, Any]) -> Task:
        with self._lock:
            task = self._owned(task_id, owner_id)
            changes = _editable(fields)
            if "due_date" in changes:
                changes["due_date"] = to_utc(changes["due_date"])
            updated = replace(task, **changes, updated_at=self._touch_time(task))
            self._tasks[task_id] = updated
        logger.info("Updated task %s (%s)", task_id, ", ".join(sorted(changes)) or "no fields")
        return updated

    def delete(self, task_id: str, owner_id: str) -> str:
        with self._lock:
            self._owned(task_id, owner_id)
            del self._tasks[task_id]
        logger.info("Deleted task %s", task_id)
        return task_id

    def clear(self) -> None:
        with self._lock:
            self._tasks.clear()


class SQLAlchemyTaskStore(TaskStore):
    """
    Store backed by the ``tasks`` table.

    Must be used inside a Flask application context (every request
    handler runs in one).  Status/priority filtering happens in SQL;
    sorting and stats reuse the shared helpers so the semantics match
    ``InMemoryTaskStore`` exactly.
    """

    def _owned(self, task_id: str, owner_id: str) -> TaskRecord:
        record = db.session.scalar(
            select(TaskRecord).where(
                TaskRecord.id == task_id, TaskRecord.user_id == owner_id
            )
        )
        if record is None:
            raise NotFoundError(TASK_NOT_FOUND)
        return record

    def _allocate_id(self) -> str:
        for _ in range(MAX_ID_ATTEMPTS):
            task_id = self._id_factory()
            if db.session.get(TaskRecord, task_id) is None:
                return task_id
        raise RuntimeError("Unable to allocate a unique task id")

    def create(
        self, owner_id: str, fields: Mapping[str, Any], created_by: str | None = None
    ) -> Task:
        task = self._new_task(self._allocate_id(), owner_id, fields, created_by)
        db.session.add(
            TaskRecord(
                id=task.id,
                user_id=task.user_id,
                title=task.title,
                description=task.description,
                priority=task.priority,
                status=task.status,
                due_date=task.due_date,
                created_at=task.created_at,
                updated_at=task.updated_at,
                created_by=task.created_by,
            )
        )
        db.session.commit()
        logger.info("Created task %s for user %s", task.id, owner_id)
        return task

    def get(self, task_id: str, owner_id: str) -> Task:
        return self._owned(task_id, owner_id).to_task()

    def list(self, owner_id: str, task_filter: TaskFilter | None = None) -> list[Task]:
        task_filter = task_filter or TaskFilter()
        stmt = select(TaskRecord).where(TaskRecord.user_id == owner_id)
        if task_filter.status:
            stmt = stmt.where(TaskRecord.status == task_filter.status)
        if task_filter.priority:
            stmt = stmt.where(TaskRecord.priority == task_filter.priority)
        tasks = [record.to_task() for record in db.session.scalars(stmt).all()]
        return sort_tasks(tasks, task_filter.sort_by, task_filter.sort_order)

    def update(self, task_id: str, owner_id: str, fields: Mapping[str, Any]) -> Task:
        record = self._owned(task_id, owner_id)
        changes = _editable(fields)
        if "due_date" in changes:
            changes["due_date"] = to_utc(changes["due_date"])
        for name, value in changes.items():
            setattr(record, name, value)
        record.updated_at = self._touch_time(record.to_task())
        db.session.commit()
        logger.info("Updated task %s (%s)", task_id, ", ".join(sorted(changes)) or "no fields")
        return record.to_task()

    def delete(self, task_id: str, owner_id: str) -> str:
        record = self._owned(task_id, owner_id)
        db.session.delete(record)
        db.session.commit()
        logger.info("Deleted task %s", task_id)
        return task_id

    def ping(self) -> bool:
        try:
            db.session.execute(text("SELECT 1"))
        except SQLAlchemyError:
            logger.exception("Task database is not reachable")
            return False
        return True


def build_task_store(backend: str) -> TaskStore:
    """Instantiate the store named by the ``TASK_STORE_BACKEND`` setting."""
    if backend == "memory":
        return InMemoryTaskStore()
    if backend == "sqlalchemy":
        return SQLAlchemyTaskStore()
    raise ValueError(f"Unknown TASK_STORE_BACKEND: {backend!r}")


def get_task_store() -> TaskStore:
    """Return the store attached to the current application."""
    return current_app.extensions["task_store"]
