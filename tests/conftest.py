"""
Shared pytest fixtures for the taskboard test suite.

Provides the Flask application, test client, a fresh task store per test,
identity-assertion headers for two users, and reusable data factories used
by the unit, integration, contract and security suites.

Key SDET Concepts Demonstrated:
- Session-scoped vs function-scoped fixtures for performance and isolation
- Swapping the injected task store per test instead of truncating tables
- Factory pattern (task_factory) for flexible test-data creation
- Gateway assertions minted with throwaway RSA keys
"""

from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest
from faker import Faker

os.environ["FLASK_ENV"] = "testing"

from taskboard_app import create_app, db
from taskboard_app.models import Task, TaskPriority, TaskStatus
from taskboard_app.store import InMemoryTaskStore, SQLAlchemyTaskStore
from tests.helpers import USER_ONE, USER_TWO, FrozenClock, create_assertion, identity_headers

fake = Faker()


@pytest.fixture(scope="session")
def app():
    """
    Provide the Flask application instance for the entire test session.

    Creates the app once using the 'testing' configuration; the task
    store inside it is replaced per test by the ``task_store`` fixture.
    """
    application = create_app("testing")
    yield application


@pytest.fixture(scope="function")
def task_store(app) -> InMemoryTaskStore:
    """
    Install an empty in-memory store on the session app for one test.

    Restores the previous store afterwards so no task leaks between tests.
    """
    previous = app.extensions["task_store"]
    store = InMemoryTaskStore()
    app.extensions["task_store"] = store
    yield store
    app.extensions["task_store"] = previous


@pytest.fixture(scope="function")
def client(app, task_store):
    """
    Provide a Flask test client scoped to a single test function.

    Depends on ``task_store`` so every HTTP test starts from an empty store.
    """
    with app.test_client() as test_client:
        yield test_client


@pytest.fixture
def frozen_clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture(scope="function")
def sql_app(frozen_clock):
    """
    Provide a separate app backed by ``SQLAlchemyTaskStore`` on in-memory SQLite.

    Tables are created by the factory and dropped on teardown.
    """
    store = SQLAlchemyTaskStore(clock=frozen_clock)
    application = create_app("testing", task_store=store)
    with application.app_context():
        yield application
        db.session.rollback()
        db.drop_all()


@pytest.fixture
def api_headers() -> dict[str, str]:
    """Headers (assertion + JSON content type) for user-one."""
    return identity_headers(
        create_assertion(sub=USER_ONE, name="User One", email="one@example.com")
    )


@pytest.fixture
def second_user_headers() -> dict[str, str]:
    """
    Headers for user-two.

    Used in tenant-isolation tests to verify that one user cannot access
    another user's tasks.
    """
    return identity_headers(
        create_assertion(sub=USER_TWO, name="User Two", email="two@example.com")
    )


@pytest.fixture
def task_factory(task_store):
    """
    Factory fixture that creates tasks directly in the test's store.

    Returns a callable ``_create_task(**kwargs)`` with sensible defaults
    generated via Faker.
    """

    def _create_task(
        *,
        user_id: str = USER_ONE,
        title: str | None = None,
        description: str | None = None,
        status: str = TaskStatus.TODO.value,
        priority: str = TaskPriority.MEDIUM.value,
        due_date: datetime | None = None,
        created_by: str | None = "User One",
    ) -> Task:
        return task_store.create(
            user_id,
            {
                "title": title or fake.sentence(nb_words=4),
                "description": description if description is not None else fake.paragraph(),
                "status": status,
                "priority": priority,
                "due_date": due_date,
            },
            created_by,
        )

    return _create_task


@pytest.fixture
def sample_task(task_factory) -> Task:
    """Create a single task with known, predictable values for user-one."""
    return task_factory(
        title="Sample Task",
        description="This is a sample task for testing",
        status=TaskStatus.TODO.value,
        priority=TaskPriority.MEDIUM.value,
    )


@pytest.fixture
def multiple_tasks(task_factory) -> list[Task]:
    """
    Create a varied set of five tasks for user-one.

    Covers different combinations of status, priority and due date
    (one overdue) so filter, sort and stats tests need no extra setup.
    """
    now = datetime.now(timezone.utc)
    return [
        task_factory(
            title="High Priority Todo",
            status=TaskStatus.TODO.value,
            priority=TaskPriority.HIGH.value,
            due_date=now + timedelta(days=1),
        ),
        task_factory(
            title="Medium Priority In Progress",
            status=TaskStatus.IN_PROGRESS.value,
            priority=TaskPriority.MEDIUM.value,
        ),
        task_factory(
            title="Low Priority Completed",
            status=TaskStatus.COMPLETED.value,
            priority=TaskPriority.LOW.value,
            due_date=now - timedelta(days=3),
        ),
        task_factory(
            title="High Priority In Progress",
            status=TaskStatus.IN_PROGRESS.value,
            priority=TaskPriority.HIGH.value,
            due_date=now + timedelta(days=7),
        ),
        task_factory(
            title="Overdue Todo",
            status=TaskStatus.TODO.value,
            priority=TaskPriority.LOW.value,
            due_date=now - timedelta(days=1),
        ),
    ]


@pytest.fixture
def valid_task_data() -> dict[str, Any]:
    """Provide a complete, valid task payload with every optional field."""
    return {
        "title": "Test Task",
        "description": "This is a test task description",
        "status": TaskStatus.TODO.value,
        "priority": TaskPriority.HIGH.value,
        "dueDate": (datetime.now(timezone.utc) + timedelta(days=7)).isoformat(),
    }


@pytest.fixture
def minimal_task_data() -> dict[str, str]:
    """Provide the smallest valid task payload (title only)."""
    return {"title": "Minimal Task"}
