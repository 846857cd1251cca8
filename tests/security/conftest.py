"""
Shared fixtures for the security test suite.

Runs every security test against both task-store backends so adversarial
input is checked against the in-memory dict and real SQL alike, and
provides a factory fixture that mints assertions for unique users.

Key SDET Concepts Demonstrated:
- Parametrized fixtures to repeat one suite across interchangeable backends
- Function-scoped apps for per-test store isolation
- Factory fixture pattern (``headers_for_user``) for on-demand identity creation
- Monotonic user-ID counter to avoid collisions across tests
"""

from __future__ import annotations

import itertools

import pytest

from taskboard_app import create_app, db
from taskboard_app.store import InMemoryTaskStore, SQLAlchemyTaskStore
from tests.helpers import create_assertion, identity_headers

_user_counter = itertools.count(1000)


@pytest.fixture(params=["memory", "sqlalchemy"])
def security_app(request):
    """Provide a fresh app per test, once per task-store backend."""
    if request.param == "sqlalchemy":
        application = create_app("testing", task_store=SQLAlchemyTaskStore())
    else:
        application = create_app("testing", task_store=InMemoryTaskStore())
    yield application
    if request.param == "sqlalchemy":
        with application.app_context():
            db.session.rollback()
            db.drop_all()


@pytest.fixture
def task_client(security_app):
    """Provide a test client bound to the per-test app."""
    with security_app.test_client() as client:
        yield client


@pytest.fixture
def headers_for_user():
    """Return a factory that builds assertion headers for a unique user.

    Each call increments a monotonic counter so every user within a test
    receives a distinct ``sub``.
    """

    def _factory() -> tuple[dict[str, str], str]:
        user_id = f"security-user-{next(_user_counter)}"
        assertion = create_assertion(sub=user_id, name=f"Security User {user_id}")
        return identity_headers(assertion), user_id

    return _factory
