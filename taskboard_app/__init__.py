"""
Taskboard API Flask Application Factory.

Provides the ``create_app`` factory function that assembles the task
service.  The factory pattern allows multiple application instances with
different configurations (development, testing, production) and different
task stores to coexist in the same process -- essential for isolated tests.

The service registers two blueprints:
  * **api_bp** -- JSON REST endpoints mounted at ``/api`` (task CRUD, stats
    and the caller's profile; identity required).
  * **health_bp** -- public banner and health probes at ``/`` and ``/health``.

Key Concepts Demonstrated:
- Application factory pattern (``create_app``)
- Injected task store (``app.extensions["task_store"]``)
- SQLAlchemy integration with Flask via ``flask_sqlalchemy`` for the
  SQL-backed store
"""

from __future__ import annotations

import logging
from pathlib import Path

from flask import Flask, Response, request
from flask_sqlalchemy import SQLAlchemy

from config import get_config

db = SQLAlchemy()

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def _ensure_sqlite_db_parent_exists(database_uri: str) -> None:
    """Create parent directories for file-based SQLite URIs when missing."""
    sqlite_prefix = "sqlite:///"
    if not database_uri.startswith(sqlite_prefix):
        return

    sqlite_path = database_uri[len(sqlite_prefix) :].split("?", 1)[0]
    if sqlite_path == ":memory:":
        return

    Path(sqlite_path).parent.mkdir(parents=True, exist_ok=True)


def _log_request(response: Response) -> Response:
    logger.info("%s %s -> %s", request.method, request.path, response.status_code)
    return response


def create_app(config_name: str | None = None, task_store=None) -> Flask:
    """
    Create and configure the taskboard application.

    Loads the configuration object, picks the task store, registers the
    error handlers and blueprints, and -- for the SQL backend -- makes sure
    the ``tasks`` table exists.

    Args:
        config_name: Optional configuration environment name
            (``"development"``, ``"testing"``, ``"production"``).  When
            *None*, the value is read from the ``FLASK_ENV`` environment
            variable, defaulting to ``"development"``.
        task_store: Optional ``TaskStore`` instance.  When omitted, one is
            built from the ``TASK_STORE_BACKEND`` setting.

    Returns:
        A fully configured Flask application instance ready to serve requests.
    """
    app = Flask(__name__, instance_relative_config=True)
    config_class = get_config(config_name)
    app.config.from_object(config_class)

    logger.info("Creating taskboard app with config: %s", config_class.__name__)

    from .errors import register_error_handlers
    from .store import SQLAlchemyTaskStore, build_task_store

    if task_store is None:
        task_store = build_task_store(app.config["TASK_STORE_BACKEND"])
    app.extensions["task_store"] = task_store
    logger.info("Using task store: %s", type(task_store).__name__)

    db.init_app(app)
    if isinstance(task_store, SQLAlchemyTaskStore):
        _ensure_sqlite_db_parent_exists(app.config.get("SQLALCHEMY_DATABASE_URI", ""))
        with app.app_context():
            db.create_all()
            logger.info("Task database tables created")

    register_error_handlers(app)
    app.after_request(_log_request)

    from .routes.api import api_bp
    from .routes.health import health_bp

    app.register_blueprint(api_bp, url_prefix="/api")
    app.register_blueprint(health_bp)

    return app
