"""
Configuration Classes for the Taskboard API.

Centralises all environment-dependent settings (task store backend,
database URIs, identity header handling) into a hierarchy of configuration
classes. The base ``Config`` class defines sensible development defaults,
while subclasses override only what differs per environment.

Key Concepts Demonstrated:
- Per-environment subclasses that only override what differs
- Environment variables override every secret, URI and header name
- Opt-in development conveniences (dev identity, stack traces in 500s)
"""

from __future__ import annotations

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent

STORE_BACKENDS = ("memory", "sqlalchemy")


def _env_flag(name: str, default: bool) -> bool:
    """Read a boolean flag from the environment ("1", "true", "yes" are truthy)."""
    raw_value = os.environ.get(name, "").strip().lower()
    if not raw_value:
        return default
    return raw_value in ("1", "true", "yes", "on")


class Config:
    """
    Base configuration with development-safe defaults.

    All settings can be overridden by environment variables so that the
    same image / code-base can serve any environment by simply changing
    the environment.

    Attributes:
        SECRET_KEY: Flask session signing key.
        SERVICE_NAME: Name reported by the health endpoints.
        SERVICE_VERSION: Version reported by the banner and health endpoints.
        ENVIRONMENT: Free-form environment label echoed by health checks.
        TASK_STORE_BACKEND: ``"memory"`` (default) or ``"sqlalchemy"``.
        SQLALCHEMY_DATABASE_URI: Database used by the SQLAlchemy backend.
        IDENTITY_HEADER: Header carrying the gateway's identity assertion.
        ALLOW_DEV_IDENTITY: Fall back to ``DEV_IDENTITY`` when the identity
            header is absent.
        EXPOSE_INTERNAL_ERRORS: Include stack traces in 500 responses.
    """

    SECRET_KEY: str = os.environ.get(
        "SECRET_KEY", "taskboard-dev-secret-change-in-production"
    )
    SERVICE_NAME: str = "taskboard"
    SERVICE_VERSION: str = os.environ.get("SERVICE_VERSION", "1.0.0")
    ENVIRONMENT: str = os.environ.get("ENVIRONMENT", "development")

    TASK_STORE_BACKEND: str = os.environ.get("TASK_STORE_BACKEND", "memory")
    SQLALCHEMY_TRACK_MODIFICATIONS: bool = False
    SQLALCHEMY_DATABASE_URI: str = os.environ.get(
        "DATABASE_URL",
        f"sqlite:///{BASE_DIR / 'instance' / 'tasks.db'}",
    )

    # The gateway validates the JWT before forwarding it in this header;
    # the service only decodes it.
    IDENTITY_HEADER: str = os.environ.get("IDENTITY_HEADER", "X-JWT-Assertion")
    ALLOW_DEV_IDENTITY: bool = False
    DEV_IDENTITY: dict = {
        "sub": "dev-user-123",
        "email": "developer@example.com",
        "name": "Development User",
        "preferred_username": "devuser",
    }

    EXPOSE_INTERNAL_ERRORS: bool = False


class DevelopmentConfig(Config):
    """
    Development environment configuration.

    Enables debug mode, the fallback development identity, and verbose
    500 responses. Inherits all other defaults from ``Config``.
    """

    DEBUG: bool = True
    TESTING: bool = False
    ALLOW_DEV_IDENTITY: bool = _env_flag("ALLOW_DEV_IDENTITY", True)
    EXPOSE_INTERNAL_ERRORS: bool = True


class TestingConfig(Config):
    """
    Testing environment configuration.

    Always uses the in-memory store unless told otherwise and never
    falls back to the development identity, so auth failures stay
    observable in tests.

    Attributes:
        TASK_STORE_BACKEND: Defaults to ``"memory"`` regardless of the
            development setting.
        SQLALCHEMY_DATABASE_URI: In-memory SQLite for the SQL-backed
            store tests.
    """

    DEBUG: bool = True
    TESTING: bool = True
    ENVIRONMENT: str = "testing"
    TASK_STORE_BACKEND: str = os.environ.get("TEST_TASK_STORE_BACKEND", "memory")
    SQLALCHEMY_DATABASE_URI: str = os.environ.get(
        "TEST_DATABASE_URL", "sqlite:///:memory:"
    )
    ALLOW_DEV_IDENTITY: bool = False
    EXPOSE_INTERNAL_ERRORS: bool = True


class ProductionConfig(Config):
    """
    Production environment configuration.

    Disables debug mode, the development identity and stack traces in
    error responses. All secrets and URIs should be supplied exclusively
    through environment variables in production.
    """

    DEBUG: bool = False
    TESTING: bool = False
    ENVIRONMENT: str = os.environ.get("ENVIRONMENT", "production")


config = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
    "default": DevelopmentConfig,
}


def get_config(env: str | None = None) -> type[Config]:
    """
    Look up and return the configuration class for the given environment.

    Args:
        env: Environment name (``"development"``, ``"testing"``,
            ``"production"``).  When ``None``, falls back to the
            ``FLASK_ENV`` environment variable, defaulting to
            ``"development"``.

    Returns:
        The configuration class (not an instance) corresponding to the
        requested environment.
    """
    if env is None:
        env = os.environ.get("FLASK_ENV", "development")
    return config.get(env, config["default"])
