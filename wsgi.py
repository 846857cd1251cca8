"""WSGI entry point for the taskboard API."""

import os

from taskboard_app import create_app

app = create_app(os.getenv("FLASK_ENV", "production"))
