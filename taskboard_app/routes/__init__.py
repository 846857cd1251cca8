"""Blueprints for the taskboard API."""
