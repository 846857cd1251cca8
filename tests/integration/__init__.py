"""
HTTP test package for the Taskboard API.

Tests use the Flask test client and cover:
- CRUD operation testing
- Input validation and identity failures
- Error handling and health probes
"""
