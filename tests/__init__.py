"""
Test suite for the Taskboard API.

This package contains:
- unit/: models, stores, validation rules and identity decoding in isolation
- integration/: HTTP tests through the Flask test client
- contracts/: responses checked against contracts/tasks_openapi.yaml
- security/: adversarial input and tenant isolation, run on both stores
"""
