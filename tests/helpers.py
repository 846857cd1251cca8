"""Test helper functions used across the test suites."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import jwt
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

IDENTITY_HEADER = "X-JWT-Assertion"
USER_ONE = "user-one"
USER_TWO = "user-two"
DEFAULT_TEST_USER_ID = USER_ONE
DEFAULT_TEST_NAME = "User One"


def _generate_rsa_private_key() -> str:
    """Generate an in-memory RSA private key as a PEM string."""
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    return private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("utf-8")


# Stands in for the gateway's signing key. Generated once per test process.
GATEWAY_PRIVATE_KEY = _generate_rsa_private_key()


def generate_throwaway_private_key() -> str:
    """Generate a fresh RSA key that the gateway has never seen."""
    return _generate_rsa_private_key()


def create_assertion(
    sub: str | None = DEFAULT_TEST_USER_ID,
    name: str | None = DEFAULT_TEST_NAME,
    email: str | None = None,
    private_key: str = GATEWAY_PRIVATE_KEY,
    expired: bool = False,
    **extra_claims: Any,
) -> str:
    """Create an RS256 identity assertion as the gateway would forward it."""
    now = datetime.now(timezone.utc)
    expiry_time = now - timedelta(hours=1) if expired else now + timedelta(hours=1)

    payload: dict[str, Any] = {
        "iat": int(now.timestamp()),
        "exp": int(expiry_time.timestamp()),
    }
    if sub is not None:
        payload["sub"] = sub
    if name is not None:
        payload["name"] = name
    if email is not None:
        payload["email"] = email
    payload.update(extra_claims)
    return jwt.encode(payload, private_key, algorithm="RS256")


def identity_headers(assertion: str) -> dict[str, str]:
    """Build common JSON API headers carrying the identity assertion."""
    return {
        IDENTITY_HEADER: assertion,
        "Content-Type": "application/json",
        "Accept": "application/json",
    }


class FrozenClock:
    """Deterministic clock for store tests; advance it explicitly."""

    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **delta: float) -> datetime:
        self.current = self.current + timedelta(**delta)
        return self.current
