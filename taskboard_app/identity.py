"""
Caller Identity from the Gateway Assertion Header.

The API gateway authenticates every request and forwards the validated
JWT in an assertion header (``X-JWT-Assertion`` by default).  This service
never issues or verifies tokens: it decodes the assertion *without*
checking the signature and trusts its claims verbatim.  Verification is
the gateway's job; redoing it here would change the contract.

Key Concepts Demonstrated:
- Decoding JWT claims with ``PyJWT`` (signature verification disabled)
- Decorator pattern for endpoint authentication (``require_identity``)
- Using ``flask.g`` to store request-scoped user identity
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from functools import wraps
from typing import Any

import jwt
from flask import current_app, g, request

from .errors import UnauthorizedError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    """
    The authenticated caller, as asserted by the gateway.

    Attributes:
        user_id: Owner id for tasks (the ``sub`` claim).
        email: Email claim, if present.
        name: Display name (``name`` or ``given_name family_name``).
        username: ``preferred_username`` claim.
        groups: Group memberships.
        roles: Role names.
    """

    user_id: str
    email: str | None = None
    name: str | None = None
    username: str | None = None
    groups: tuple[str, ...] = field(default_factory=tuple)
    roles: tuple[str, ...] = field(default_factory=tuple)

    @property
    def label(self) -> str | None:
        """Name recorded as ``createdBy`` on new tasks."""
        return self.name or self.email

    @classmethod
    def from_claims(cls, claims: Mapping[str, Any]) -> Identity:
        """
        Build an identity from decoded JWT claims.

        A numeric ``sub`` is accepted and used in its string form.

        Raises:
            UnauthorizedError: If the ``sub`` claim is missing or blank.
        """
        subject = claims.get("sub")
        if isinstance(subject, int) and not isinstance(subject, bool):
            subject = str(subject)
        if not isinstance(subject, str) or not subject.strip():
            raise UnauthorizedError("Invalid authentication token")

        name = claims.get("name")
        if not name:
            parts = [claims.get("given_name"), claims.get("family_name")]
            name = " ".join(part for part in parts if part) or None

        return cls(
            user_id=subject,
            email=claims.get("email"),
            name=name,
            username=claims.get("preferred_username"),
            groups=_claim_values(claims.get("groups")),
            roles=_claim_values(claims.get("roles")),
        )


def _claim_values(value: Any) -> tuple[Any, ...]:
    """Read a multi-valued claim: a list as-is, a lone string as one entry, else empty."""
    if isinstance(value, (list, tuple)):
        return tuple(value)
    if isinstance(value, str):
        return (value,) if value else ()
    return ()


def decode_assertion(assertion: str) -> dict[str, Any]:
    """
    Decode a gateway assertion without verifying its signature.

    Raises:
        UnauthorizedError: If the value is not a decodable JWT.
    """
    try:
        return jwt.decode(
            assertion,
            options={"verify_signature": False},
            algorithms=None,
        )
    except jwt.InvalidTokenError as exc:
        logger.warning("Rejected identity assertion: %s", exc)
        raise UnauthorizedError("Invalid JWT format") from exc


def resolve_identity() -> Identity:
    """
    Determine the caller for the current request.

    Falls back to the configured development identity only when
    ``ALLOW_DEV_IDENTITY`` is enabled and no assertion was sent.
    """
    header_name = current_app.config.get("IDENTITY_HEADER", "X-JWT-Assertion")
    assertion = request.headers.get(header_name, "").strip()

    if not assertion:
        if current_app.config.get("ALLOW_DEV_IDENTITY"):
            return Identity.from_claims(current_app.config["DEV_IDENTITY"])
        logger.warning("Missing %s header on %s %s", header_name, request.method, request.path)
        raise UnauthorizedError("Authentication required")

    identity = Identity.from_claims(decode_assertion(assertion))
    logger.debug("Authenticated user %s (%s)", identity.user_id, identity.label)
    return identity


def require_identity(view_func: Callable[..., Any]):
    """
    Decorator that resolves the caller before the view runs.

    On success the identity is stored on ``flask.g.identity`` so handlers
    can read ``g.identity.user_id`` without re-parsing the header.  On
    failure ``UnauthorizedError`` propagates to the JSON error handler and
    the view is never invoked.
    """

    @wraps(view_func)
    def wrapper(*args, **kwargs):
        g.identity = resolve_identity()
        return view_func(*args, **kwargs)

    return wrapper
