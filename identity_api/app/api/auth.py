"""Minimal auth dependency.

Stub implementation that extracts the principal from the bearer token:
``Bearer <user_id>[:<organization_id>]``. Granted OAuth scopes come from the
space-separated ``X-Auth-Scopes`` header. Token issuance lives elsewhere.
"""

import uuid
from typing import Annotated

from fastapi import Header

from identity_api.app.db.context import Principal
from identity_api.app.errors import AuthenticationError


def parse_scopes(header: str | None) -> frozenset[str]:
    """Split a space-separated scope header."""
    if not header:
        return frozenset()
    return frozenset(scope for scope in header.split() if scope)


async def get_current_principal(
    authorization: Annotated[str | None, Header()] = None,
    x_auth_scopes: Annotated[str | None, Header()] = None,
) -> Principal:
    """Extract the principal from the authorization header.

    Args:
        authorization: Authorization header (e.g., "Bearer <user_id>:<org_id>")
        x_auth_scopes: Granted scopes (e.g., "meta/user meta/organization")

    Returns:
        Principal with user id, current organization id and scopes

    Raises:
        AuthenticationError: If authorization is missing or malformed
    """
    if not authorization:
        raise AuthenticationError("Missing authorization header")

    if not authorization.startswith("Bearer "):
        raise AuthenticationError("Invalid authorization header format")

    token = authorization[7:].strip()  # Strip "Bearer "
    user_id_str, _, org_id_str = token.partition(":")

    try:
        user_id = uuid.UUID(user_id_str)
        organization_id = uuid.UUID(org_id_str) if org_id_str else None
    except ValueError as e:
        raise AuthenticationError(
            "Invalid token format (expected user_id[:organization_id])"
        ) from e

    return Principal(
        user_id=user_id,
        organization_id=organization_id,
        scopes=parse_scopes(x_auth_scopes),
    )
