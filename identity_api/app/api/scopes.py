"""OAuth scope votes and organization role checks."""

from collections.abc import Awaitable, Callable
from typing import Annotated

from fastapi import Depends

from identity_api.app.api.auth import get_current_principal
from identity_api.app.config import Settings, get_settings
from identity_api.app.db.context import Principal
from identity_api.app.errors import AuthorizationDeniedError

SCOPE_USER = "meta/user"
SCOPE_USER_READONLY = "meta/user.readonly"
SCOPE_ORGANIZATION = "meta/organization"
SCOPE_ORGANIZATION_READONLY = "meta/organization.readonly"
SCOPE_ORGANIZATION_USER = "meta/organization_user"
SCOPE_ORGANIZATION_USER_READONLY = "meta/organization_user.readonly"

ROLE_ADMIN = "ROLE_ADMIN"


def require_scopes(
    *scopes: str, all_required: bool = True
) -> Callable[..., Awaitable[Principal]]:
    """Build a dependency voting on the principal's OAuth scopes.

    The vote always passes when scope enforcement is disabled.

    Args:
        scopes: Scopes to check
        all_required: Require every scope when True, any of them otherwise

    Returns:
        FastAPI dependency returning the principal
    """

    async def vote(
        principal: Annotated[Principal, Depends(get_current_principal)],
        settings: Annotated[Settings, Depends(get_settings)],
    ) -> Principal:
        if settings.scope_enforcement and not principal.has_scopes(scopes, all_required):
            raise AuthorizationDeniedError(
                f"Insufficient scope: {' '.join(scopes)}"
            )
        return principal

    return vote


def read_scope(scope: str) -> Callable[..., Awaitable[Principal]]:
    """Vote passing with the scope or its read-only variant."""
    return require_scopes(scope, f"{scope}.readonly", all_required=False)


def write_scope(scope: str) -> Callable[..., Awaitable[Principal]]:
    """Vote passing with the full scope only."""
    return require_scopes(scope)


def has_role(roles: list[str] | None, role: str) -> bool:
    return role in (roles or [])
