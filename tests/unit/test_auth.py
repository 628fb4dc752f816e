"""Unit tests for auth module."""

import uuid

import pytest

from identity_api.app.api.auth import get_current_principal, parse_scopes
from identity_api.app.errors import AuthenticationError


@pytest.mark.asyncio
async def test_get_current_principal_missing_header_raises_401() -> None:
    """Test that a missing auth header is rejected."""
    with pytest.raises(AuthenticationError) as exc_info:
        await get_current_principal(authorization=None)

    assert exc_info.value.http_status == 401


@pytest.mark.asyncio
async def test_get_current_principal_user_only() -> None:
    """Test a token without organization."""
    user_id = uuid.uuid4()

    principal = await get_current_principal(authorization=f"Bearer {user_id}")

    assert principal.user_id == user_id
    assert principal.organization_id is None
    assert principal.scopes == frozenset()


@pytest.mark.asyncio
async def test_get_current_principal_user_and_organization() -> None:
    """Test valid user:organization token format."""
    user_id = uuid.uuid4()
    org_id = uuid.uuid4()

    principal = await get_current_principal(
        authorization=f"Bearer {user_id}:{org_id}",
        x_auth_scopes="meta/user  meta/organization.readonly",
    )

    assert principal.user_id == user_id
    assert principal.organization_id == org_id
    assert principal.scopes == {"meta/user", "meta/organization.readonly"}


@pytest.mark.asyncio
async def test_get_current_principal_invalid_bearer_format() -> None:
    """Test invalid bearer format raises 401."""
    with pytest.raises(AuthenticationError) as exc_info:
        await get_current_principal(authorization="NotBearer token")

    assert exc_info.value.http_status == 401
    assert "Invalid authorization header format" in exc_info.value.message


@pytest.mark.asyncio
async def test_get_current_principal_invalid_uuid_format() -> None:
    """Test invalid UUID format raises 401."""
    with pytest.raises(AuthenticationError):
        await get_current_principal(authorization="Bearer not-a-uuid:also-not")


def test_parse_scopes_ignores_blank_header() -> None:
    assert parse_scopes(None) == frozenset()
    assert parse_scopes("   ") == frozenset()
