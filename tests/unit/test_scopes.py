"""Unit tests for scope votes."""

import uuid

import pytest

from identity_api.app.api.scopes import (
    SCOPE_USER,
    SCOPE_USER_READONLY,
    read_scope,
    require_scopes,
    write_scope,
)
from identity_api.app.config import Settings
from identity_api.app.db.context import Principal
from identity_api.app.errors import AuthorizationDeniedError


def _principal(*scopes: str) -> Principal:
    return Principal(user_id=uuid.uuid4(), scopes=frozenset(scopes))


def test_has_scopes_all_required() -> None:
    principal = _principal("a", "b")

    assert principal.has_scopes(["a", "b"]) is True
    assert principal.has_scopes(["a", "c"]) is False


def test_has_scopes_any() -> None:
    principal = _principal("b")

    assert principal.has_scopes(["a", "b"], all_required=False) is True
    assert principal.has_scopes(["a", "c"], all_required=False) is False


@pytest.mark.asyncio
async def test_read_scope_accepts_readonly_variant() -> None:
    """Test that a read vote passes with only the read-only scope."""
    vote = read_scope(SCOPE_USER)
    principal = _principal(SCOPE_USER_READONLY)

    assert await vote(principal=principal, settings=Settings()) is principal


@pytest.mark.asyncio
async def test_write_scope_rejects_readonly_variant() -> None:
    """Test that a write vote needs the full scope."""
    vote = write_scope(SCOPE_USER)

    with pytest.raises(AuthorizationDeniedError) as exc_info:
        await vote(principal=_principal(SCOPE_USER_READONLY), settings=Settings())

    assert exc_info.value.http_status == 403


@pytest.mark.asyncio
async def test_vote_passes_when_enforcement_disabled() -> None:
    """Test that disabled scope enforcement lets every principal through."""
    vote = require_scopes("meta/anything")

    principal = _principal()
    result = await vote(principal=principal, settings=Settings(scope_enforcement=False))

    assert result is principal
