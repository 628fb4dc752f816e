"""Tests for the named row filters bound to a session."""

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from identity_api.app.db.context import Principal
from identity_api.app.db.filters import (
    FILTER_NAMES,
    USERABLE,
    bind_principal,
    disable_filters,
    enabled_filters,
)
from identity_api.app.db.models import Organization, OrganizationUser, User
from tests.world import World


async def _names(session: AsyncSession, model: type) -> set[str]:
    result = await session.execute(select(model))
    rows = result.unique().scalars().all()
    if model is OrganizationUser:
        return {f"{row.organization_id}:{row.user_id}" for row in rows}
    if model is User:
        return {row.username for row in rows}
    return {row.name for row in rows}


@pytest.mark.asyncio
async def test_unbound_session_is_unfiltered(sqlite_engine: AsyncEngine, world: World) -> None:
    async with AsyncSession(sqlite_engine) as session:
        assert enabled_filters(session) == frozenset()
        assert len(await _names(session, User)) == 4
        assert len(await _names(session, Organization)) == 4


@pytest.mark.asyncio
async def test_filters_with_current_organization(
    sqlite_engine: AsyncEngine, world: World
) -> None:
    async with AsyncSession(sqlite_engine) as session:
        bind_principal(session, Principal(user_id=world.alice, organization_id=world.acme))

        assert enabled_filters(session) == frozenset(FILTER_NAMES)
        assert await _names(session, Organization) == {"acme", "alice_personal"}
        assert await _names(session, OrganizationUser) == {
            f"{world.acme}:{world.alice}",
            f"{world.acme}:{world.bob}",
        }
        assert await _names(session, User) == {"alice", "bob"}


@pytest.mark.asyncio
async def test_filters_without_current_organization(
    sqlite_engine: AsyncEngine, world: World
) -> None:
    async with AsyncSession(sqlite_engine) as session:
        bind_principal(session, Principal(user_id=world.alice))

        assert await _names(session, OrganizationUser) == {
            f"{world.acme}:{world.alice}",
            f"{world.alice_personal}:{world.alice}",
        }
        assert await _names(session, User) == {"alice"}


@pytest.mark.asyncio
async def test_disable_filters_is_scoped_to_block(
    sqlite_engine: AsyncEngine, world: World
) -> None:
    async with AsyncSession(sqlite_engine) as session:
        bind_principal(session, Principal(user_id=world.carol, organization_id=world.carol_personal))

        with disable_filters(session, [USERABLE]):
            assert USERABLE not in enabled_filters(session)
            assert len(await _names(session, User)) == 4

        assert await _names(session, User) == {"carol"}


def test_disable_unknown_filter_raises() -> None:
    with pytest.raises(ValueError, match="Unknown row filters"):
        with disable_filters(AsyncSession(), ["tenant"]):
            pass
