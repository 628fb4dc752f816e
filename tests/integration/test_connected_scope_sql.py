"""Tests for SqlUserDirectory against SQLite."""

import uuid

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from identity_api.app.db.context import Principal
from identity_api.app.db.filters import bind_principal
from identity_api.app.db.models import OrganizationUser, Profile
from identity_api.app.db.sql_repositories import SqlUserDirectory
from identity_api.app.users.naming import ProfileNamed, SelfNamed
from tests.world import World


def _session(engine: AsyncEngine, principal: Principal) -> AsyncSession:
    session = AsyncSession(engine, expire_on_commit=False)
    bind_principal(session, principal)
    return session


@pytest.mark.asyncio
async def test_resolve_scope_follows_shared_organizations(
    sqlite_engine: AsyncEngine, world: World
) -> None:
    principal = Principal(user_id=world.bob, organization_id=world.acme)

    async with _session(sqlite_engine, principal) as session:
        scope = await SqlUserDirectory(session, SelfNamed()).resolve_scope(principal)

    assert scope.user_ids == {world.alice, world.bob, world.dave}


@pytest.mark.asyncio
async def test_resolve_scope_ignores_personal_organizations(
    sqlite_engine: AsyncEngine, world: World
) -> None:
    principal = Principal(user_id=world.carol)

    async with _session(sqlite_engine, principal) as session:
        # A guest in carol's personal organization is still not connected
        session.add(OrganizationUser(organization_id=world.carol_personal, user_id=world.dave))
        await session.commit()

        directory = SqlUserDirectory(session, SelfNamed())
        scope = await directory.resolve_scope(principal)

        assert len(scope) == 0
        assert list(await directory.list_visible_users(scope)) == []
        assert await directory.count_visible_users(scope) == 0


@pytest.mark.asyncio
async def test_resolve_scope_is_idempotent(sqlite_engine: AsyncEngine, world: World) -> None:
    principal = Principal(user_id=world.alice)

    async with _session(sqlite_engine, principal) as session:
        directory = SqlUserDirectory(session, SelfNamed())
        first = await directory.resolve_scope(principal)
        second = await directory.resolve_scope(principal)

    assert first == second


@pytest.mark.asyncio
async def test_list_visible_users_ordering_follows_name_source(
    sqlite_engine: AsyncEngine, world: World
) -> None:
    principal = Principal(user_id=world.bob)

    async with _session(sqlite_engine, principal) as session:
        profile = (
            await session.execute(select(Profile).where(Profile.user_id == world.alice))
        ).scalar_one()
        profile.first_name = "Zoe"
        await session.commit()

        self_named = SqlUserDirectory(session, SelfNamed())
        scope = await self_named.resolve_scope(principal)
        by_user = [u.username for u in await self_named.list_visible_users(scope)]

        profile_named = SqlUserDirectory(session, ProfileNamed())
        by_profile = [u.username for u in await profile_named.list_visible_users(scope)]

    assert by_user == ["bob", "alice", "dave"]
    assert by_profile == ["bob", "dave", "alice"]


@pytest.mark.asyncio
async def test_get_visible_user_by_id(sqlite_engine: AsyncEngine, world: World) -> None:
    principal = Principal(user_id=world.alice)

    async with _session(sqlite_engine, principal) as session:
        directory = SqlUserDirectory(session, SelfNamed())
        scope = await directory.resolve_scope(principal)

        visible = await directory.get_visible_user_by_id(scope, world.bob)
        hidden = await directory.get_visible_user_by_id(scope, world.dave)
        absent = await directory.get_visible_user_by_id(scope, uuid.uuid4())

    assert visible is not None
    assert visible.username == "bob"
    assert hidden is None
    assert absent is None


@pytest.mark.asyncio
async def test_public_directory_ignores_row_filters(
    sqlite_engine: AsyncEngine, world: World
) -> None:
    principal = Principal(user_id=world.carol)

    async with _session(sqlite_engine, principal) as session:
        directory = SqlUserDirectory(session, SelfNamed())
        users = [u.username for u in await directory.list_public_users(offset=1, limit=2)]

        assert users == ["alice", "carol"]
        assert await directory.count_public_users() == 4
        assert await directory.get_public_user_by_id(world.dave) is not None
