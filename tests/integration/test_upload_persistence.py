"""Tests for upload reconciliation against the SQL domain manager."""

from pathlib import Path

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from identity_api.app.content.storage import ContentStore
from identity_api.app.content.upload import UploadReconciler, UploadRejectedError, UploadState
from identity_api.app.db.domain import SqlDomainManager
from identity_api.app.db.models import User
from tests.world import World


@pytest.mark.asyncio
async def test_rejected_upload_keeps_persisted_path(
    sqlite_engine: AsyncEngine, world: World, tmp_path: Path
) -> None:
    store = ContentStore(tmp_path / "uploads")
    new_file = store.absolute_path("users/new.png")
    new_file.parent.mkdir(parents=True)
    new_file.write_bytes(b"stored")

    async with AsyncSession(sqlite_engine, expire_on_commit=False) as session:
        domain = SqlDomainManager(session)
        user = await session.get(User, world.alice)
        assert user is not None
        user.image_path = "users/old.png"
        assert (await domain.update(user)).valid

        user.first_name = "x" * 300
        with pytest.raises(UploadRejectedError) as exc_info:
            await UploadReconciler(store).apply(user, "users/new.png", domain.update)

    assert exc_info.value.transaction.state == UploadState.rejected
    assert exc_info.value.errors[0].field == "first_name"
    assert not new_file.exists()

    async with AsyncSession(sqlite_engine) as session:
        persisted = await session.get(User, world.alice)
        assert persisted is not None
        assert persisted.image_path == "users/old.png"
        assert persisted.first_name == "Alice"


@pytest.mark.asyncio
async def test_accepted_upload_persists_new_path(
    sqlite_engine: AsyncEngine, world: World, tmp_path: Path
) -> None:
    store = ContentStore(tmp_path / "uploads")

    async with AsyncSession(sqlite_engine, expire_on_commit=False) as session:
        user = await session.get(User, world.bob)
        assert user is not None

        tx = await UploadReconciler(store).apply(
            user, "users/bob.png", SqlDomainManager(session).update
        )

    assert tx.state == UploadState.done

    async with AsyncSession(sqlite_engine) as session:
        persisted = await session.get(User, world.bob)
        assert persisted is not None
        assert persisted.image_path == "users/bob.png"
