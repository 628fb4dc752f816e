"""Dev seeding helper for stub authentication.

Log in with ``Authorization: Bearer <DEV_USER_ID>:<DEV_SHARED_ORG_ID>``.
"""

import asyncio
import uuid
from collections.abc import Callable
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from identity_api.app.api.scopes import ROLE_ADMIN
from identity_api.app.db.engine import get_async_engine
from identity_api.app.db.models import Organization, OrganizationUser, Profile, User
from identity_api.app.users.passwords import hash_password

DEV_USER_ID = uuid.UUID("00000000-0000-0000-0000-000000000002")
DEV_PERSONAL_ORG_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")
DEV_SHARED_ORG_ID = uuid.UUID("00000000-0000-0000-0000-000000000003")


async def _get_or_add(
    session: AsyncSession, model: Any, entity_id: uuid.UUID, factory: Callable[[], Any]
) -> Any:
    result = await session.execute(select(model).where(model.id == entity_id))
    existing = result.unique().scalar_one_or_none()
    if existing is not None:
        print(f"Dev {model.__tablename__} already exists: {entity_id}")
        return existing

    print(f"Creating dev {model.__tablename__} with id {entity_id}...")
    entity = factory()
    session.add(entity)
    return entity


async def seed_dev_data() -> None:
    """Seed a dev user with a personal and a shared organization.

    This function is idempotent - safe to run multiple times.
    The user administers the shared organization.
    """
    async with AsyncSession(get_async_engine()) as session:
        await _get_or_add(
            session,
            User,
            DEV_USER_ID,
            lambda: User(
                id=DEV_USER_ID,
                username="dev",
                email="dev@example.com",
                first_name="Dev",
                last_name="User",
                password_hash=hash_password("devpassword"),
                profile=Profile(first_name="Dev", last_name="User"),
            ),
        )
        await session.flush()

        await _get_or_add(
            session,
            Organization,
            DEV_PERSONAL_ORG_ID,
            lambda: Organization(
                id=DEV_PERSONAL_ORG_ID,
                name="dev",
                owner_id=DEV_USER_ID,
                memberships=[OrganizationUser(user_id=DEV_USER_ID, roles=[ROLE_ADMIN])],
            ),
        )
        await _get_or_add(
            session,
            Organization,
            DEV_SHARED_ORG_ID,
            lambda: Organization(
                id=DEV_SHARED_ORG_ID,
                name="dev-team",
                label="Dev Team",
                memberships=[OrganizationUser(user_id=DEV_USER_ID, roles=[ROLE_ADMIN])],
            ),
        )

        await session.commit()
        print("✅ Dev seeding complete")


if __name__ == "__main__":
    asyncio.run(seed_dev_data())
