"""SQL implementations of repository interfaces."""

from collections.abc import Iterator
from uuid import UUID

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from identity_api.app.db.context import Principal
from identity_api.app.db.filters import FILTER_NAMES, disable_filters
from identity_api.app.db.models import User
from identity_api.app.db.queries import (
    connected_user_ids,
    count_users_by_ids,
    query_users_by_ids,
)
from identity_api.app.db.repositories import VisibilityScope
from identity_api.app.users.naming import DisplayName, get_display_name


class SqlUserDirectory:
    """SQL implementation of UserDirectory."""

    def __init__(self, session: AsyncSession, naming: DisplayName | None = None) -> None:
        self._session = session
        self._naming = naming or get_display_name()

    async def resolve_scope(self, principal: Principal) -> VisibilityScope:
        """Compute the users visible to the principal through shared organizations."""
        with disable_filters(self._session, FILTER_NAMES):
            user_ids = await self._session.scalars(connected_user_ids(principal.user_id))
            return VisibilityScope(
                principal_id=principal.user_id, user_ids=frozenset(user_ids)
            )

    async def list_visible_users(
        self, scope: VisibilityScope, *, offset: int = 0, limit: int | None = None
    ) -> Iterator[User]:
        """List users in scope, ordered by display name then username."""
        if not scope.user_ids:
            return iter(())
        return await self._list(query_users_by_ids(scope.user_ids), offset, limit)

    async def count_visible_users(self, scope: VisibilityScope) -> int:
        """Count users in scope."""
        if not scope.user_ids:
            return 0
        with disable_filters(self._session, FILTER_NAMES):
            return await self._session.scalar(count_users_by_ids(scope.user_ids)) or 0

    async def get_visible_user_by_id(self, scope: VisibilityScope, user_id: UUID) -> User | None:
        """Get a user in scope (None when absent or outside the scope)."""
        if user_id not in scope:
            return None
        return await self.get_public_user_by_id(user_id)

    async def list_public_users(
        self, *, offset: int = 0, limit: int | None = None
    ) -> Iterator[User]:
        """List every user, ordered like the connected directory."""
        return await self._list(select(User), offset, limit)

    async def count_public_users(self) -> int:
        """Count every user."""
        with disable_filters(self._session, FILTER_NAMES):
            return await self._session.scalar(select(func.count()).select_from(User)) or 0

    async def get_public_user_by_id(self, user_id: UUID) -> User | None:
        """Get any user by id."""
        with disable_filters(self._session, FILTER_NAMES):
            stmt = select(User).where(User.id == user_id)
            return (await self._session.execute(stmt)).unique().scalar_one_or_none()

    async def _list(self, stmt: Select, offset: int, limit: int | None) -> Iterator[User]:
        stmt = self._naming.order(stmt).offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)

        with disable_filters(self._session, FILTER_NAMES):
            result = await self._session.scalars(stmt)
            return iter(result.unique().all())
