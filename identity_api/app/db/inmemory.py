"""In-memory implementations of repository interfaces."""

import uuid
from collections.abc import Iterator

from identity_api.app.db.context import Principal
from identity_api.app.db.models import Organization, OrganizationUser, User
from identity_api.app.db.repositories import VisibilityScope
from identity_api.app.users.naming import DisplayName, get_display_name


class InMemoryUserDirectory:
    """In-memory implementation of UserDirectory.

    Holds transient ORM instances; ids are assigned on insert since column
    defaults only apply at flush.
    """

    def __init__(self, naming: DisplayName | None = None) -> None:
        self._naming = naming or get_display_name()
        self._users: dict[uuid.UUID, User] = {}
        self._organizations: dict[uuid.UUID, Organization] = {}
        self._memberships: list[OrganizationUser] = []

    def add_user(self, user: User) -> User:
        if user.id is None:
            user.id = uuid.uuid4()
        self._users[user.id] = user
        return user

    def add_organization(self, organization: Organization) -> Organization:
        if organization.id is None:
            organization.id = uuid.uuid4()
        self._organizations[organization.id] = organization
        return organization

    def add_membership(self, organization: Organization, user: User) -> OrganizationUser:
        membership = OrganizationUser(
            id=uuid.uuid4(),
            organization_id=organization.id,
            user_id=user.id,
            roles=[],
            enabled=True,
        )
        self._memberships.append(membership)
        return membership

    async def resolve_scope(self, principal: Principal) -> VisibilityScope:
        """Compute the users visible to the principal through shared organizations."""
        shared_ids = {
            m.organization_id
            for m in self._memberships
            if m.user_id == principal.user_id
            and m.organization_id in self._organizations
            and self._organizations[m.organization_id].owner_id is None
        }
        user_ids = frozenset(
            m.user_id for m in self._memberships if m.organization_id in shared_ids
        )
        return VisibilityScope(principal_id=principal.user_id, user_ids=user_ids)

    async def list_visible_users(
        self, scope: VisibilityScope, *, offset: int = 0, limit: int | None = None
    ) -> Iterator[User]:
        """List users in scope, ordered by display name then username."""
        users = [user for user_id, user in self._users.items() if user_id in scope]
        return self._page(users, offset, limit)

    async def count_visible_users(self, scope: VisibilityScope) -> int:
        """Count users in scope."""
        return sum(1 for user_id in self._users if user_id in scope)

    async def get_visible_user_by_id(self, scope: VisibilityScope, user_id: uuid.UUID) -> User | None:
        """Get a user in scope (None when absent or outside the scope)."""
        if user_id not in scope:
            return None
        return self._users.get(user_id)

    async def list_public_users(
        self, *, offset: int = 0, limit: int | None = None
    ) -> Iterator[User]:
        """List every user, ordered like the connected directory."""
        return self._page(list(self._users.values()), offset, limit)

    async def count_public_users(self) -> int:
        """Count every user."""
        return len(self._users)

    async def get_public_user_by_id(self, user_id: uuid.UUID) -> User | None:
        """Get any user by id."""
        return self._users.get(user_id)

    def _page(self, users: list[User], offset: int, limit: int | None) -> Iterator[User]:
        users.sort(key=self._naming.sort_key)
        end = None if limit is None else offset + limit
        return iter(users[offset:end])
