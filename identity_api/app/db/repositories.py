"""Repository protocol interfaces for data access."""

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any, Protocol
from uuid import UUID

from identity_api.app.db.context import Principal
from identity_api.app.db.models import User
from identity_api.app.errors import FieldError


@dataclass(frozen=True)
class VisibilityScope:
    """Peer-visibility predicate of one principal, computed per request.

    Holds the ids of users sharing at least one shared organization with the
    principal. Never persisted.
    """

    principal_id: UUID
    user_ids: frozenset[UUID] = frozenset()

    def __contains__(self, user_id: object) -> bool:
        return user_id in self.user_ids

    def __len__(self) -> int:
        return len(self.user_ids)


@dataclass
class UpdateResult:
    """Outcome of a domain write."""

    errors: list[FieldError] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors


class UserDirectory(Protocol):
    """Read access to users through the connected and public directories."""

    async def resolve_scope(self, principal: Principal) -> VisibilityScope:
        """Compute the users visible to the principal through shared organizations.

        Args:
            principal: Requesting principal

        Returns:
            Visibility scope (empty when the principal has no shared organization)
        """
        ...

    async def list_visible_users(
        self, scope: VisibilityScope, *, offset: int = 0, limit: int | None = None
    ) -> Iterator[User]:
        """List users in scope, ordered by display name then username.

        Args:
            scope: Visibility scope
            offset: Rows to skip
            limit: Maximum rows (None = all)

        Returns:
            Single-pass iterator of users
        """
        ...

    async def count_visible_users(self, scope: VisibilityScope) -> int:
        """Count users in scope."""
        ...

    async def get_visible_user_by_id(self, scope: VisibilityScope, user_id: UUID) -> User | None:
        """Get a user in scope.

        Returns:
            User, or None when absent or outside the scope
        """
        ...

    async def list_public_users(
        self, *, offset: int = 0, limit: int | None = None
    ) -> Iterator[User]:
        """List every user, ordered like the connected directory."""
        ...

    async def count_public_users(self) -> int:
        """Count every user."""
        ...

    async def get_public_user_by_id(self, user_id: UUID) -> User | None:
        """Get any user by id."""
        ...


class DomainManager(Protocol):
    """Validated writes of domain entities."""

    async def create(self, entity: Any) -> UpdateResult:
        """Validate and insert an entity."""
        ...

    async def update(self, entity: Any) -> UpdateResult:
        """Validate and persist changes of an entity.

        An invalid result leaves the stored record unchanged.
        """
        ...

    async def delete(self, entity: Any) -> UpdateResult:
        """Delete an entity and its owned rows."""
        ...
