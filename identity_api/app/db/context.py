"""Request principal for visibility and tenancy enforcement."""

from collections.abc import Iterable
from dataclasses import dataclass, field
from uuid import UUID


@dataclass(frozen=True)
class Principal:
    """Authenticated requester, built once per request.

    Used to scope every database read: the principal's memberships decide
    which organizations and users are visible.
    """

    user_id: UUID
    organization_id: UUID | None = None
    scopes: frozenset[str] = field(default_factory=frozenset)

    def has_scopes(self, scopes: Iterable[str], all_required: bool = True) -> bool:
        """Check granted OAuth scopes.

        Args:
            scopes: Scopes to check
            all_required: Require every scope when True, any of them otherwise

        Returns:
            True if the vote passes
        """
        wanted = list(scopes)
        if all_required:
            return all(scope in self.scopes for scope in wanted)
        return any(scope in self.scopes for scope in wanted)
