"""Display-name capability: where a user's first and last names live.

Deployments keep names either on the user row (``SelfNamed``) or on the
user's profile (``ProfileNamed``). The variant is chosen once from settings
and drives SQL ordering, in-memory ordering and full-name rendering.
"""

from functools import lru_cache
from typing import Protocol

from sqlalchemy import Select

from identity_api.app.config import get_settings
from identity_api.app.db.models import Profile, User

SortKey = tuple[tuple[bool, str], tuple[bool, str], str]


def _nulls_first(value: str | None) -> tuple[bool, str]:
    return (value is not None, value or "")


def join_names(first_name: str | None, last_name: str | None) -> str | None:
    """Render "first last" from optional parts, or None when both are empty."""
    full_name = " ".join(part for part in (first_name, last_name) if part)
    return full_name or None


class DisplayName(Protocol):
    """Name representation of a user."""

    source: str

    def names(self, user: User) -> tuple[str | None, str | None]:
        """Return (first_name, last_name)."""
        ...

    def order(self, stmt: Select) -> Select:
        """Order a statement selecting users by name, then username."""
        ...

    def sort_key(self, user: User) -> SortKey:
        """In-memory equivalent of ``order`` (nulls first, username last)."""
        ...

    def full_name(self, user: User) -> str | None:
        """Render "first last", or None when the user has no name."""
        ...


class SelfNamed:
    """Names stored on the user row."""

    source = "user"

    def names(self, user: User) -> tuple[str | None, str | None]:
        return user.first_name, user.last_name

    def order(self, stmt: Select) -> Select:
        return stmt.order_by(
            User.first_name.asc().nulls_first(),
            User.last_name.asc().nulls_first(),
            User.username.asc(),
        )

    def sort_key(self, user: User) -> SortKey:
        first_name, last_name = self.names(user)
        return (_nulls_first(first_name), _nulls_first(last_name), user.username)

    def full_name(self, user: User) -> str | None:
        return join_names(*self.names(user))


class ProfileNamed:
    """Names stored on the profile joined to the user."""

    source = "profile"

    def names(self, user: User) -> tuple[str | None, str | None]:
        if user.profile is None:
            return None, None
        return user.profile.first_name, user.profile.last_name

    def order(self, stmt: Select) -> Select:
        return stmt.outerjoin(Profile, Profile.user_id == User.id).order_by(
            Profile.first_name.asc().nulls_first(),
            Profile.last_name.asc().nulls_first(),
            User.username.asc(),
        )

    def sort_key(self, user: User) -> SortKey:
        first_name, last_name = self.names(user)
        return (_nulls_first(first_name), _nulls_first(last_name), user.username)

    def full_name(self, user: User) -> str | None:
        return join_names(*self.names(user))


def display_name_for(source: str) -> DisplayName:
    """Resolve the display-name variant for a configured source."""
    if source == "profile":
        return ProfileNamed()
    if source == "user":
        return SelfNamed()
    raise ValueError(f"Unknown name source: {source!r}")


@lru_cache
def get_display_name() -> DisplayName:
    """Display-name variant of this deployment, resolved once."""
    return display_name_for(get_settings().name_source)
