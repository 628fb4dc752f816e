"""Visibility-safe query helpers."""

from uuid import UUID

from sqlalchemy import Select, func, select

from identity_api.app.db.models import Organization, OrganizationUser, User


def member_organization_ids(user_id: UUID) -> Select:
    """Select ids of every organization the user belongs to."""
    return select(OrganizationUser.organization_id).where(OrganizationUser.user_id == user_id)


def shared_organization_ids(user_id: UUID) -> Select:
    """Select ids of the user's shared organizations.

    Personal organizations (``owner_id`` set) are left out: they never make
    their members visible to each other.
    """
    return select(Organization.id).where(
        Organization.owner_id.is_(None),
        Organization.id.in_(member_organization_ids(user_id)),
    )


def connected_user_ids(user_id: UUID) -> Select:
    """Select the distinct ids of users sharing a shared organization with the user.

    The user's own id is part of the result only through such an organization.
    """
    return (
        select(OrganizationUser.user_id)
        .where(OrganizationUser.organization_id.in_(shared_organization_ids(user_id)))
        .distinct()
    )


def query_users_by_ids(user_ids: frozenset[UUID]) -> Select:
    """Select users restricted to a set of ids (an empty set matches nothing)."""
    return select(User).where(User.id.in_(list(user_ids)))


def count_users_by_ids(user_ids: frozenset[UUID]) -> Select:
    """Count users restricted to a set of ids."""
    return select(func.count()).select_from(User).where(User.id.in_(list(user_ids)))


def query_organization_members(organization_id: UUID) -> Select:
    """Select memberships of one organization, with their users."""
    return (
        select(OrganizationUser)
        .join(User, OrganizationUser.user_id == User.id)
        .where(OrganizationUser.organization_id == organization_id)
    )


def query_user_by_login(login: str) -> Select:
    """Select a user whose email or username matches the login."""
    return select(User).where((User.email == login) | (User.username == login))
