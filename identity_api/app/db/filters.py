"""Named row-level security filters bound to a session.

Once a principal is bound to a session, every ORM SELECT issued through it is
restricted by three named filters:

- ``organization``: organizations the principal is a member of
- ``organization_user``: memberships of the principal's current organization
  (or the principal's own memberships when no organization is selected)
- ``userable``: users sharing the current organization, plus the principal

Filters can be switched off by name for one read with ``disable_filters``.
Sessions without a bound principal (seeding, migrations) are unfiltered.
"""

from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import event, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import ORMExecuteState, Session, with_loader_criteria

from identity_api.app.db.context import Principal
from identity_api.app.db.models import Organization, OrganizationUser, User

ORGANIZATION = "organization"
ORGANIZATION_USER = "organization_user"
USERABLE = "userable"

FILTER_NAMES = (ORGANIZATION, ORGANIZATION_USER, USERABLE)

_PRINCIPAL_KEY = "row_filter_principal"
_DISABLED_KEY = "row_filter_disabled"


def bind_principal(session: Session | AsyncSession, principal: Principal) -> None:
    """Enable row filters for the principal on this session."""
    session.info[_PRINCIPAL_KEY] = principal


def enabled_filters(session: Session | AsyncSession) -> frozenset[str]:
    """Names of the filters currently applied by the session."""
    if session.info.get(_PRINCIPAL_KEY) is None:
        return frozenset()
    return frozenset(FILTER_NAMES) - session.info.get(_DISABLED_KEY, frozenset())


@contextmanager
def disable_filters(session: Session | AsyncSession, names: Iterable[str]) -> Iterator[None]:
    """Temporarily relax the named filters for reads issued inside the block."""
    unknown = set(names) - set(FILTER_NAMES)
    if unknown:
        raise ValueError(f"Unknown row filters: {sorted(unknown)}")

    previous = session.info.get(_DISABLED_KEY, frozenset())
    session.info[_DISABLED_KEY] = previous | frozenset(names)
    try:
        yield
    finally:
        session.info[_DISABLED_KEY] = previous


def _criteria(principal: Principal) -> dict[str, tuple[type, Any]]:
    # Core aliases keep the criteria subqueries out of ORM filtering and
    # auto-correlation with the filtered statement.
    membership = OrganizationUser.__table__.alias("filter_membership")
    member_org_ids = (
        select(membership.c.organization_id)
        .where(membership.c.user_id == principal.user_id)
        .correlate(None)
    )

    if principal.organization_id is None:
        membership_criteria = OrganizationUser.user_id == principal.user_id
        user_criteria = User.id == principal.user_id
    else:
        membership_criteria = OrganizationUser.organization_id == principal.organization_id
        user_criteria = or_(
            User.id == principal.user_id,
            User.id.in_(
                select(membership.c.user_id)
                .where(membership.c.organization_id == principal.organization_id)
                .correlate(None)
            ),
        )

    return {
        ORGANIZATION: (Organization, Organization.id.in_(member_org_ids)),
        ORGANIZATION_USER: (OrganizationUser, membership_criteria),
        USERABLE: (User, user_criteria),
    }


@event.listens_for(Session, "do_orm_execute")
def _apply_row_filters(execute_state: ORMExecuteState) -> None:
    if (
        not execute_state.is_select
        or execute_state.is_column_load
        or execute_state.is_relationship_load
    ):
        return

    active = enabled_filters(execute_state.session)
    if not active:
        return

    principal = execute_state.session.info[_PRINCIPAL_KEY]
    options = [
        with_loader_criteria(entity, criteria, include_aliases=True)
        for name, (entity, criteria) in _criteria(principal).items()
        if name in active
    ]
    execute_state.statement = execute_state.statement.options(*options)
