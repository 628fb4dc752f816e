"""Organization membership endpoints - /organization_users.

Reads need the organization_user scope (or its read-only variant). Writes
need the full scope and an administrator membership in the current
organization.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, File, UploadFile, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from identity_api.app.api.deps import (
    get_content_manager,
    get_current_organization,
    get_domain,
    get_naming,
    get_pagination,
    get_scoped_session,
    parse_id,
    require_org_admin,
)
from identity_api.app.api.scopes import SCOPE_ORGANIZATION_USER, read_scope, write_scope
from identity_api.app.config import Settings, get_settings
from identity_api.app.content.storage import USER_IMAGE
from identity_api.app.content.upload import ContentManager
from identity_api.app.db.domain import SqlDomainManager, validate_entity
from identity_api.app.db.filters import USERABLE, disable_filters
from identity_api.app.db.models import Organization, OrganizationUser, Profile, User
from identity_api.app.db.queries import query_organization_members, query_user_by_login
from identity_api.app.errors import ConstraintViolationError, FieldError, NotFoundError
from identity_api.app.models.common import Page, Pagination
from identity_api.app.models.organizations import (
    CreateOrganizationUserForm,
    InvitationRequest,
    OrganizationUserForm,
    OrganizationUserView,
)
from identity_api.app.models.users import AdminChangePasswordForm, UserForm
from identity_api.app.users.naming import DisplayName
from identity_api.app.users.passwords import ChangePasswordHelper, hash_password

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/organization_users", tags=["organization_users"])

_READ = [Depends(read_scope(SCOPE_ORGANIZATION_USER))]
_WRITE = [Depends(write_scope(SCOPE_ORGANIZATION_USER)), Depends(require_org_admin)]


async def get_membership(
    id: str,
    organization: Annotated[Organization, Depends(get_current_organization)],
    session: Annotated[AsyncSession, Depends(get_scoped_session)],
) -> OrganizationUser:
    """Membership of the current organization selected by the path id."""
    stmt = select(OrganizationUser).where(
        OrganizationUser.id == parse_id(id),
        OrganizationUser.organization_id == organization.id,
    )
    membership = (await session.execute(stmt)).unique().scalar_one_or_none()
    if membership is None:
        raise NotFoundError()
    return membership


async def _find_user(session: AsyncSession, login: str) -> User | None:
    # Candidates are not members of the current organization yet
    with disable_filters(session, [USERABLE]):
        result = await session.execute(query_user_by_login(login))
        return result.unique().scalars().first()


def _apply(entity: object, form: UserForm) -> None:
    for name, value in form.model_dump(exclude_unset=True).items():
        setattr(entity, name, value)


def require_member_user_editable(
    settings: Annotated[Settings, Depends(get_settings)],
) -> None:
    """Reject edits of member accounts when the deployment forbids them."""
    if not settings.member_user_editable:
        raise ConstraintViolationError(
            [FieldError(field="user", message="This form should not contain extra fields.")]
        )


async def _save(domain: SqlDomainManager, entity: object) -> None:
    result = await domain.update(entity)
    if not result.valid:
        raise ConstraintViolationError(result.errors)


@router.get("", dependencies=_READ)
async def list_organization_users(
    organization: Annotated[Organization, Depends(get_current_organization)],
    session: Annotated[AsyncSession, Depends(get_scoped_session)],
    pagination: Annotated[Pagination, Depends(get_pagination)],
    naming: Annotated[DisplayName, Depends(get_naming)],
) -> Page[OrganizationUserView]:
    """List the members of the current organization."""
    stmt = naming.order(query_organization_members(organization.id))
    stmt = stmt.offset(pagination.offset).limit(pagination.limit)
    memberships = (await session.execute(stmt)).unique().scalars().all()

    total = await session.scalar(
        select(func.count())
        .select_from(OrganizationUser)
        .where(OrganizationUser.organization_id == organization.id)
    )

    return Page[OrganizationUserView].build(
        [OrganizationUserView.build(m, naming) for m in memberships], pagination, total or 0
    )


@router.get("/{id}", dependencies=_READ)
async def get_organization_user(
    membership: Annotated[OrganizationUser, Depends(get_membership)],
    naming: Annotated[DisplayName, Depends(get_naming)],
) -> OrganizationUserView:
    """Get one member of the current organization."""
    return OrganizationUserView.build(membership, naming)


@router.post("", status_code=status.HTTP_201_CREATED, dependencies=_WRITE)
async def add_organization_user(
    form: OrganizationUserForm,
    organization: Annotated[Organization, Depends(get_current_organization)],
    session: Annotated[AsyncSession, Depends(get_scoped_session)],
    domain: Annotated[SqlDomainManager, Depends(get_domain)],
    naming: Annotated[DisplayName, Depends(get_naming)],
) -> OrganizationUserView:
    """Add an existing user, selected by username, to the current organization."""
    if form.user is not None:
        raise ConstraintViolationError(
            [FieldError(field="user", message="This form should not contain extra fields.")]
        )
    if form.username is None:
        raise ConstraintViolationError(
            [FieldError(field="username", message="This value should not be blank.")]
        )

    user = await _find_user(session, form.username)
    if user is None or user.username != form.username:
        raise ConstraintViolationError(
            [FieldError(field="username", message="This value is not valid.")]
        )

    membership = OrganizationUser(
        organization_id=organization.id,
        user=user,
        roles=list(form.roles or []),
        enabled=True if form.enabled is None else form.enabled,
    )
    result = await domain.create(membership)
    if not result.valid:
        raise ConstraintViolationError(result.errors)

    return OrganizationUserView.build(membership, naming)


@router.patch("/{id}", dependencies=_WRITE)
async def update_organization_user(
    form: OrganizationUserForm,
    membership: Annotated[OrganizationUser, Depends(get_membership)],
    domain: Annotated[SqlDomainManager, Depends(get_domain)],
    naming: Annotated[DisplayName, Depends(get_naming)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> OrganizationUserView:
    """Update a member of the current organization and its user account."""
    if form.username is not None:
        raise ConstraintViolationError(
            [FieldError(field="username", message="This form should not contain extra fields.")]
        )

    if form.user is not None:
        require_member_user_editable(settings)
        _apply(membership.user, form.user)
        errors = validate_entity(membership.user)
        if errors:
            raise ConstraintViolationError(errors)
    if form.roles is not None:
        membership.roles = list(form.roles)
    if form.enabled is not None:
        membership.enabled = form.enabled
    # One commit covers the member account and the membership
    await _save(domain, membership)

    return OrganizationUserView.build(membership, naming)


@router.post("/invite", dependencies=_WRITE)
async def invite(
    form: InvitationRequest,
    organization: Annotated[Organization, Depends(get_current_organization)],
    session: Annotated[AsyncSession, Depends(get_scoped_session)],
    domain: Annotated[SqlDomainManager, Depends(get_domain)],
    naming: Annotated[DisplayName, Depends(get_naming)],
) -> OrganizationUserView:
    """Invite an existing user, by email or username, to the current organization.

    An existing membership is returned as is; otherwise an enabled membership
    is created for the user.

    Raises:
        NotFoundError: No user matches
        ConstraintViolationError: Membership rejected
    """
    stmt = query_organization_members(organization.id).where(
        (User.email == form.email) | (User.username == form.email)
    )
    membership = (await session.execute(stmt)).unique().scalars().first()
    if membership is not None:
        return OrganizationUserView.build(membership, naming)

    user = await _find_user(session, form.email)
    if user is None:
        raise NotFoundError()

    membership = OrganizationUser(
        organization_id=organization.id, user=user, roles=[], enabled=True
    )
    result = await domain.create(membership)
    if not result.valid:
        raise ConstraintViolationError(result.errors)

    logger.info(
        "User invited",
        extra={"structured": {"organization_id": str(organization.id), "user_id": str(user.id)}},
    )
    return OrganizationUserView.build(membership, naming)


@router.post("/create", status_code=status.HTTP_201_CREATED, dependencies=_WRITE)
async def create_organization_user(
    form: CreateOrganizationUserForm,
    organization: Annotated[Organization, Depends(get_current_organization)],
    domain: Annotated[SqlDomainManager, Depends(get_domain)],
    naming: Annotated[DisplayName, Depends(get_naming)],
) -> OrganizationUserView:
    """Create a user account with its profile straight into the current organization."""
    data = form.user
    user = User(
        username=data.username,
        email=data.email,
        password_hash=hash_password(data.password),
        enabled=True,
    )
    profile = Profile()
    if naming.source == "profile":
        profile.first_name, profile.last_name = data.first_name, data.last_name
    else:
        user.first_name, user.last_name = data.first_name, data.last_name
    user.profile = profile

    errors = validate_entity(user) + validate_entity(profile)
    if errors:
        raise ConstraintViolationError(errors)

    membership = OrganizationUser(
        organization_id=organization.id, user=user, roles=list(form.roles), enabled=True
    )
    result = await domain.create(membership)
    if not result.valid:
        raise ConstraintViolationError(result.errors)

    return OrganizationUserView.build(membership, naming)


@router.patch("/{id}/user", dependencies=[*_WRITE, Depends(require_member_user_editable)])
async def update_organization_user_account(
    form: UserForm,
    membership: Annotated[OrganizationUser, Depends(get_membership)],
    domain: Annotated[SqlDomainManager, Depends(get_domain)],
    naming: Annotated[DisplayName, Depends(get_naming)],
) -> OrganizationUserView:
    """Update the user account of a member."""
    _apply(membership.user, form)
    await _save(domain, membership.user)
    return OrganizationUserView.build(membership, naming)


@router.patch("/{id}/change-password", dependencies=_WRITE)
async def change_organization_user_password(
    form: AdminChangePasswordForm,
    membership: Annotated[OrganizationUser, Depends(get_membership)],
    domain: Annotated[SqlDomainManager, Depends(get_domain)],
    naming: Annotated[DisplayName, Depends(get_naming)],
) -> OrganizationUserView:
    """Set the password of a member (no current password needed)."""
    await ChangePasswordHelper(domain).process(
        membership.user, form.new_password, check_old=False
    )
    return OrganizationUserView.build(membership, naming)


@router.post("/{id}/user/upload", dependencies=_WRITE)
async def upload_organization_user_image(
    file: Annotated[UploadFile, File()],
    membership: Annotated[OrganizationUser, Depends(get_membership)],
    content: Annotated[ContentManager, Depends(get_content_manager)],
    naming: Annotated[DisplayName, Depends(get_naming)],
) -> OrganizationUserView:
    """Upload the image of a member's user account."""
    await content.upload(USER_IMAGE.name, membership.user, file.filename or "", await file.read())
    return OrganizationUserView.build(membership, naming)
