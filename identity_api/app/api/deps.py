"""Shared FastAPI dependencies: scoped session, services, current entities."""

import uuid
from functools import lru_cache
from typing import Annotated

import redis
from fastapi import Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from identity_api.app.api.auth import get_current_principal
from identity_api.app.api.scopes import ROLE_ADMIN, has_role
from identity_api.app.config import Settings, get_settings
from identity_api.app.content.cache import ImageCache, RedisImageCache
from identity_api.app.content.storage import ContentStore
from identity_api.app.content.upload import (
    ContentManager,
    UploadCompletionHandler,
    UploadReconciler,
)
from identity_api.app.db.context import Principal
from identity_api.app.db.domain import SqlDomainManager
from identity_api.app.db.engine import get_session
from identity_api.app.db.filters import bind_principal
from identity_api.app.db.models import Organization, OrganizationUser, User
from identity_api.app.db.sql_repositories import SqlUserDirectory
from identity_api.app.errors import (
    AuthorizationDeniedError,
    ConstraintViolationError,
    FieldError,
    NotFoundError,
)
from identity_api.app.models.common import Pagination
from identity_api.app.users.naming import DisplayName, display_name_for
from identity_api.app.utils.logging import StructuredUploadLogger
from identity_api.app.utils.metrics import PrometheusUploadMetrics


def parse_id(value: str) -> uuid.UUID:
    """Parse a path identifier; ids that are not UUIDs are unknown ids."""
    try:
        return uuid.UUID(value)
    except ValueError as e:
        raise NotFoundError() from e


async def get_scoped_session(
    principal: Annotated[Principal, Depends(get_current_principal)],
    session: Annotated[AsyncSession, Depends(get_session)],
) -> AsyncSession:
    """Database session with row filters bound to the principal."""
    bind_principal(session, principal)
    return session


def get_naming(settings: Annotated[Settings, Depends(get_settings)]) -> DisplayName:
    return display_name_for(settings.name_source)


def get_directory(
    session: Annotated[AsyncSession, Depends(get_scoped_session)],
    naming: Annotated[DisplayName, Depends(get_naming)],
) -> SqlUserDirectory:
    return SqlUserDirectory(session, naming)


def get_domain(session: Annotated[AsyncSession, Depends(get_scoped_session)]) -> SqlDomainManager:
    return SqlDomainManager(session)


def get_content_store(settings: Annotated[Settings, Depends(get_settings)]) -> ContentStore:
    return ContentStore(settings.upload_root, settings.upload_max_size)


@lru_cache
def _redis_client(redis_url: str) -> redis.Redis:
    return redis.from_url(redis_url)  # type: ignore[no-untyped-call]


def get_image_cache(settings: Annotated[Settings, Depends(get_settings)]) -> ImageCache | None:
    """Image-derivative cache, when Redis is configured."""
    if not settings.redis_url:
        return None
    return RedisImageCache(_redis_client(settings.redis_url), settings.image_cache_ttl_seconds)


def get_content_manager(
    store: Annotated[ContentStore, Depends(get_content_store)],
    cache: Annotated[ImageCache | None, Depends(get_image_cache)],
    domain: Annotated[SqlDomainManager, Depends(get_domain)],
) -> ContentManager:
    reconciler = UploadReconciler(
        store,
        cache,
        metrics=PrometheusUploadMetrics(),
        logger=StructuredUploadLogger(),
    )
    return ContentManager(store, UploadCompletionHandler(reconciler, domain.update))


def get_pagination(
    settings: Annotated[Settings, Depends(get_settings)],
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int | None, Query(ge=1)] = None,
) -> Pagination:
    """Page and limit of a list request (limit defaults from settings)."""
    if limit is not None and limit > settings.max_page_limit:
        raise ConstraintViolationError(
            [
                FieldError(
                    field="limit",
                    message=f"This value should be less than or equal to {settings.max_page_limit}.",
                )
            ]
        )
    return Pagination(page=page, limit=limit or settings.default_page_limit)


async def get_current_user(
    principal: Annotated[Principal, Depends(get_current_principal)],
    session: Annotated[AsyncSession, Depends(get_scoped_session)],
) -> User:
    """Account of the principal."""
    stmt = select(User).where(User.id == principal.user_id)
    user = (await session.execute(stmt)).unique().scalar_one_or_none()
    if user is None:
        raise NotFoundError()
    return user


async def get_current_organization(
    principal: Annotated[Principal, Depends(get_current_principal)],
    session: Annotated[AsyncSession, Depends(get_scoped_session)],
) -> Organization:
    """Current organization of the principal (must be a member)."""
    if principal.organization_id is None:
        raise NotFoundError()

    stmt = select(Organization).where(Organization.id == principal.organization_id)
    organization = (await session.execute(stmt)).scalar_one_or_none()
    if organization is None:
        raise NotFoundError()
    return organization


async def get_current_membership(
    principal: Annotated[Principal, Depends(get_current_principal)],
    organization: Annotated[Organization, Depends(get_current_organization)],
    session: Annotated[AsyncSession, Depends(get_scoped_session)],
) -> OrganizationUser:
    """Membership of the principal in its current organization."""
    stmt = select(OrganizationUser).where(
        OrganizationUser.organization_id == organization.id,
        OrganizationUser.user_id == principal.user_id,
    )
    membership = (await session.execute(stmt)).unique().scalar_one_or_none()
    if membership is None:
        raise NotFoundError()
    return membership


async def require_org_admin(
    membership: Annotated[OrganizationUser, Depends(get_current_membership)],
) -> OrganizationUser:
    """Vote passing when the principal administers its current organization."""
    if not membership.enabled or not has_role(membership.roles, ROLE_ADMIN):
        raise AuthorizationDeniedError("Organization administrator role required")
    return membership


def get_image_size(
    width: Annotated[int | None, Query(ge=1, le=4096)] = None,
    height: Annotated[int | None, Query(ge=1, le=4096)] = None,
) -> tuple[int | None, int | None]:
    """Requested derivative size of an image download."""
    return width, height
