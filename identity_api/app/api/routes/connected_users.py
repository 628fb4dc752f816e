"""Connected user directory - users sharing a shared organization with the requester."""

from typing import Annotated

from fastapi import APIRouter, Depends, Response

from identity_api.app.api.auth import get_current_principal
from identity_api.app.api.deps import (
    get_content_store,
    get_directory,
    get_image_cache,
    get_image_size,
    get_naming,
    get_pagination,
    parse_id,
)
from identity_api.app.api.scopes import SCOPE_ORGANIZATION_USER, read_scope
from identity_api.app.content.cache import ImageCache
from identity_api.app.content.storage import USER_IMAGE, ContentStore, download_image
from identity_api.app.db.context import Principal
from identity_api.app.db.models import User
from identity_api.app.db.repositories import UserDirectory
from identity_api.app.errors import NotFoundError
from identity_api.app.models.common import Page, Pagination
from identity_api.app.models.users import UserView
from identity_api.app.users.naming import DisplayName

router = APIRouter(
    prefix="/connected_users",
    tags=["connected_users"],
    dependencies=[Depends(read_scope(SCOPE_ORGANIZATION_USER))],
)


async def get_connected_user(
    id: str,
    principal: Annotated[Principal, Depends(get_current_principal)],
    directory: Annotated[UserDirectory, Depends(get_directory)],
) -> User:
    """Connected user selected by the path id (404 when absent or not connected)."""
    scope = await directory.resolve_scope(principal)
    user = await directory.get_visible_user_by_id(scope, parse_id(id))
    if user is None:
        raise NotFoundError()
    return user


@router.get("")
async def list_connected_users(
    principal: Annotated[Principal, Depends(get_current_principal)],
    directory: Annotated[UserDirectory, Depends(get_directory)],
    pagination: Annotated[Pagination, Depends(get_pagination)],
    naming: Annotated[DisplayName, Depends(get_naming)],
) -> Page[UserView]:
    """List the users connected to the requester, ordered by name then username.

    Args:
        principal: Requesting principal
        directory: User directory
        pagination: Requested page
        naming: Display-name variant

    Returns:
        Page of connected users (empty without shared organization)
    """
    scope = await directory.resolve_scope(principal)
    users = await directory.list_visible_users(
        scope, offset=pagination.offset, limit=pagination.limit
    )
    total = await directory.count_visible_users(scope)

    return Page[UserView].build(
        [UserView.build(user, naming) for user in users], pagination, total
    )


@router.get("/{id}")
async def get_connected_user_view(
    user: Annotated[User, Depends(get_connected_user)],
    naming: Annotated[DisplayName, Depends(get_naming)],
) -> UserView:
    """Show a connected user."""
    return UserView.build(user, naming)


@router.get("/{id}/user.{ext}")
async def download_connected_user_image(
    ext: str,
    user: Annotated[User, Depends(get_connected_user)],
    store: Annotated[ContentStore, Depends(get_content_store)],
    cache: Annotated[ImageCache | None, Depends(get_image_cache)],
    size: Annotated[tuple[int | None, int | None], Depends(get_image_size)],
    naming: Annotated[DisplayName, Depends(get_naming)],
) -> Response:
    """Download the image of a connected user."""
    return download_image(
        store,
        USER_IMAGE,
        user.image_path,
        naming.full_name(user) or user.username,
        ext,
        *size,
        cache=cache,
    )
