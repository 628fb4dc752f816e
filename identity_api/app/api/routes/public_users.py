"""Public user directory - every user, public view group."""

from typing import Annotated

from fastapi import APIRouter, Depends, Response

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
from identity_api.app.db.models import User
from identity_api.app.db.repositories import UserDirectory
from identity_api.app.errors import NotFoundError
from identity_api.app.models.common import Page, Pagination
from identity_api.app.models.users import PublicUserView
from identity_api.app.users.naming import DisplayName

router = APIRouter(
    prefix="/public_users",
    tags=["public_users"],
    dependencies=[Depends(read_scope(SCOPE_ORGANIZATION_USER))],
)


async def get_public_user(
    id: str,
    directory: Annotated[UserDirectory, Depends(get_directory)],
) -> User:
    user = await directory.get_public_user_by_id(parse_id(id))
    if user is None:
        raise NotFoundError()
    return user


@router.get("")
async def list_public_users(
    directory: Annotated[UserDirectory, Depends(get_directory)],
    pagination: Annotated[Pagination, Depends(get_pagination)],
    naming: Annotated[DisplayName, Depends(get_naming)],
) -> Page[PublicUserView]:
    """List every user, ordered by name then username."""
    users = await directory.list_public_users(offset=pagination.offset, limit=pagination.limit)
    total = await directory.count_public_users()

    return Page[PublicUserView].build(
        [PublicUserView.build(user, naming) for user in users], pagination, total
    )


@router.get("/{id}")
async def get_public_user_view(
    user: Annotated[User, Depends(get_public_user)],
    naming: Annotated[DisplayName, Depends(get_naming)],
) -> PublicUserView:
    """Show a user."""
    return PublicUserView.build(user, naming)


@router.get("/{id}/user.{ext}")
async def download_public_user_image(
    ext: str,
    user: Annotated[User, Depends(get_public_user)],
    store: Annotated[ContentStore, Depends(get_content_store)],
    cache: Annotated[ImageCache | None, Depends(get_image_cache)],
    size: Annotated[tuple[int | None, int | None], Depends(get_image_size)],
    naming: Annotated[DisplayName, Depends(get_naming)],
) -> Response:
    """Download the image of a user."""
    return download_image(
        store,
        USER_IMAGE,
        user.image_path,
        naming.full_name(user) or user.username,
        ext,
        *size,
        cache=cache,
    )
