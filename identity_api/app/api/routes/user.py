"""Current user endpoints - GET/PATCH /user, password, image upload and download."""

from typing import Annotated

from fastapi import APIRouter, Depends, File, Response, UploadFile

from identity_api.app.api.deps import (
    get_content_manager,
    get_content_store,
    get_current_user,
    get_domain,
    get_image_cache,
    get_image_size,
    get_naming,
)
from identity_api.app.api.scopes import SCOPE_USER, read_scope, write_scope
from identity_api.app.content.cache import ImageCache
from identity_api.app.content.storage import USER_IMAGE, ContentStore, download_image
from identity_api.app.content.upload import ContentManager
from identity_api.app.db.domain import SqlDomainManager
from identity_api.app.db.models import User
from identity_api.app.errors import ConstraintViolationError
from identity_api.app.models.users import ChangePasswordForm, CurrentUserView, UserForm
from identity_api.app.users.naming import DisplayName
from identity_api.app.users.passwords import ChangePasswordHelper

router = APIRouter(tags=["user"])


@router.get("/user", dependencies=[Depends(read_scope(SCOPE_USER))])
async def get_user(
    user: Annotated[User, Depends(get_current_user)],
    naming: Annotated[DisplayName, Depends(get_naming)],
) -> CurrentUserView:
    """Get the current user."""
    return CurrentUserView.build(user, naming)


@router.patch("/user", dependencies=[Depends(write_scope(SCOPE_USER))])
async def update_user(
    form: UserForm,
    user: Annotated[User, Depends(get_current_user)],
    domain: Annotated[SqlDomainManager, Depends(get_domain)],
    naming: Annotated[DisplayName, Depends(get_naming)],
) -> CurrentUserView:
    """Update the current user.

    Args:
        form: Fields to change (absent fields are kept)
        user: Current user
        domain: Domain manager
        naming: Display-name variant

    Returns:
        Updated user

    Raises:
        ConstraintViolationError: Invalid or already used values
    """
    for name, value in form.model_dump(exclude_unset=True).items():
        setattr(user, name, value)

    result = await domain.update(user)
    if not result.valid:
        raise ConstraintViolationError(result.errors)

    return CurrentUserView.build(user, naming)


@router.patch("/user/change-password", dependencies=[Depends(write_scope(SCOPE_USER))])
async def change_password(
    form: ChangePasswordForm,
    user: Annotated[User, Depends(get_current_user)],
    domain: Annotated[SqlDomainManager, Depends(get_domain)],
    naming: Annotated[DisplayName, Depends(get_naming)],
) -> CurrentUserView:
    """Update the password of the current user."""
    await ChangePasswordHelper(domain).process(
        user, form.new_password, form.old_password, check_old=True
    )
    return CurrentUserView.build(user, naming)


@router.post("/user/upload", dependencies=[Depends(write_scope(SCOPE_USER))])
async def upload_image(
    file: Annotated[UploadFile, File()],
    user: Annotated[User, Depends(get_current_user)],
    content: Annotated[ContentManager, Depends(get_content_manager)],
    naming: Annotated[DisplayName, Depends(get_naming)],
) -> CurrentUserView:
    """Upload the image of the current user."""
    await content.upload(USER_IMAGE.name, user, file.filename or "", await file.read())
    return CurrentUserView.build(user, naming)


@router.get("/user.{ext}", dependencies=[Depends(read_scope(SCOPE_USER))])
async def download_user_image(
    ext: str,
    user: Annotated[User, Depends(get_current_user)],
    store: Annotated[ContentStore, Depends(get_content_store)],
    cache: Annotated[ImageCache | None, Depends(get_image_cache)],
    size: Annotated[tuple[int | None, int | None], Depends(get_image_size)],
    naming: Annotated[DisplayName, Depends(get_naming)],
) -> Response:
    """Download the image of the current user."""
    return download_image(
        store,
        USER_IMAGE,
        user.image_path,
        naming.full_name(user) or user.username,
        ext,
        *size,
        cache=cache,
    )
