"""Current profile endpoints - GET/PATCH /profile, image upload and download."""

from typing import Annotated

from fastapi import APIRouter, Depends, File, Response, UploadFile

from identity_api.app.api.deps import (
    get_content_manager,
    get_content_store,
    get_current_user,
    get_domain,
    get_image_cache,
    get_image_size,
)
from identity_api.app.api.scopes import SCOPE_USER, read_scope, write_scope
from identity_api.app.content.cache import ImageCache
from identity_api.app.content.storage import USER_PROFILE_IMAGE, ContentStore, download_image
from identity_api.app.content.upload import ContentManager
from identity_api.app.db.domain import SqlDomainManager
from identity_api.app.db.models import Profile, User
from identity_api.app.errors import ConstraintViolationError, NotFoundError
from identity_api.app.models.users import ProfileForm, ProfileView
from identity_api.app.users.naming import join_names

router = APIRouter(tags=["profile"])


async def get_current_profile(user: Annotated[User, Depends(get_current_user)]) -> Profile:
    """Profile of the current user."""
    if user.profile is None:
        raise NotFoundError()
    return user.profile


@router.get("/profile", dependencies=[Depends(read_scope(SCOPE_USER))])
async def get_profile(profile: Annotated[Profile, Depends(get_current_profile)]) -> ProfileView:
    """Get the profile of the current user."""
    return ProfileView.build(profile)


@router.patch("/profile", dependencies=[Depends(write_scope(SCOPE_USER))])
async def update_profile(
    form: ProfileForm,
    profile: Annotated[Profile, Depends(get_current_profile)],
    domain: Annotated[SqlDomainManager, Depends(get_domain)],
) -> ProfileView:
    """Update the profile of the current user."""
    for name, value in form.model_dump(exclude_unset=True).items():
        setattr(profile, name, value)

    result = await domain.update(profile)
    if not result.valid:
        raise ConstraintViolationError(result.errors)

    return ProfileView.build(profile)


@router.post("/profile/upload", dependencies=[Depends(write_scope(SCOPE_USER))])
async def upload_image(
    file: Annotated[UploadFile, File()],
    profile: Annotated[Profile, Depends(get_current_profile)],
    content: Annotated[ContentManager, Depends(get_content_manager)],
) -> ProfileView:
    """Upload the image of the current profile."""
    await content.upload(
        USER_PROFILE_IMAGE.name, profile, file.filename or "", await file.read()
    )
    return ProfileView.build(profile)


@router.get("/profile.{ext}", dependencies=[Depends(read_scope(SCOPE_USER))])
async def download_profile_image(
    ext: str,
    user: Annotated[User, Depends(get_current_user)],
    profile: Annotated[Profile, Depends(get_current_profile)],
    store: Annotated[ContentStore, Depends(get_content_store)],
    cache: Annotated[ImageCache | None, Depends(get_image_cache)],
    size: Annotated[tuple[int | None, int | None], Depends(get_image_size)],
) -> Response:
    """Download the image of the current profile."""
    return download_image(
        store,
        USER_PROFILE_IMAGE,
        profile.image_path,
        join_names(profile.first_name, profile.last_name) or user.username,
        ext,
        *size,
        cache=cache,
    )
