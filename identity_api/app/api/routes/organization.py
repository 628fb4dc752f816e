"""Current organization endpoints - GET/PATCH/DELETE /organization, image upload and download."""

from typing import Annotated

from fastapi import APIRouter, Depends, File, Response, UploadFile, status

from identity_api.app.api.deps import (
    get_content_manager,
    get_content_store,
    get_current_organization,
    get_domain,
    get_image_cache,
    get_image_size,
)
from identity_api.app.api.scopes import SCOPE_ORGANIZATION, read_scope, write_scope
from identity_api.app.content.cache import ImageCache
from identity_api.app.content.storage import ORGANIZATION_IMAGE, ContentStore, download_image
from identity_api.app.content.upload import ContentManager
from identity_api.app.db.domain import SqlDomainManager
from identity_api.app.db.models import Organization
from identity_api.app.errors import ConstraintViolationError
from identity_api.app.models.organizations import OrganizationForm, OrganizationView

router = APIRouter(tags=["organization"])


@router.get("/organization", dependencies=[Depends(read_scope(SCOPE_ORGANIZATION))])
async def get_organization(
    organization: Annotated[Organization, Depends(get_current_organization)],
) -> OrganizationView:
    """Get the current organization."""
    return OrganizationView.build(organization)


@router.patch("/organization", dependencies=[Depends(write_scope(SCOPE_ORGANIZATION))])
async def update_organization(
    form: OrganizationForm,
    organization: Annotated[Organization, Depends(get_current_organization)],
    domain: Annotated[SqlDomainManager, Depends(get_domain)],
) -> OrganizationView:
    """Update the current organization."""
    for name, value in form.model_dump(exclude_unset=True).items():
        setattr(organization, name, value)

    result = await domain.update(organization)
    if not result.valid:
        raise ConstraintViolationError(result.errors)

    return OrganizationView.build(organization)


@router.post("/organization/upload", dependencies=[Depends(write_scope(SCOPE_ORGANIZATION))])
async def upload_image(
    file: Annotated[UploadFile, File()],
    organization: Annotated[Organization, Depends(get_current_organization)],
    content: Annotated[ContentManager, Depends(get_content_manager)],
) -> OrganizationView:
    """Upload the image of the current organization."""
    await content.upload(
        ORGANIZATION_IMAGE.name, organization, file.filename or "", await file.read()
    )
    return OrganizationView.build(organization)


@router.get("/organization.{ext}", dependencies=[Depends(read_scope(SCOPE_ORGANIZATION))])
async def download_organization_image(
    ext: str,
    organization: Annotated[Organization, Depends(get_current_organization)],
    store: Annotated[ContentStore, Depends(get_content_store)],
    cache: Annotated[ImageCache | None, Depends(get_image_cache)],
    size: Annotated[tuple[int | None, int | None], Depends(get_image_size)],
) -> Response:
    """Download the image of the current organization."""
    return download_image(
        store,
        ORGANIZATION_IMAGE,
        organization.image_path,
        organization.label or organization.name,
        ext,
        *size,
        cache=cache,
    )


@router.delete(
    "/organization",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(write_scope(SCOPE_ORGANIZATION))],
)
async def delete_organization(
    organization: Annotated[Organization, Depends(get_current_organization)],
    domain: Annotated[SqlDomainManager, Depends(get_domain)],
    content: Annotated[ContentManager, Depends(get_content_manager)],
) -> Response:
    """Delete the current organization with its memberships and image."""
    image_path = organization.image_path

    result = await domain.delete(organization)
    if not result.valid:
        raise ConstraintViolationError(result.errors)

    content.remove_image(image_path)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
