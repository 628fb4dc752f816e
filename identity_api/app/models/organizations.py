"""Organization and membership API models."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from identity_api.app.db.models import Organization, OrganizationUser
from identity_api.app.models.common import Form
from identity_api.app.models.users import CreateUserForm, UserForm, UserView
from identity_api.app.users.naming import DisplayName


class OrganizationForm(Form):
    """Partial update of an organization."""

    name: str | None = Field(None, min_length=1, max_length=128)
    label: str | None = Field(None, max_length=255)


class OrganizationUserForm(Form):
    """Membership form.

    ``username`` selects an existing user when adding a member; ``user``
    edits the member's account on an existing membership.
    """

    username: str | None = Field(None, min_length=1, max_length=180)
    user: UserForm | None = None
    roles: list[str] | None = None
    enabled: bool | None = None


class CreateOrganizationUserForm(Form):
    """New user account created straight into the current organization."""

    user: CreateUserForm
    roles: list[str] = Field(default_factory=list)


class InvitationRequest(Form):
    """Invitation of an existing user by email."""

    email: str = Field(..., min_length=1, max_length=255)


class OrganizationView(BaseModel):
    """Organization."""

    id: UUID
    name: str
    label: str | None = None
    is_personal: bool = False
    has_image: bool = False
    created_at: datetime | None = None

    @classmethod
    def build(cls, organization: Organization) -> "OrganizationView":
        return cls(
            id=organization.id,
            name=organization.name,
            label=organization.label,
            is_personal=organization.is_personal,
            has_image=bool(organization.image_path),
            created_at=organization.created_at,
        )


class OrganizationUserView(BaseModel):
    """Membership with its user."""

    id: UUID
    organization_id: UUID
    roles: list[str] = Field(default_factory=list)
    enabled: bool = True
    user: UserView

    @classmethod
    def build(cls, membership: OrganizationUser, naming: DisplayName) -> "OrganizationUserView":
        return cls(
            id=membership.id,
            organization_id=membership.organization_id,
            roles=list(membership.roles or []),
            enabled=membership.enabled,
            user=UserView.build(membership.user, naming),
        )
