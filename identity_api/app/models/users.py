"""User and profile API models: request forms and response views."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from identity_api.app.db.models import Profile, User
from identity_api.app.models.common import Form
from identity_api.app.users.naming import DisplayName


def _check_email(value: str | None) -> str | None:
    if value is not None and "@" not in value:
        raise ValueError("This value is not a valid email address.")
    return value


class UserForm(Form):
    """Partial update of a user account."""

    username: str | None = Field(None, min_length=1, max_length=180)
    email: str | None = Field(None, max_length=255)
    first_name: str | None = Field(None, max_length=255)
    last_name: str | None = Field(None, max_length=255)

    @field_validator("email")
    @classmethod
    def valid_email(cls, value: str | None) -> str | None:
        return _check_email(value)


class ProfileForm(Form):
    """Partial update of a profile."""

    first_name: str | None = Field(None, max_length=255)
    last_name: str | None = Field(None, max_length=255)


class ChangePasswordForm(Form):
    """Password change by the account owner."""

    old_password: str = Field(..., min_length=1, max_length=4096)
    new_password: str = Field(..., min_length=6, max_length=4096)


class AdminChangePasswordForm(Form):
    """Password change by an organization administrator (no old password)."""

    new_password: str = Field(..., min_length=6, max_length=4096)


class CreateUserForm(Form):
    """New user account."""

    username: str = Field(..., min_length=1, max_length=180)
    email: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=6, max_length=4096)
    first_name: str | None = Field(None, max_length=255)
    last_name: str | None = Field(None, max_length=255)

    @field_validator("email")
    @classmethod
    def valid_email(cls, value: str | None) -> str | None:
        return _check_email(value)


class UserView(BaseModel):
    """User as seen by other users."""

    id: UUID
    username: str
    first_name: str | None = None
    last_name: str | None = None
    full_name: str | None = None
    has_image: bool = False

    @classmethod
    def build(cls, user: User, naming: DisplayName) -> "UserView":
        first_name, last_name = naming.names(user)
        return cls(
            id=user.id,
            username=user.username,
            first_name=first_name,
            last_name=last_name,
            full_name=naming.full_name(user),
            has_image=bool(user.image_path),
        )


class CurrentUserView(UserView):
    """User as seen by itself."""

    email: str | None = None
    enabled: bool = True
    created_at: datetime | None = None

    @classmethod
    def build(cls, user: User, naming: DisplayName) -> "CurrentUserView":
        view = UserView.build(user, naming)
        return cls(
            **view.model_dump(),
            email=user.email,
            enabled=user.enabled,
            created_at=user.created_at,
        )


class ProfileView(BaseModel):
    """Profile of the current user."""

    id: UUID
    user_id: UUID
    first_name: str | None = None
    last_name: str | None = None
    has_image: bool = False

    @classmethod
    def build(cls, profile: Profile) -> "ProfileView":
        return cls(
            id=profile.id,
            user_id=profile.user_id,
            first_name=profile.first_name,
            last_name=profile.last_name,
            has_image=bool(profile.image_path),
        )


class PublicUserView(BaseModel):
    """User as listed in the public directory."""

    id: UUID
    username: str
    full_name: str | None = None
    has_image: bool = False

    @classmethod
    def build(cls, user: User, naming: DisplayName) -> "PublicUserView":
        return cls(
            id=user.id,
            username=user.username,
            full_name=naming.full_name(user),
            has_image=bool(user.image_path),
        )
