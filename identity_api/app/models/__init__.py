"""Models package - re-exports for convenience."""

from identity_api.app.models.common import Form, Page, Pagination
from identity_api.app.models.organizations import (
    CreateOrganizationUserForm,
    InvitationRequest,
    OrganizationForm,
    OrganizationUserForm,
    OrganizationUserView,
    OrganizationView,
)
from identity_api.app.models.users import (
    AdminChangePasswordForm,
    ChangePasswordForm,
    CreateUserForm,
    CurrentUserView,
    ProfileForm,
    ProfileView,
    PublicUserView,
    UserForm,
    UserView,
)

__all__ = [
    # Common
    "Form",
    "Page",
    "Pagination",
    # Users
    "UserForm",
    "ProfileForm",
    "ChangePasswordForm",
    "AdminChangePasswordForm",
    "CreateUserForm",
    "UserView",
    "CurrentUserView",
    "ProfileView",
    "PublicUserView",
    # Organizations
    "OrganizationForm",
    "OrganizationUserForm",
    "CreateOrganizationUserForm",
    "InvitationRequest",
    "OrganizationView",
    "OrganizationUserView",
]
