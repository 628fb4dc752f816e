"""Error hierarchy for the identity API.

Every error carries a code and an HTTP status; ``to_response()`` builds the
REST envelope returned by the global handlers. ``NotFoundError`` never tells
an absent record apart from one the requester may not see.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class FieldError:
    """Validation error attached to a form or entity field (None = whole object)."""

    field: str | None
    message: str

    def to_dict(self) -> dict[str, str | None]:
        return {"field": self.field, "message": self.message}


class IdentityApiError(Exception):
    """Base exception for all identity API errors."""

    def __init__(self, message: str, code: str, http_status: int = 500) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.http_status = http_status

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        return {"error": {"code": self.code, "message": self.message}}


class NotFoundError(IdentityApiError):
    """Entity absent or outside the requester's visibility."""

    def __init__(self, message: str = "Not Found") -> None:
        super().__init__(message, "NOT_FOUND", 404)


class ConstraintViolationError(IdentityApiError):
    """Domain validation failed; carries field-level details."""

    def __init__(self, errors: list[FieldError], message: str = "Validation Failed") -> None:
        super().__init__(message, "VALIDATION_ERROR", 400)
        self.errors = list(errors)

    def to_response(self) -> dict:
        response = super().to_response()
        response["error"]["details"] = [error.to_dict() for error in self.errors]
        return response


class AuthenticationError(IdentityApiError):
    """Missing or malformed credentials."""

    def __init__(self, message: str) -> None:
        super().__init__(message, "UNAUTHORIZED", 401)


class AuthorizationDeniedError(IdentityApiError):
    """Scope or permission vote failed."""

    def __init__(self, message: str = "Access Denied") -> None:
        super().__init__(message, "ACCESS_DENIED", 403)
