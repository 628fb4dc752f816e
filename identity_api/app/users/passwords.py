"""Password hashing and password-change processing."""

import base64
import hashlib
import logging

import bcrypt

from identity_api.app.db.models import User
from identity_api.app.db.repositories import DomainManager
from identity_api.app.errors import ConstraintViolationError, FieldError

logger = logging.getLogger(__name__)


def _prehash(password: str) -> bytes:
    # bcrypt only reads the first 72 bytes; passwords may be up to 4096 chars
    return base64.b64encode(hashlib.sha256(password.encode()).digest())


def hash_password(password: str) -> str:
    """Hash a plain password with a fresh bcrypt salt."""
    return bcrypt.hashpw(_prehash(password), bcrypt.gensalt()).decode()


def verify_password(password: str, password_hash: str | None) -> bool:
    """Check a plain password against a stored hash (False when none is stored)."""
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(_prehash(password), password_hash.encode())
    except ValueError:
        logger.warning("Stored password hash is not a valid bcrypt hash")
        return False


class ChangePasswordHelper:
    """Apply a password change to a user and persist it through the domain manager."""

    def __init__(self, domain: DomainManager) -> None:
        self._domain = domain

    async def process(
        self,
        user: User,
        new_password: str,
        old_password: str | None = None,
        *,
        check_old: bool = True,
    ) -> User:
        """Change the user's password.

        Args:
            user: Account to update
            new_password: Plain new password
            old_password: Plain current password (checked when ``check_old``)
            check_old: Require the current password to match

        Returns:
            The updated user

        Raises:
            ConstraintViolationError: Current password mismatch or invalid entity
        """
        if check_old and not verify_password(old_password or "", user.password_hash):
            raise ConstraintViolationError(
                [
                    FieldError(
                        field="old_password",
                        message="This value should be the user's current password.",
                    )
                ]
            )

        user.password_hash = hash_password(new_password)
        result = await self._domain.update(user)
        if not result.valid:
            raise ConstraintViolationError(result.errors)

        logger.info(
            "Password changed",
            extra={"structured": {"user_id": str(user.id), "by_owner": check_old}},
        )
        return user
