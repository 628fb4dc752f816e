"""Domain manager: constraint checks plus commit for entity writes."""

import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from identity_api.app.db.models import Organization, OrganizationUser, Profile, User
from identity_api.app.db.repositories import UpdateResult
from identity_api.app.errors import FieldError

logger = logging.getLogger(__name__)

ALREADY_USED = "This value is already used."


class _Constraints(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class _UserConstraints(_Constraints):
    username: str = Field(..., min_length=1, max_length=180)
    email: str | None = Field(None, max_length=255)
    first_name: str | None = Field(None, max_length=255)
    last_name: str | None = Field(None, max_length=255)
    image_path: str | None = Field(None, max_length=255)


class _ProfileConstraints(_Constraints):
    first_name: str | None = Field(None, max_length=255)
    last_name: str | None = Field(None, max_length=255)
    image_path: str | None = Field(None, max_length=255)


class _OrganizationConstraints(_Constraints):
    name: str = Field(..., min_length=1, max_length=128)
    label: str | None = Field(None, max_length=255)
    image_path: str | None = Field(None, max_length=255)


class _OrganizationUserConstraints(_Constraints):
    roles: list[str] = Field(default_factory=list)


_CONSTRAINTS: dict[type, type[_Constraints]] = {
    User: _UserConstraints,
    Profile: _ProfileConstraints,
    Organization: _OrganizationConstraints,
    OrganizationUser: _OrganizationUserConstraints,
}


def validate_entity(entity: Any) -> list[FieldError]:
    """Check an entity against its constraints.

    Args:
        entity: ORM instance

    Returns:
        Field errors (empty when valid)
    """
    constraints = _CONSTRAINTS.get(type(entity))
    if constraints is None:
        return []

    try:
        constraints.model_validate(entity)
    except ValidationError as e:
        return [
            FieldError(field=".".join(str(loc) for loc in err["loc"]) or None, message=err["msg"])
            for err in e.errors()
        ]
    return []


class SqlDomainManager:
    """SQL implementation of DomainManager."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, entity: Any) -> UpdateResult:
        """Validate and insert an entity."""
        errors = validate_entity(entity)
        if errors:
            return UpdateResult(errors=errors)

        self._session.add(entity)
        return await self._commit(entity)

    async def update(self, entity: Any) -> UpdateResult:
        """Validate and persist changes of an entity."""
        errors = validate_entity(entity)
        if errors:
            return UpdateResult(errors=errors)

        self._session.add(entity)
        return await self._commit(entity)

    async def delete(self, entity: Any) -> UpdateResult:
        """Delete an entity and its owned rows."""
        await self._session.delete(entity)
        return await self._commit(entity)

    async def _commit(self, entity: Any) -> UpdateResult:
        try:
            await self._session.commit()
        except IntegrityError as e:
            await self._session.rollback()
            logger.info(
                f"Integrity error writing {type(entity).__name__}",
                extra={"structured": {"entity": type(entity).__name__, "error": str(e.orig)}},
            )
            return UpdateResult(errors=[FieldError(field=None, message=ALREADY_USED)])
        return UpdateResult()
