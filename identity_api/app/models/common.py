"""Common types shared across API models."""

from math import ceil
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class Form(BaseModel):
    """Base of request forms: unknown fields are rejected."""

    model_config = ConfigDict(extra="forbid")


class Pagination(BaseModel):
    """Requested page of a list endpoint."""

    page: int = Field(1, ge=1)
    limit: int = Field(20, ge=1)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class Page(BaseModel, Generic[T]):
    """One page of a list endpoint."""

    results: list[T]
    page: int
    limit: int
    pages: int
    total: int

    @classmethod
    def build(cls, results: list[T], pagination: Pagination, total: int) -> "Page[T]":
        return cls(
            results=results,
            page=pagination.page,
            limit=pagination.limit,
            pages=ceil(total / pagination.limit) if total else 0,
            total=total,
        )
