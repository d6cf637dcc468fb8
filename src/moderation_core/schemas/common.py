"""Shared Pydantic schemas for pagination and date ranges."""
from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Generic, Literal, TypeVar

from pydantic import BaseModel, Field, model_validator

T = TypeVar("T")

SortOrder = Literal["asc", "desc"]


class Pagination(BaseModel):
    """Offset pagination and ordering requested by a caller."""

    page: int = Field(1, ge=1, description="1-based page number")
    limit: int = Field(20, ge=1, le=100, description="Rows per page")
    sort_by: str | None = Field(None, description="Column to order by")
    sort_order: SortOrder | None = Field(None, description="asc or desc")

    @property
    def offset(self) -> int:
        """Number of rows to skip."""
        return (self.page - 1) * self.limit


class DateRange(BaseModel):
    """Inclusive created-at window used by list filters and stats."""

    date_from: datetime | None = None
    date_to: datetime | None = None

    @model_validator(mode="after")
    def _check_order(self) -> DateRange:
        if self.date_from and self.date_to and self.date_from > self.date_to:
            raise ValueError("date_from must not be after date_to")
        return self


class PageMeta(BaseModel):
    """Pagination block returned alongside list results."""

    page: int
    limit: int
    total: int
    pages: int


class Page(BaseModel, Generic[T]):
    """List response envelope."""

    data: list[T]
    pagination: PageMeta


@dataclass
class Paginated(Generic[T]):
    """Service-level page of ORM rows."""

    items: list[T]
    page: int
    limit: int
    total: int

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    def meta(self) -> PageMeta:
        """Return the pagination block for this page."""
        return PageMeta(page=self.page, limit=self.limit, total=self.total, pages=self.pages)

    def as_response(self) -> dict[str, object]:
        """Return a mapping suitable for a ``Page[...]`` response model."""
        return {"data": self.items, "pagination": self.meta()}
