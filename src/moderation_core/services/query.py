"""Query helpers shared by the moderation services."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError
from sqlalchemy import func
from sqlalchemy.orm import Query, Session
from sqlalchemy.orm.attributes import InstrumentedAttribute

from moderation_core.schemas.common import Paginated, Pagination

from .errors import ValidationFailure

SchemaT = TypeVar("SchemaT", bound=BaseModel)


def coerce(schema: type[SchemaT], data: SchemaT | Mapping[str, Any] | None) -> SchemaT:
    """Validate ``data`` into ``schema``, raising ``ValidationFailure`` on bad input."""
    if isinstance(data, schema):
        return data
    try:
        return schema.model_validate(data or {})
    except ValidationError as err:
        raise ValidationFailure(f"Invalid {schema.__name__}: {err}") from err


def require_priority(priority: int) -> int:
    """Return ``priority`` if it lies in the 1..4 band."""
    if isinstance(priority, bool) or not isinstance(priority, int) or not 1 <= priority <= 4:
        raise ValidationFailure(f"priority must be an integer between 1 and 4, got {priority!r}")
    return priority


def apply_date_range(
    query: Query[Any],
    column: InstrumentedAttribute[datetime],
    date_from: datetime | None,
    date_to: datetime | None,
) -> Query[Any]:
    """Restrict ``query`` to rows whose ``column`` lies in [date_from, date_to]."""
    if date_from is not None:
        query = query.filter(column >= date_from)
    if date_to is not None:
        query = query.filter(column <= date_to)
    return query


def paginate(
    query: Query[Any],
    pagination: Pagination,
    *,
    sortable: Mapping[str, InstrumentedAttribute[Any]],
    default_sort: str,
    default_order: str = "desc",
    tiebreaker: InstrumentedAttribute[Any] | None = None,
) -> Paginated[Any]:
    """Order, count and slice ``query`` according to ``pagination``.

    Args:
        query: Filtered query to page through.
        pagination: Caller-supplied page/limit/sort options.
        sortable: Whitelist of sort keys mapped to columns.
        default_sort: Sort key used when the caller gives none.
        default_order: Direction used when the caller gives none.
        tiebreaker: Secondary ascending sort applied after the primary key.

    Raises:
        ValidationFailure: If the caller asks for a sort key outside ``sortable``.
    """
    sort_by = pagination.sort_by or default_sort
    column = sortable.get(sort_by)
    if column is None:
        allowed = ", ".join(sorted(sortable))
        raise ValidationFailure(f"Cannot sort by {sort_by!r}; expected one of: {allowed}")
    order = pagination.sort_order or default_order

    total = query.order_by(None).count()
    ordering = [column.desc() if order == "desc" else column.asc()]
    if tiebreaker is not None and tiebreaker is not column:
        ordering.append(tiebreaker.asc())
    items = query.order_by(*ordering).offset(pagination.offset).limit(pagination.limit).all()
    return Paginated(items=items, page=pagination.page, limit=pagination.limit, total=total)


def count_by(
    db: Session,
    column: InstrumentedAttribute[Any],
    *criteria: Any,
) -> dict[Any, int]:
    """Return ``{value: row count}`` grouped on ``column``."""
    rows = db.query(column, func.count()).filter(*criteria).group_by(column).all()
    result: dict[Any, int] = {}
    for value, count in rows:
        key = value.value if hasattr(value, "value") else value
        result[key] = int(count)
    return result


def created_between(
    column: InstrumentedAttribute[datetime],
    date_from: datetime | None,
    date_to: datetime | None,
) -> list[Any]:
    """Return filter criteria for an inclusive created-at window."""
    criteria: list[Any] = []
    if date_from is not None:
        criteria.append(column >= date_from)
    if date_to is not None:
        criteria.append(column <= date_to)
    return criteria
