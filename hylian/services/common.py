"""Common helper functions for service layer.

This module provides reusable utilities for:
- UUID handling
- Query ordering and pagination
- Entity retrieval with 404 handling
- Email normalization
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING, TypeVar

from hylian.exceptions import InvalidInput, NotFound

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

T = TypeVar("T")


def coerce_uuid(value):
    """Convert value to UUID, returning None if value is None."""
    if value is None:
        return None
    if isinstance(value, uuid.UUID):
        return value
    return uuid.UUID(str(value))


def normalize_email(value: str) -> str:
    return value.strip().lower()


def apply_ordering(query, order_by: str, order_dir: str, allowed_columns: dict):
    """Apply ordering to a query with validation.

    Args:
        query: SQLAlchemy query object
        order_by: Column name to order by
        order_dir: Direction ('asc' or 'desc')
        allowed_columns: Dict mapping column names to SQLAlchemy columns

    Raises:
        InvalidInput: if order_by is not in allowed_columns
    """
    if order_by not in allowed_columns:
        raise InvalidInput(
            f"Invalid order_by. Allowed: {', '.join(sorted(allowed_columns))}"
        )
    column = allowed_columns[order_by]
    if order_dir == "desc":
        return query.order_by(column.desc())
    return query.order_by(column.asc())


def apply_pagination(query, limit: int, offset: int):
    return query.limit(limit).offset(offset)


def get_or_404(db: Session, model: type[T], id, detail: str | None = None, **options) -> T:
    """Get entity by ID or raise NotFound.

    Malformed ids are reported the same way as unknown ones.
    """
    message = detail or f"{model.__name__} not found"
    try:
        key = coerce_uuid(id)
    except (TypeError, ValueError) as exc:
        raise NotFound(message) from exc
    entity = db.get(model, key, **options) if key is not None else None
    if not entity:
        raise NotFound(message)
    return entity
