"""Validation of untrusted request input.

Each ``parse_*`` function returns a typed record or raises
``taskboard.errors.ValidationError`` listing every violated field constraint.
"""

from collections.abc import Mapping
from typing import Any, TypeVar

import pydantic

from taskboard.errors import ValidationError, field_errors_from_pydantic
from taskboard.models import (
    BulkTaskDelete,
    BulkTaskUpdate,
    CategoryCreate,
    CategoryUpdate,
    TaskCreate,
    TaskFilterQuery,
    TaskUpdate,
)

M = TypeVar("M", bound=pydantic.BaseModel)


def validate(model: type[M], data: Any, *, error: str | None = None) -> M:
    try:
        return model.model_validate(data)
    except pydantic.ValidationError as exc:
        raise ValidationError(field_errors_from_pydantic(exc.errors()), error) from None


def parse_create_task(data: Any) -> TaskCreate:
    return validate(TaskCreate, data)


def parse_update_task(data: Any) -> TaskUpdate:
    return validate(TaskUpdate, data)


def parse_create_category(data: Any) -> CategoryCreate:
    return validate(CategoryCreate, data)


def parse_update_category(data: Any) -> CategoryUpdate:
    return validate(CategoryUpdate, data)


def parse_bulk_update(data: Any) -> BulkTaskUpdate:
    return validate(BulkTaskUpdate, data)


def parse_bulk_delete(data: Any) -> BulkTaskDelete:
    return validate(BulkTaskDelete, data)


def parse_task_filters(params: Mapping[str, str]) -> TaskFilterQuery:
    """Parse list filters from query-string parameters (all values are strings)."""
    return validate(TaskFilterQuery, dict(params), error="Invalid request parameters")
