"""Pydantic models for the Taskboard API.

Two renamings happen here. Attribute (snake_case) to wire (camelCase) names
are produced by the ``to_camel`` alias generator on ``ApiModel``, so
``due_date`` travels as ``dueDate``. Storage columns to attributes go through
the explicit ``TASK_FIELDS`` and ``CATEGORY_FIELDS`` tables; the columns
share the attribute names, and the tables decide which columns of a row are
read or written at all.
"""

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any, ClassVar, Generic, Literal, TypeVar
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

T = TypeVar("T")

MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 20


class Priority(StrEnum):
    """Task priority levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ApiModel(BaseModel):
    """Base for every model that crosses the HTTP boundary."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class InputModel(ApiModel):
    """Base for untrusted input.

    ``None`` for any key, and ``""`` for the keys named in ``blank_as_absent``,
    are dropped before field validation so they count as not supplied.
    """

    blank_as_absent: ClassVar[frozenset[str]] = frozenset()

    @model_validator(mode="before")
    @classmethod
    def _drop_absent_values(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        blank_keys = set(cls.blank_as_absent)
        blank_keys.update(cls.model_fields[name].alias or name for name in cls.blank_as_absent)
        return {
            key: value
            for key, value in data.items()
            if value is not None and not (value == "" and key in blank_keys)
        }


def as_utc(value: datetime | None) -> datetime | None:
    """Interpret naive timestamps as UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


# ---------------------------------------------------------------------------
# Request bodies
# ---------------------------------------------------------------------------


class TaskCreate(InputModel):
    """Request body for creating a new task."""

    blank_as_absent: ClassVar[frozenset[str]] = frozenset({"description", "due_date", "category_id"})

    title: str = Field(..., min_length=1, max_length=255, description="The task title (1-255 characters)")
    description: str | None = Field(default=None, max_length=1000)
    priority: Priority = Field(..., description="low, medium or high")
    due_date: datetime | None = Field(default=None, description="ISO-8601 timestamp")
    category_id: UUID | None = Field(default=None, description="Owning category, if any")

    @field_validator("due_date")
    @classmethod
    def _utc_due_date(cls, value: datetime | None) -> datetime | None:
        return as_utc(value)


class TaskUpdate(InputModel):
    """Request body for a sparse task update. Only supplied fields change."""

    blank_as_absent: ClassVar[frozenset[str]] = frozenset({"description", "due_date", "category_id"})

    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=1000)
    completed: bool | None = None
    priority: Priority | None = None
    due_date: datetime | None = None
    category_id: UUID | None = None

    @field_validator("due_date")
    @classmethod
    def _utc_due_date(cls, value: datetime | None) -> datetime | None:
        return as_utc(value)


class CategoryCreate(InputModel):
    """Request body for creating a category."""

    name: str = Field(..., min_length=1, max_length=50)
    color: str = Field(..., pattern=r"^#[0-9A-Fa-f]{6}$", description="Hex color such as #3B82F6")


class CategoryUpdate(InputModel):
    """Request body for a sparse category update."""

    name: str | None = Field(default=None, min_length=1, max_length=50)
    color: str | None = Field(default=None, pattern=r"^#[0-9A-Fa-f]{6}$")


class BulkTaskUpdate(InputModel):
    """Apply one sparse update to several tasks."""

    ids: list[UUID] = Field(..., min_length=1, max_length=MAX_PAGE_SIZE)
    data: TaskUpdate


class BulkTaskDelete(InputModel):
    """Delete several tasks by id."""

    ids: list[UUID] = Field(..., min_length=1, max_length=MAX_PAGE_SIZE)


class TaskFilterQuery(InputModel):
    """Filters and pagination for listing tasks, parsed from a query string."""

    blank_as_absent: ClassVar[frozenset[str]] = frozenset(
        {"completed", "priority", "category_id", "search", "due_date_before", "due_date_after", "page", "limit"}
    )

    completed: bool | None = None
    priority: Priority | None = None
    category_id: UUID | None = None
    search: str | None = Field(default=None, max_length=100)
    due_date_before: datetime | None = None
    due_date_after: datetime | None = None
    page: int = 1
    limit: int = DEFAULT_PAGE_SIZE

    @field_validator("completed", mode="before")
    @classmethod
    def _parse_completed(cls, value: Any) -> Any:
        if isinstance(value, str):
            if value == "true":
                return True
            if value == "false":
                return False
            raise ValueError("completed must be 'true' or 'false'")
        return value

    @field_validator("page")
    @classmethod
    def _floor_page(cls, value: int) -> int:
        return max(value, 1)

    @field_validator("limit")
    @classmethod
    def _clamp_limit(cls, value: int) -> int:
        return min(max(value, 1), MAX_PAGE_SIZE)

    @field_validator("due_date_before", "due_date_after")
    @classmethod
    def _utc_bounds(cls, value: datetime | None) -> datetime | None:
        return as_utc(value)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def to_params(self) -> dict[str, str]:
        """Render as query-string parameters (the inverse of parsing)."""
        params: dict[str, str] = {}
        for name, value in self.model_dump(by_alias=True, exclude_none=True).items():
            if isinstance(value, bool):
                params[name] = "true" if value else "false"
            elif isinstance(value, datetime):
                params[name] = value.isoformat()
            else:
                params[name] = str(value)
        return params


# ---------------------------------------------------------------------------
# Public data model
# ---------------------------------------------------------------------------


class Task(ApiModel):
    """A task as returned by the API."""

    id: UUID
    title: str
    description: str | None = None
    completed: bool = False
    priority: Priority
    due_date: datetime | None = None
    category_id: UUID | None = None
    user_id: UUID
    created_at: datetime
    updated_at: datetime


class Category(ApiModel):
    """A category as returned by the API."""

    id: UUID
    name: str
    color: str
    user_id: UUID
    created_at: datetime
    updated_at: datetime


class TaskStats(ApiModel):
    """Counts computed on read for the caller's tasks."""

    total: int = 0
    completed: int = 0
    pending: int = 0
    overdue: int = 0
    completion_rate: int = 0


class Pagination(ApiModel):
    page: int
    limit: int
    total: int
    total_pages: int


class BulkOutcome(ApiModel):
    """Result of one id inside a bulk operation."""

    id: UUID
    status: Literal["updated", "deleted", "not_found", "failed"]
    task: Task | None = None
    detail: str | None = None


class DataResponse(BaseModel, Generic[T]):
    data: T


class PageResponse(BaseModel, Generic[T]):
    data: list[T]
    pagination: Pagination


class MessageResponse(BaseModel):
    message: str


class HealthResponse(BaseModel):
    """Response from the health check endpoint."""

    status: str = "healthy"
    version: str = "1.0.0"


# ---------------------------------------------------------------------------
# Storage row <-> API field mapping
# ---------------------------------------------------------------------------

# column name -> attribute name (the wire name is the attribute's camelCase alias)
TASK_FIELDS = {
    "id": "id",
    "title": "title",
    "description": "description",
    "completed": "completed",
    "priority": "priority",
    "due_date": "due_date",
    "category_id": "category_id",
    "user_id": "user_id",
    "created_at": "created_at",
    "updated_at": "updated_at",
}

CATEGORY_FIELDS = {
    "id": "id",
    "name": "name",
    "color": "color",
    "user_id": "user_id",
    "created_at": "created_at",
    "updated_at": "updated_at",
}


def _to_column_value(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, StrEnum):
        return value.value
    return value


def row_to_fields(row: dict[str, Any], fields: dict[str, str]) -> dict[str, Any]:
    """Rename the known columns of ``row`` to model attribute names."""
    return {attr: row.get(column) for column, attr in fields.items() if column in row}


def fields_to_row(values: dict[str, Any], fields: dict[str, str]) -> dict[str, Any]:
    """Rename model attributes to columns, serializing values for JSON."""
    columns = {attr: column for column, attr in fields.items()}
    return {columns[attr]: _to_column_value(value) for attr, value in values.items() if attr in columns}


def task_from_row(row: dict[str, Any]) -> Task:
    return Task.model_validate(row_to_fields(row, TASK_FIELDS))


def task_to_row(values: dict[str, Any]) -> dict[str, Any]:
    return fields_to_row(values, TASK_FIELDS)


def category_from_row(row: dict[str, Any]) -> Category:
    return Category.model_validate(row_to_fields(row, CATEGORY_FIELDS))


def category_to_row(values: dict[str, Any]) -> dict[str, Any]:
    return fields_to_row(values, CATEGORY_FIELDS)
