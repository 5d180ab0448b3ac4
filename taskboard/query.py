"""Owner-scoped queries against the hosted data API.

``TableQuery`` accumulates filters the way a PostgREST client does and
renders them as query-string parameters. Every query built here starts with
the owner predicate, so authorization is part of the query itself.
"""

import math
from datetime import datetime
from typing import Any
from uuid import UUID

from taskboard.models import TaskFilterQuery

OWNER_COLUMN = "user_id"


def _literal(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    return str(value)


def _like_literal(text: str) -> str:
    """Escape LIKE wildcards in ``text``.

    The data API turns every ``*`` into ``%`` before matching, so a literal
    ``*`` cannot be expressed; it is matched as any single character instead.
    """
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return escaped.replace("*", "_")


def _quote(value: str) -> str:
    """Quote a value for use inside an ``or=(...)`` group."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


class TableQuery:
    """Filters, ordering and window for one table."""

    def __init__(self, table: str) -> None:
        self.table = table
        self._filters: list[tuple[str, str]] = []
        self._order: str | None = None
        self._offset: int | None = None
        self._limit: int | None = None

    def _add(self, column: str, op: str, value: Any) -> "TableQuery":
        self._filters.append((column, f"{op}.{_literal(value)}"))
        return self

    def eq(self, column: str, value: Any) -> "TableQuery":
        return self._add(column, "eq", value)

    def lt(self, column: str, value: Any) -> "TableQuery":
        return self._add(column, "lt", value)

    def lte(self, column: str, value: Any) -> "TableQuery":
        return self._add(column, "lte", value)

    def gte(self, column: str, value: Any) -> "TableQuery":
        return self._add(column, "gte", value)

    def ilike_any(self, columns: list[str], text: str) -> "TableQuery":
        """Case-insensitive substring match on at least one of ``columns``."""
        pattern = _quote(f"*{_like_literal(text)}*")
        group = ",".join(f"{column}.ilike.{pattern}" for column in columns)
        self._filters.append(("or", f"({group})"))
        return self

    def order(self, column: str, *, descending: bool = False) -> "TableQuery":
        self._order = f"{column}.{'desc' if descending else 'asc'}"
        return self

    def window(self, offset: int, limit: int) -> "TableQuery":
        self._offset = offset
        self._limit = limit
        return self

    @property
    def filters(self) -> list[tuple[str, str]]:
        return list(self._filters)

    def params(self) -> list[tuple[str, str]]:
        """Parameters for a select: filters, then ordering and window."""
        params = [("select", "*")]
        params.extend(self._filters)
        if self._order is not None:
            params.append(("order", self._order))
        if self._offset is not None:
            params.append(("offset", str(self._offset)))
        if self._limit is not None:
            params.append(("limit", str(self._limit)))
        return params


def owned(table: str, owner_id: UUID) -> TableQuery:
    """A query on ``table`` restricted to rows owned by ``owner_id``."""
    return TableQuery(table).eq(OWNER_COLUMN, owner_id)


def build_task_query(
    owner_id: UUID,
    filters: TaskFilterQuery,
    *,
    ordered: bool = True,
    paginate: bool = True,
) -> TableQuery:
    """Translate ``filters`` into a query over the caller's tasks.

    Contradictory bounds (before < after) are passed through unchanged and
    simply match nothing.
    """
    query = owned("tasks", owner_id)
    if filters.completed is not None:
        query.eq("completed", filters.completed)
    if filters.priority is not None:
        query.eq("priority", filters.priority.value)
    if filters.category_id is not None:
        query.eq("category_id", filters.category_id)
    if filters.search:
        query.ilike_any(["title", "description"], filters.search)
    if filters.due_date_before is not None:
        query.lte("due_date", filters.due_date_before)
    if filters.due_date_after is not None:
        query.gte("due_date", filters.due_date_after)
    if ordered:
        query.order("created_at", descending=True)
    if paginate:
        query.window(filters.offset, filters.limit)
    return query


def total_pages(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit > 0 else 0
