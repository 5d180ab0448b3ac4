"""Owner-scoped task and category storage on the hosted backend.

Every read, update and delete filters on ``(id, owner)`` together, so a row
owned by someone else is indistinguishable from a missing one: the lookup
methods return ``None`` (or ``False``) in both cases.
"""

import logging
from datetime import UTC, datetime
from uuid import UUID

from taskboard.backend import ScopedBackend
from taskboard.errors import TaskboardError
from taskboard.models import (
    BulkOutcome,
    Category,
    CategoryCreate,
    CategoryUpdate,
    Pagination,
    Task,
    TaskCreate,
    TaskFilterQuery,
    TaskStats,
    TaskUpdate,
    category_from_row,
    category_to_row,
    task_from_row,
    task_to_row,
)
from taskboard.query import TableQuery, build_task_query, owned, total_pages

logger = logging.getLogger(__name__)


def completion_rate(completed: int, total: int) -> int:
    """Percentage of completed tasks, rounded half up; 0 when there are none."""
    if total == 0:
        return 0
    return (completed * 200 + total) // (total * 2)


class TaskStore:
    """Tasks visible to one caller."""

    table = "tasks"

    def __init__(self, backend: ScopedBackend, owner_id: UUID) -> None:
        self._backend = backend
        self._owner_id = owner_id

    def _by_id(self, task_id: UUID) -> TableQuery:
        return owned(self.table, self._owner_id).eq("id", task_id)

    async def list_page(self, filters: TaskFilterQuery) -> tuple[list[Task], Pagination]:
        """Return one page of matching tasks (newest first) and its metadata."""
        result = await self._backend.select(build_task_query(self._owner_id, filters), count=True)
        tasks = [task_from_row(row) for row in result.rows]
        total = result.total if result.total is not None else len(tasks)
        pagination = Pagination(
            page=filters.page,
            limit=filters.limit,
            total=total,
            total_pages=total_pages(total, filters.limit),
        )
        return tasks, pagination

    async def get(self, task_id: UUID) -> Task | None:
        """Get a task by its ID, or None if the caller owns no such task."""
        result = await self._backend.select(self._by_id(task_id))
        return task_from_row(result.rows[0]) if result.rows else None

    async def create(self, data: TaskCreate) -> Task:
        """Insert a task owned by the caller and return it."""
        values = data.model_dump(exclude_unset=True)
        values.update(user_id=self._owner_id, completed=False)
        row = await self._backend.insert(self.table, task_to_row(values))
        return task_from_row(row)

    async def update(self, task_id: UUID, data: TaskUpdate) -> Task | None:
        """Apply the supplied fields only. Returns None if not found."""
        values = data.model_dump(exclude_unset=True)
        values["updated_at"] = datetime.now(UTC)
        rows = await self._backend.update(self._by_id(task_id), task_to_row(values))
        return task_from_row(rows[0]) if rows else None

    async def delete(self, task_id: UUID) -> bool:
        """Delete a task. Returns True if deleted, False if not found."""
        rows = await self._backend.delete(self._by_id(task_id))
        return bool(rows)

    async def bulk_update(self, task_ids: list[UUID], data: TaskUpdate) -> list[BulkOutcome]:
        """Update each id independently; earlier successes are kept if a later id fails."""
        outcomes = []
        for task_id in task_ids:
            try:
                task = await self.update(task_id, data)
            except TaskboardError as exc:
                logger.warning("Bulk update of task %s failed: %s", task_id, exc.error)
                outcomes.append(BulkOutcome(id=task_id, status="failed", detail=exc.error))
                continue
            if task is None:
                outcomes.append(BulkOutcome(id=task_id, status="not_found"))
            else:
                outcomes.append(BulkOutcome(id=task_id, status="updated", task=task))
        return outcomes

    async def bulk_delete(self, task_ids: list[UUID]) -> list[BulkOutcome]:
        outcomes = []
        for task_id in task_ids:
            try:
                deleted = await self.delete(task_id)
            except TaskboardError as exc:
                logger.warning("Bulk delete of task %s failed: %s", task_id, exc.error)
                outcomes.append(BulkOutcome(id=task_id, status="failed", detail=exc.error))
                continue
            outcomes.append(BulkOutcome(id=task_id, status="deleted" if deleted else "not_found"))
        return outcomes

    async def stats(self, now: datetime | None = None) -> TaskStats:
        """Count the caller's tasks by status. Nothing is cached."""
        now = now or datetime.now(UTC)
        unfiltered = TaskFilterQuery()
        total = await self._backend.count(build_task_query(self._owner_id, unfiltered, ordered=False, paginate=False))
        completed = await self._backend.count(
            build_task_query(self._owner_id, TaskFilterQuery(completed=True), ordered=False, paginate=False)
        )
        pending_filter = TaskFilterQuery(completed=False)
        pending = await self._backend.count(
            build_task_query(self._owner_id, pending_filter, ordered=False, paginate=False)
        )
        overdue = await self._backend.count(
            build_task_query(self._owner_id, pending_filter, ordered=False, paginate=False).lt("due_date", now)
        )
        return TaskStats(
            total=total,
            completed=completed,
            pending=pending,
            overdue=overdue,
            completion_rate=completion_rate(completed, total),
        )


class CategoryStore:
    """Categories visible to one caller."""

    table = "categories"

    def __init__(self, backend: ScopedBackend, owner_id: UUID) -> None:
        self._backend = backend
        self._owner_id = owner_id

    def _by_id(self, category_id: UUID) -> TableQuery:
        return owned(self.table, self._owner_id).eq("id", category_id)

    async def list_all(self) -> list[Category]:
        """Return all categories, oldest first."""
        query = owned(self.table, self._owner_id).order("created_at")
        result = await self._backend.select(query)
        return [category_from_row(row) for row in result.rows]

    async def get(self, category_id: UUID) -> Category | None:
        result = await self._backend.select(self._by_id(category_id))
        return category_from_row(result.rows[0]) if result.rows else None

    async def create(self, data: CategoryCreate) -> Category:
        values = data.model_dump()
        values["user_id"] = self._owner_id
        row = await self._backend.insert(self.table, category_to_row(values))
        return category_from_row(row)

    async def update(self, category_id: UUID, data: CategoryUpdate) -> Category | None:
        values = data.model_dump(exclude_unset=True)
        values["updated_at"] = datetime.now(UTC)
        rows = await self._backend.update(self._by_id(category_id), category_to_row(values))
        return category_from_row(rows[0]) if rows else None

    async def delete(self, category_id: UUID) -> bool:
        """Delete a category. Tasks referring to it are left to the backend's policy."""
        rows = await self._backend.delete(self._by_id(category_id))
        return bool(rows)
