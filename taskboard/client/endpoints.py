"""Typed Taskboard endpoints bound to the query cache.

Each query names the tags it provides and each mutation the tags it
invalidates:

- lists and stats provide the collection tag (``Task`` / ``Category``);
- single-entity reads provide the entity's id tag;
- create invalidates the collection tag;
- update and delete invalidate the collection tag and the entity's id tag;
- bulk operations invalidate the collection tag.
"""

from dataclasses import dataclass
from typing import Any
from uuid import UUID

from taskboard.client.api import ApiClient
from taskboard.client.cache import Listener, QueryCache, QueryKey, Subscription, Tag
from taskboard.models import (
    BulkOutcome,
    Category,
    Pagination,
    Task,
    TaskFilterQuery,
    TaskStats,
)

TASK = "Task"
CATEGORY = "Category"


@dataclass(frozen=True)
class TaskPage:
    tasks: list[Task]
    pagination: Pagination


class TasksApi:
    """Task queries and mutations."""

    def __init__(self, client: ApiClient, cache: QueryCache):
        self._client = client
        self._cache = cache

    # -- queries -------------------------------------------------------------

    @staticmethod
    def tasks_key(filters: TaskFilterQuery) -> QueryKey:
        return ("getTasks", tuple(sorted(filters.to_params().items())))

    async def _fetch_tasks(self, filters: TaskFilterQuery) -> TaskPage:
        body = await self._client.get("/tasks", params=filters.to_params())
        return TaskPage(
            tasks=[Task.model_validate(item) for item in body["data"]],
            pagination=Pagination.model_validate(body["pagination"]),
        )

    async def get_tasks(self, filters: TaskFilterQuery | None = None) -> TaskPage:
        filters = filters or TaskFilterQuery()
        return await self._cache.query(self.tasks_key(filters), lambda: self._fetch_tasks(filters), [Tag(TASK)])

    def watch_tasks(self, filters: TaskFilterQuery, listener: Listener) -> Subscription:
        return self._cache.subscribe(
            self.tasks_key(filters), lambda: self._fetch_tasks(filters), [Tag(TASK)], listener
        )

    async def _fetch_task(self, task_id: UUID) -> Task:
        body = await self._client.get(f"/tasks/{task_id}")
        return Task.model_validate(body["data"])

    async def get_task(self, task_id: UUID) -> Task:
        return await self._cache.query(
            ("getTask", str(task_id)), lambda: self._fetch_task(task_id), [Tag(TASK, str(task_id))]
        )

    def watch_task(self, task_id: UUID, listener: Listener) -> Subscription:
        return self._cache.subscribe(
            ("getTask", str(task_id)), lambda: self._fetch_task(task_id), [Tag(TASK, str(task_id))], listener
        )

    async def _fetch_stats(self) -> TaskStats:
        body = await self._client.get("/tasks/stats")
        return TaskStats.model_validate(body["data"])

    async def get_task_stats(self) -> TaskStats:
        return await self._cache.query(("getTaskStats",), self._fetch_stats, [Tag(TASK)])

    def watch_task_stats(self, listener: Listener) -> Subscription:
        return self._cache.subscribe(("getTaskStats",), self._fetch_stats, [Tag(TASK)], listener)

    # -- mutations -----------------------------------------------------------

    async def create_task(self, data: dict[str, Any]) -> Task:
        async def run() -> Task:
            body = await self._client.post("/tasks", json=data)
            return Task.model_validate(body["data"])

        return await self._cache.mutate(run, [Tag(TASK)])

    async def update_task(self, task_id: UUID, data: dict[str, Any]) -> Task:
        async def run() -> Task:
            body = await self._client.patch(f"/tasks/{task_id}", json=data)
            return Task.model_validate(body["data"])

        return await self._cache.mutate(run, [Tag(TASK, str(task_id)), Tag(TASK)])

    async def delete_task(self, task_id: UUID) -> str:
        async def run() -> str:
            body = await self._client.delete(f"/tasks/{task_id}")
            return body["message"]

        return await self._cache.mutate(run, [Tag(TASK, str(task_id)), Tag(TASK)])

    async def bulk_update_tasks(self, task_ids: list[UUID], data: dict[str, Any]) -> list[BulkOutcome]:
        async def run() -> list[BulkOutcome]:
            body = await self._client.patch("/tasks/bulk", json={"ids": [str(i) for i in task_ids], "data": data})
            return [BulkOutcome.model_validate(item) for item in body["data"]]

        return await self._cache.mutate(run, [Tag(TASK)])

    async def bulk_delete_tasks(self, task_ids: list[UUID]) -> list[BulkOutcome]:
        async def run() -> list[BulkOutcome]:
            body = await self._client.delete("/tasks/bulk", json={"ids": [str(i) for i in task_ids]})
            return [BulkOutcome.model_validate(item) for item in body["data"]]

        return await self._cache.mutate(run, [Tag(TASK)])


class CategoriesApi:
    """Category queries and mutations."""

    def __init__(self, client: ApiClient, cache: QueryCache):
        self._client = client
        self._cache = cache

    async def _fetch_categories(self) -> list[Category]:
        body = await self._client.get("/categories")
        return [Category.model_validate(item) for item in body["data"]]

    async def get_categories(self) -> list[Category]:
        return await self._cache.query(("getCategories",), self._fetch_categories, [Tag(CATEGORY)])

    def watch_categories(self, listener: Listener) -> Subscription:
        return self._cache.subscribe(("getCategories",), self._fetch_categories, [Tag(CATEGORY)], listener)

    async def get_category(self, category_id: UUID) -> Category:
        async def fetch() -> Category:
            body = await self._client.get(f"/categories/{category_id}")
            return Category.model_validate(body["data"])

        return await self._cache.query(("getCategory", str(category_id)), fetch, [Tag(CATEGORY, str(category_id))])

    async def create_category(self, data: dict[str, Any]) -> Category:
        async def run() -> Category:
            body = await self._client.post("/categories", json=data)
            return Category.model_validate(body["data"])

        return await self._cache.mutate(run, [Tag(CATEGORY)])

    async def update_category(self, category_id: UUID, data: dict[str, Any]) -> Category:
        async def run() -> Category:
            body = await self._client.patch(f"/categories/{category_id}", json=data)
            return Category.model_validate(body["data"])

        return await self._cache.mutate(run, [Tag(CATEGORY, str(category_id)), Tag(CATEGORY)])

    async def delete_category(self, category_id: UUID) -> str:
        async def run() -> str:
            body = await self._client.delete(f"/categories/{category_id}")
            return body["message"]

        return await self._cache.mutate(run, [Tag(CATEGORY, str(category_id)), Tag(CATEGORY)])
