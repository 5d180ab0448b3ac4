"""Client application wiring: UI store, query cache and typed endpoints."""

import logging
from collections.abc import Callable

from pydantic import ValidationError

from taskboard.client.api import ApiClient
from taskboard.client.cache import CacheEntry, QueryCache, Subscription
from taskboard.client.endpoints import CategoriesApi, TasksApi
from taskboard.client.state import UiState, UiStore
from taskboard.models import TaskFilterQuery

logger = logging.getLogger(__name__)


class TaskBoard:
    """Application state passed to views; one per running client."""

    def __init__(
        self,
        client: ApiClient,
        *,
        store: UiStore | None = None,
        cache: QueryCache | None = None,
    ):
        self.client = client
        self.store = store or UiStore()
        self.cache = cache or QueryCache()
        self.tasks = TasksApi(client, self.cache)
        self.categories = CategoriesApi(client, self.cache)

    def current_filters(self) -> TaskFilterQuery:
        """The store's filters as a list query (first page, default size)."""
        return TaskFilterQuery.model_validate(self.store.state.filters)

    def watch_task_list(self, listener: Callable[[CacheEntry], None]) -> "TaskListView":
        return TaskListView(self, listener)


class TaskListView:
    """Keeps one task-list subscription in step with the store's filters.

    When the filters change the old query is unsubscribed and a query for the
    new filters is subscribed in its place.
    """

    def __init__(self, board: TaskBoard, listener: Callable[[CacheEntry], None]):
        self._board = board
        self._listener = listener
        self.filters = board.current_filters()
        self.subscription: Subscription | None = board.tasks.watch_tasks(self.filters, listener)
        self._unsubscribe_store = board.store.subscribe(self._on_state_change)

    def _on_state_change(self, previous: UiState, current: UiState) -> None:
        if previous.filters == current.filters or self.subscription is None:
            return
        try:
            filters = self._board.current_filters()
        except ValidationError as exc:
            logger.warning("Ignoring invalid task list filters %r: %s", current.filters, exc)
            return
        logger.debug("Task list filters changed to %s", filters.to_params())
        self.subscription.unsubscribe()
        self.filters = filters
        self.subscription = self._board.tasks.watch_tasks(filters, self._listener)

    @property
    def entry(self) -> CacheEntry | None:
        return self.subscription.entry if self.subscription else None

    async def settled(self) -> CacheEntry | None:
        if self.subscription is None:
            return None
        return await self.subscription.settled()

    def close(self) -> None:
        self._unsubscribe_store()
        if self.subscription is not None:
            self.subscription.unsubscribe()
            self.subscription = None
