"""Client side of Taskboard: API client, query cache and UI state."""

from taskboard.client.api import ApiClient, ApiError
from taskboard.client.app import TaskBoard, TaskListView
from taskboard.client.auth import AuthClient, Session
from taskboard.client.cache import CacheEntry, QueryCache, QueryStatus, Subscription, Tag
from taskboard.client.endpoints import CategoriesApi, TaskPage, TasksApi
from taskboard.client.state import UiState, UiStore

__all__ = [
    "ApiClient",
    "ApiError",
    "AuthClient",
    "CacheEntry",
    "CategoriesApi",
    "QueryCache",
    "QueryStatus",
    "Session",
    "Subscription",
    "Tag",
    "TaskBoard",
    "TaskListView",
    "TaskPage",
    "TasksApi",
    "UiState",
    "UiStore",
]
