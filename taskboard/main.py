"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from typing import Annotated, Any
from uuid import UUID

from fastapi import Body, Depends, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware

from taskboard import __version__
from taskboard.auth import RequestContext, get_request_context
from taskboard.config import get_settings
from taskboard.errors import NotFound, install_error_handlers
from taskboard.logging_setup import setup_logging
from taskboard.models import (
    BulkOutcome,
    Category,
    DataResponse,
    HealthResponse,
    MessageResponse,
    PageResponse,
    Task,
    TaskStats,
)
from taskboard.store import CategoryStore, TaskStore
from taskboard.validation import (
    parse_bulk_delete,
    parse_bulk_update,
    parse_create_category,
    parse_create_task,
    parse_task_filters,
    parse_update_category,
    parse_update_task,
)

logger = logging.getLogger(__name__)

JsonBody = Annotated[Any, Body()]


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(get_settings().log_level)
    logger.info("Taskboard API %s starting", __version__)
    yield


app = FastAPI(
    title="Taskboard API",
    description="Personal task management: owner-scoped tasks, categories and statistics.",
    version=__version__,
    lifespan=lifespan,
)

# Configure CORS for frontend access
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

install_error_handlers(app)


def get_task_store(ctx: Annotated[RequestContext, Depends(get_request_context)]) -> TaskStore:
    return TaskStore(ctx.backend, ctx.identity.id)


def get_category_store(ctx: Annotated[RequestContext, Depends(get_request_context)]) -> CategoryStore:
    return CategoryStore(ctx.backend, ctx.identity.id)


Tasks = Annotated[TaskStore, Depends(get_task_store)]
Categories = Annotated[CategoryStore, Depends(get_category_store)]


@app.get("/health", response_model=HealthResponse, tags=["System"])
async def health_check() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(version=__version__)


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------


@app.get("/tasks", response_model=PageResponse[Task], tags=["Tasks"])
async def list_tasks(request: Request, store: Tasks) -> PageResponse[Task]:
    """List tasks, newest first, with filters and pagination."""
    filters = parse_task_filters(request.query_params)
    tasks, pagination = await store.list_page(filters)
    return PageResponse[Task](data=tasks, pagination=pagination)


@app.post(
    "/tasks",
    response_model=DataResponse[Task],
    status_code=status.HTTP_201_CREATED,
    tags=["Tasks"],
)
async def create_task(store: Tasks, payload: JsonBody = None) -> DataResponse[Task]:
    """Create a new task owned by the caller."""
    task = await store.create(parse_create_task(payload))
    logger.info("Created task %s", task.id)
    return DataResponse[Task](data=task)


@app.get("/tasks/stats", response_model=DataResponse[TaskStats], tags=["Tasks"])
async def task_stats(store: Tasks) -> DataResponse[TaskStats]:
    """Counts by completion and overdue status."""
    return DataResponse[TaskStats](data=await store.stats())


@app.patch("/tasks/bulk", response_model=DataResponse[list[BulkOutcome]], tags=["Tasks"])
async def bulk_update_tasks(store: Tasks, payload: JsonBody = None) -> DataResponse[list[BulkOutcome]]:
    """Apply one update to several tasks, reporting the outcome per id."""
    bulk = parse_bulk_update(payload)
    return DataResponse[list[BulkOutcome]](data=await store.bulk_update(bulk.ids, bulk.data))


@app.delete("/tasks/bulk", response_model=DataResponse[list[BulkOutcome]], tags=["Tasks"])
async def bulk_delete_tasks(store: Tasks, payload: JsonBody = None) -> DataResponse[list[BulkOutcome]]:
    """Delete several tasks, reporting the outcome per id."""
    bulk = parse_bulk_delete(payload)
    return DataResponse[list[BulkOutcome]](data=await store.bulk_delete(bulk.ids))


@app.get("/tasks/{task_id}", response_model=DataResponse[Task], tags=["Tasks"])
async def get_task(task_id: UUID, store: Tasks) -> DataResponse[Task]:
    """Get a specific task by ID."""
    task = await store.get(task_id)
    if task is None:
        raise NotFound("Task not found")
    return DataResponse[Task](data=task)


@app.patch("/tasks/{task_id}", response_model=DataResponse[Task], tags=["Tasks"])
async def update_task(task_id: UUID, store: Tasks, payload: JsonBody = None) -> DataResponse[Task]:
    """Update the supplied fields of an existing task."""
    task = await store.update(task_id, parse_update_task(payload))
    if task is None:
        raise NotFound("Task not found")
    return DataResponse[Task](data=task)


@app.delete("/tasks/{task_id}", response_model=MessageResponse, tags=["Tasks"])
async def delete_task(task_id: UUID, store: Tasks) -> MessageResponse:
    """Delete a task."""
    if not await store.delete(task_id):
        raise NotFound("Task not found")
    logger.info("Deleted task %s", task_id)
    return MessageResponse(message="Task deleted successfully")


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------


@app.get("/categories", response_model=DataResponse[list[Category]], tags=["Categories"])
async def list_categories(store: Categories) -> DataResponse[list[Category]]:
    """List categories, oldest first."""
    return DataResponse[list[Category]](data=await store.list_all())


@app.post(
    "/categories",
    response_model=DataResponse[Category],
    status_code=status.HTTP_201_CREATED,
    tags=["Categories"],
)
async def create_category(store: Categories, payload: JsonBody = None) -> DataResponse[Category]:
    """Create a new category owned by the caller."""
    category = await store.create(parse_create_category(payload))
    return DataResponse[Category](data=category)


@app.get("/categories/{category_id}", response_model=DataResponse[Category], tags=["Categories"])
async def get_category(category_id: UUID, store: Categories) -> DataResponse[Category]:
    """Get one of the caller's categories by ID."""
    category = await store.get(category_id)
    if category is None:
        raise NotFound("Category not found")
    return DataResponse[Category](data=category)


@app.patch("/categories/{category_id}", response_model=DataResponse[Category], tags=["Categories"])
async def update_category(category_id: UUID, store: Categories, payload: JsonBody = None) -> DataResponse[Category]:
    """Update one of the caller's categories."""
    category = await store.update(category_id, parse_update_category(payload))
    if category is None:
        raise NotFound("Category not found")
    return DataResponse[Category](data=category)


@app.delete("/categories/{category_id}", response_model=MessageResponse, tags=["Categories"])
async def delete_category(category_id: UUID, store: Categories) -> MessageResponse:
    """Delete one of the caller's categories."""
    if not await store.delete(category_id):
        raise NotFound("Category not found")
    return MessageResponse(message="Category deleted successfully")
