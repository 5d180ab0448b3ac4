"""Display helpers for lists of tasks already fetched by the client."""

from datetime import UTC, datetime

from taskboard.models import Priority, Task, TaskFilterQuery, as_utc

_PRIORITY_RANK = {Priority.HIGH: 3, Priority.MEDIUM: 2, Priority.LOW: 1}

_PRIORITY_LABELS = {
    Priority.HIGH: "High Priority",
    Priority.MEDIUM: "Medium Priority",
    Priority.LOW: "Low Priority",
}


def priority_label(priority: Priority | None) -> str:
    return _PRIORITY_LABELS.get(priority, "No Priority")


def is_task_overdue(task: Task, now: datetime | None = None) -> bool:
    """An incomplete task whose due date has passed."""
    if task.due_date is None or task.completed:
        return False
    return as_utc(task.due_date) < (now or datetime.now(UTC))


def sort_tasks(tasks: list[Task]) -> list[Task]:
    """Incomplete first, then higher priority, then earlier due date, then newest."""

    def key(task: Task):
        due = as_utc(task.due_date)
        return (
            task.completed,
            -_PRIORITY_RANK[task.priority],
            due is None,
            due.timestamp() if due else 0.0,
            -as_utc(task.created_at).timestamp(),
        )

    return sorted(tasks, key=key)


def filter_tasks(tasks: list[Task], filters: TaskFilterQuery) -> list[Task]:
    """Apply list filters locally, with the same meaning as the server.

    Tasks without a due date never match a due-date bound.
    """
    search = filters.search.lower() if filters.search else None
    result = []
    for task in tasks:
        if filters.completed is not None and task.completed != filters.completed:
            continue
        if filters.priority is not None and task.priority != filters.priority:
            continue
        if filters.category_id is not None and task.category_id != filters.category_id:
            continue
        if search and search not in task.title.lower() and search not in (task.description or "").lower():
            continue
        due = as_utc(task.due_date)
        if filters.due_date_before is not None and (due is None or due > filters.due_date_before):
            continue
        if filters.due_date_after is not None and (due is None or due < filters.due_date_after):
            continue
        result.append(task)
    return result
