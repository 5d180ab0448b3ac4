"""Ephemeral UI state: filters, dialogs, selection and theme.

State is immutable; ``reduce`` returns a new ``UiState`` for each action.
``UiStore`` is created by the application and passed to whatever needs it.
"""

from collections.abc import Callable
from dataclasses import dataclass, field, replace
from enum import StrEnum
from typing import Any, Union


class Theme(StrEnum):
    LIGHT = "light"
    DARK = "dark"
    SYSTEM = "system"


@dataclass(frozen=True)
class UiState:
    theme: Theme = Theme.SYSTEM
    sidebar_open: bool = False
    task_form_open: bool = False
    category_form_open: bool = False
    filters: dict[str, Any] = field(default_factory=dict)
    selected_task_id: str | None = None
    loading: bool = False
    error: str | None = None


# Actions


@dataclass(frozen=True)
class SetTheme:
    theme: Theme


@dataclass(frozen=True)
class ToggleSidebar:
    pass


@dataclass(frozen=True)
class SetSidebarOpen:
    open: bool


@dataclass(frozen=True)
class SetTaskFormOpen:
    open: bool


@dataclass(frozen=True)
class SetCategoryFormOpen:
    open: bool


@dataclass(frozen=True)
class SetFilters:
    """Shallow-merge ``filters`` into the current filters."""

    filters: dict[str, Any]


@dataclass(frozen=True)
class ClearFilters:
    pass


@dataclass(frozen=True)
class SetSelectedTaskId:
    task_id: str | None


@dataclass(frozen=True)
class SetLoading:
    loading: bool


@dataclass(frozen=True)
class SetError:
    error: str | None


@dataclass(frozen=True)
class ClearError:
    pass


Action = Union[
    SetTheme,
    ToggleSidebar,
    SetSidebarOpen,
    SetTaskFormOpen,
    SetCategoryFormOpen,
    SetFilters,
    ClearFilters,
    SetSelectedTaskId,
    SetLoading,
    SetError,
    ClearError,
]

_REDUCERS: dict[type, Callable[[UiState, Any], UiState]] = {
    SetTheme: lambda s, a: replace(s, theme=Theme(a.theme)),
    ToggleSidebar: lambda s, a: replace(s, sidebar_open=not s.sidebar_open),
    SetSidebarOpen: lambda s, a: replace(s, sidebar_open=a.open),
    SetTaskFormOpen: lambda s, a: replace(s, task_form_open=a.open),
    SetCategoryFormOpen: lambda s, a: replace(s, category_form_open=a.open),
    SetFilters: lambda s, a: replace(s, filters={**s.filters, **a.filters}),
    ClearFilters: lambda s, a: replace(s, filters={}),
    SetSelectedTaskId: lambda s, a: replace(s, selected_task_id=a.task_id),
    SetLoading: lambda s, a: replace(s, loading=a.loading),
    SetError: lambda s, a: replace(s, error=a.error),
    ClearError: lambda s, a: replace(s, error=None),
}


def reduce(state: UiState, action: Action) -> UiState:
    """Apply ``action`` to ``state`` without mutating either."""
    try:
        reducer = _REDUCERS[type(action)]
    except KeyError:
        raise TypeError(f"Unknown UI action: {action!r}") from None
    return reducer(state, action)


StateListener = Callable[[UiState, UiState], None]


class UiStore:
    """Holds the current ``UiState`` and notifies listeners of changes."""

    def __init__(self, initial: UiState | None = None):
        self._state = initial or UiState()
        self._listeners: list[StateListener] = []

    @property
    def state(self) -> UiState:
        return self._state

    def dispatch(self, action: Action) -> UiState:
        previous = self._state
        self._state = reduce(previous, action)
        if self._state != previous:
            for listener in list(self._listeners):
                listener(previous, self._state)
        return self._state

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Call ``listener(previous, current)`` after each change. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe
