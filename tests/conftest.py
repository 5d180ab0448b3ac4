"""Pytest fixtures for the Taskboard API tests."""

from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from taskboard.auth import get_transport
from taskboard.config import Settings, get_settings
from taskboard.main import app
from tests.fake_backend import API_KEY, BACKEND_URL, FakeBackend, FakeUser


@pytest.fixture
def backend() -> FakeBackend:
    """A fresh in-memory backend per test."""
    return FakeBackend()


@pytest.fixture
def settings() -> Settings:
    """Settings pointing at the fake backend."""
    return Settings(backend_url=BACKEND_URL, backend_api_key=API_KEY)


@pytest.fixture
def api(backend: FakeBackend, settings: Settings) -> Iterator[None]:
    """Point the app at the fake backend for the duration of a test."""
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_transport] = backend.transport
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def client(api: None) -> TestClient:
    """Create a test client for the API."""
    return TestClient(app)


@pytest.fixture
def alice(backend: FakeBackend) -> FakeUser:
    """A signed-up user with no tasks."""
    return backend.add_user("alice@example.com")


@pytest.fixture
def bob(backend: FakeBackend) -> FakeUser:
    """A second user, for ownership checks."""
    return backend.add_user("bob@example.com")
