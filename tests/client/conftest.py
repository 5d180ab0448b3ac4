"""Fixtures wiring the client package to the API app in-process."""

from collections.abc import AsyncIterator

import httpx
import pytest_asyncio

from taskboard.client import ApiClient, TaskBoard
from taskboard.main import app
from tests.fake_backend import FakeUser

API_URL = "http://taskboard.test"


@pytest_asyncio.fixture
async def api_client(api: None, alice: FakeUser) -> AsyncIterator[ApiClient]:
    """An ApiClient signed in as alice, talking to the app over ASGI."""
    client = ApiClient(API_URL, lambda: alice.token, transport=httpx.ASGITransport(app=app))
    async with client:
        yield client


@pytest_asyncio.fixture
async def board(api_client: ApiClient) -> AsyncIterator[TaskBoard]:
    """A client application whose fetches are drained on teardown."""
    board = TaskBoard(api_client)
    yield board
    await board.cache.drain()
