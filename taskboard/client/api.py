"""HTTP client for the Taskboard API."""

import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any

import httpx

logger = logging.getLogger(__name__)

TokenProvider = Callable[[], str | None | Awaitable[str | None]]


class ApiError(Exception):
    """A non-2xx response from the Taskboard API."""

    def __init__(self, status_code: int, error: str, details: Any = None):
        super().__init__(f"{status_code}: {error}")
        self.status_code = status_code
        self.error = error
        self.details = details

    @classmethod
    def from_response(cls, response: httpx.Response) -> "ApiError":
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            return cls(response.status_code, body.get("error") or response.reason_phrase, body.get("details"))
        return cls(response.status_code, response.reason_phrase or "Request failed", response.text or None)


class ApiClient:
    """Async HTTP client that attaches the current session token to each request.

    Requests are not retried; failures surface as ``ApiError`` (or
    ``httpx.RequestError`` for transport problems).
    """

    def __init__(
        self,
        base_url: str,
        token_provider: TokenProvider | None = None,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._token_provider = token_provider
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            headers={"Content-Type": "application/json", "Accept": "application/json"},
        )

    async def _auth_headers(self) -> dict[str, str]:
        if self._token_provider is None:
            return {}
        token = self._token_provider()
        if inspect.isawaitable(token):
            token = await token
        return {"Authorization": f"Bearer {token}"} if token else {}

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Send a request and return the decoded JSON body."""
        url = path if path.startswith("/") else f"/{path}"
        response = await self._client.request(
            method,
            url,
            json=json,
            params=params,
            headers=await self._auth_headers(),
        )
        if response.is_error:
            logger.debug("%s %s -> %d", method, url, response.status_code)
            raise ApiError.from_response(response)
        return response.json()

    async def get(self, path: str, *, params: dict[str, Any] | None = None) -> Any:
        return await self.request("GET", path, params=params)

    async def post(self, path: str, *, json: Any = None) -> Any:
        return await self.request("POST", path, json=json)

    async def patch(self, path: str, *, json: Any = None) -> Any:
        return await self.request("PATCH", path, json=json)

    async def delete(self, path: str, *, json: Any = None) -> Any:
        return await self.request("DELETE", path, json=json)
