"""HTTP access to the hosted backend: identity provider and data API."""

import logging
from dataclasses import dataclass
from typing import Any
from uuid import UUID

import httpx

from taskboard.errors import Unauthenticated, UpstreamFailure
from taskboard.query import TableQuery

logger = logging.getLogger(__name__)

AUTH_PATH = "/auth/v1"
REST_PATH = "/rest/v1"
RANGE_NOT_SATISFIABLE = 416


@dataclass(frozen=True)
class Identity:
    """The verified caller."""

    id: UUID
    email: str | None = None


def _upstream_error(response: httpx.Response, message: str) -> UpstreamFailure:
    try:
        body = response.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}
    details = body.get("message") or body.get("msg") or response.text or None
    code = body.get("code")
    return UpstreamFailure(message, details=details, code=str(code) if code is not None else None)


def parse_content_range(header: str | None) -> int | None:
    """Total row count from a ``Content-Range`` header such as ``0-19/57``."""
    if not header or "/" not in header:
        return None
    total = header.rsplit("/", 1)[1]
    return int(total) if total.isdigit() else None


class IdentityProvider:
    """Verifies bearer tokens against the identity service."""

    def __init__(self, http: httpx.AsyncClient, api_key: str) -> None:
        self._http = http
        self._api_key = api_key

    async def verify(self, token: str) -> Identity:
        try:
            response = await self._http.get(
                f"{AUTH_PATH}/user",
                headers={"apikey": self._api_key, "Authorization": f"Bearer {token}"},
            )
        except httpx.RequestError as exc:
            raise UpstreamFailure("Identity provider unreachable", details=str(exc)) from exc

        if 400 <= response.status_code < 500:
            raise Unauthenticated(details="Invalid token")
        if response.is_error:
            raise _upstream_error(response, "Token verification failed")

        body = response.json()
        try:
            return Identity(id=UUID(str(body["id"])), email=body.get("email"))
        except (KeyError, ValueError, TypeError) as exc:
            raise Unauthenticated(details="Invalid token") from exc


@dataclass
class SelectResult:
    rows: list[dict[str, Any]]
    total: int | None = None


class ScopedBackend:
    """Data API handle bound to one caller's access token.

    The token is attached to every request this object sends, so the backend
    applies the caller's own permissions to each call.
    """

    def __init__(self, http: httpx.AsyncClient, api_key: str, token: str) -> None:
        self._http = http
        self._api_key = api_key
        self._token = token

    def _headers(self, prefer: str | None = None) -> dict[str, str]:
        headers = {
            "apikey": self._api_key,
            "Authorization": f"Bearer {self._token}",
            "Accept": "application/json",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    async def _send(
        self,
        method: str,
        table: str,
        *,
        params: list[tuple[str, str]] | None = None,
        json: Any = None,
        prefer: str | None = None,
        failure: str,
        allow: tuple[int, ...] = (),
    ) -> httpx.Response:
        logger.debug("%s %s %s", method, table, params)
        try:
            response = await self._http.request(
                method,
                f"{REST_PATH}/{table}",
                params=params,
                json=json,
                headers=self._headers(prefer),
            )
        except httpx.RequestError as exc:
            raise UpstreamFailure(failure, details=str(exc)) from exc
        if response.is_error and response.status_code not in allow:
            raise _upstream_error(response, failure)
        return response

    async def select(self, query: TableQuery, *, count: bool = False) -> SelectResult:
        response = await self._send(
            "GET",
            query.table,
            params=query.params(),
            prefer="count=exact" if count else None,
            failure=f"Failed to fetch {query.table}",
            allow=(RANGE_NOT_SATISFIABLE,) if count else (),
        )
        total = parse_content_range(response.headers.get("content-range")) if count else None
        # An offset past the last row is refused with 416 but still carries the total.
        if response.status_code == RANGE_NOT_SATISFIABLE:
            return SelectResult(rows=[], total=total)
        return SelectResult(rows=response.json(), total=total)

    async def count(self, query: TableQuery) -> int:
        response = await self._send(
            "HEAD",
            query.table,
            params=query.filters,
            prefer="count=exact",
            failure=f"Failed to count {query.table}",
        )
        return parse_content_range(response.headers.get("content-range")) or 0

    async def insert(self, table: str, row: dict[str, Any]) -> dict[str, Any]:
        response = await self._send(
            "POST",
            table,
            params=[("select", "*")],
            json=[row],
            prefer="return=representation",
            failure=f"Failed to create {table}",
        )
        return response.json()[0]

    async def update(self, query: TableQuery, values: dict[str, Any]) -> list[dict[str, Any]]:
        response = await self._send(
            "PATCH",
            query.table,
            params=query.filters,
            json=values,
            prefer="return=representation",
            failure=f"Failed to update {query.table}",
        )
        return response.json()

    async def delete(self, query: TableQuery) -> list[dict[str, Any]]:
        response = await self._send(
            "DELETE",
            query.table,
            params=query.filters,
            prefer="return=representation",
            failure=f"Failed to delete {query.table}",
        )
        return response.json()
