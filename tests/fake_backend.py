"""In-memory stand-in for the hosted backend.

Speaks enough of the data API (PostgREST query syntax) and the identity
provider for the service and client tests. Row-level security is *not*
emulated: rows are filtered only by what the request asks for, so tests
observe the service's own owner scoping.
"""

import json
import re
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any, Callable
from uuid import uuid4

import httpx

API_KEY = "anon-test-key"
BACKEND_URL = "http://backend.test"

_WINDOW_PARAMS = {"select", "order", "offset", "limit"}

NOT_NULL = {
    "tasks": ("title", "priority", "user_id"),
    "categories": ("name", "color", "user_id"),
}

DEFAULTS = {
    "tasks": {"description": None, "completed": False, "due_date": None, "category_id": None},
    "categories": {},
}


@dataclass(frozen=True)
class FakeUser:
    id: str
    email: str
    token: str

    @property
    def headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}


def _text(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _comparable(value: Any) -> Any:
    text = str(value)
    try:
        parsed = datetime.fromisoformat(text.replace(" ", "+").replace("Z", "+00:00"))
    except ValueError:
        return text
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


def _split_group(group: str) -> list[str]:
    """Split ``a,b,"c,d"`` on commas outside double quotes."""
    parts, current, quoted, escaped = [], [], False, False
    for char in group:
        if escaped:
            current.append(char)
            escaped = False
        elif char == "\\":
            current.append(char)
            escaped = True
        elif char == '"':
            current.append(char)
            quoted = not quoted
        elif char == "," and not quoted:
            parts.append("".join(current))
            current = []
        else:
            current.append(char)
    parts.append("".join(current))
    return parts


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] == '"':
        return re.sub(r"\\(.)", r"\1", value[1:-1])
    return value


def _like_regex(pattern: str) -> str:
    """Translate a LIKE pattern (``*`` or ``%`` for any run, ``_`` for one character, ``\\`` escapes)."""
    out, chars = [], iter(pattern)
    for char in chars:
        if char == "\\":
            out.append(re.escape(next(chars, "\\")))
        elif char in "*%":
            out.append(".*")
        elif char == "_":
            out.append(".")
        else:
            out.append(re.escape(char))
    return "".join(out)


def _ilike(pattern: str) -> Callable[[Any], bool]:
    regex = re.compile(_like_regex(pattern), re.IGNORECASE | re.DOTALL)
    return lambda value: value is not None and regex.fullmatch(str(value)) is not None


def _predicate(column: str, op: str, operand: str) -> Callable[[dict[str, Any]], bool]:
    if op == "eq":
        return lambda row: _text(row.get(column)) == operand
    if op == "ilike":
        match = _ilike(_unquote(operand))
        return lambda row: match(row.get(column))

    compare = {
        "lt": lambda a, b: a < b,
        "lte": lambda a, b: a <= b,
        "gt": lambda a, b: a > b,
        "gte": lambda a, b: a >= b,
    }[op]
    target = _comparable(operand)

    def pred(row: dict[str, Any]) -> bool:
        value = row.get(column)
        return value is not None and compare(_comparable(value), target)

    return pred


class FakeBackend:
    """Data API and identity provider backed by plain lists."""

    def __init__(self, api_key: str = API_KEY):
        self.api_key = api_key
        self.tables: dict[str, list[dict[str, Any]]] = {"tasks": [], "categories": []}
        self.requests: list[httpx.Request] = []
        self.fail_when: Callable[[httpx.Request], bool] | None = None
        self._users: dict[str, FakeUser] = {}
        self._accounts: dict[str, tuple[str, FakeUser, dict[str, Any]]] = {}
        self._clock = datetime.now(UTC) - timedelta(days=1)

    # -- setup helpers -------------------------------------------------------

    def add_user(self, email: str, token: str | None = None) -> FakeUser:
        user = FakeUser(id=str(uuid4()), email=email, token=token or f"token-{uuid4().hex}")
        self._users[user.token] = user
        return user

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def tick(self) -> str:
        self._clock += timedelta(milliseconds=1)
        return self._clock.isoformat()

    def rest_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path.startswith("/rest/v1/")]

    # -- dispatch ------------------------------------------------------------

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.headers.get("apikey") != self.api_key:
            return httpx.Response(401, json={"message": "Invalid API key"})
        path = request.url.path
        if path.startswith("/auth/v1/"):
            return self._handle_auth(request, path.removeprefix("/auth/v1/"))
        if path.startswith("/rest/v1/"):
            if self._caller(request) is None:
                return httpx.Response(401, json={"code": "PGRST301", "message": "JWT is invalid"})
            if self.fail_when is not None and self.fail_when(request):
                return httpx.Response(500, json={"code": "XX000", "message": "simulated failure"})
            table = path.removeprefix("/rest/v1/")
            if table not in self.tables:
                return httpx.Response(404, json={"code": "42P01", "message": f"relation {table} does not exist"})
            return self._handle_rest(request, table)
        return httpx.Response(404, json={"message": "no route"})

    def _caller(self, request: httpx.Request) -> FakeUser | None:
        scheme, _, token = request.headers.get("authorization", "").partition(" ")
        if scheme.lower() != "bearer":
            return None
        return self._users.get(token)

    # -- identity provider ---------------------------------------------------

    def _session_payload(self, user: FakeUser, metadata: dict[str, Any]) -> dict[str, Any]:
        return {
            "access_token": user.token,
            "refresh_token": f"refresh-{user.token}",
            "token_type": "bearer",
            "user": {"id": user.id, "email": user.email, "user_metadata": metadata},
        }

    def _handle_auth(self, request: httpx.Request, route: str) -> httpx.Response:
        if route == "user" and request.method == "GET":
            user = self._caller(request)
            if user is None:
                return httpx.Response(401, json={"msg": "invalid JWT"})
            return httpx.Response(200, json={"id": user.id, "email": user.email})

        body = json.loads(request.content) if request.content else {}
        if route == "signup":
            if body.get("email") in self._accounts:
                return httpx.Response(422, json={"msg": "User already registered", "error_code": "user_already_exists"})
            user = self.add_user(body["email"])
            metadata = body.get("data") or {}
            self._accounts[user.email] = (body["password"], user, metadata)
            return httpx.Response(200, json=self._session_payload(user, metadata))
        if route == "token":
            account = self._accounts.get(body.get("email"))
            if account is None or account[0] != body.get("password"):
                return httpx.Response(
                    400, json={"error": "invalid_grant", "error_description": "Invalid login credentials"}
                )
            self._users[account[1].token] = account[1]
            return httpx.Response(200, json=self._session_payload(account[1], account[2]))
        if route == "logout":
            user = self._caller(request)
            if user is not None:
                self._users.pop(user.token, None)
            return httpx.Response(204)
        return httpx.Response(404, json={"msg": "no route"})

    # -- data API ------------------------------------------------------------

    def _matching(self, request: httpx.Request, table: str) -> list[dict[str, Any]]:
        predicates = []
        for key, value in request.url.params.multi_items():
            if key in _WINDOW_PARAMS:
                continue
            if key == "or":
                alternatives = []
                for part in _split_group(value[1:-1]):
                    column, op, operand = part.split(".", 2)
                    alternatives.append(_predicate(column, op, operand))
                predicates.append(lambda row, alts=alternatives: any(p(row) for p in alts))
            else:
                op, _, operand = value.partition(".")
                predicates.append(_predicate(key, op, operand))
        return [row for row in self.tables[table] if all(p(row) for p in predicates)]

    def _handle_rest(self, request: httpx.Request, table: str) -> httpx.Response:
        method = request.method
        if method in ("GET", "HEAD"):
            return self._select(request, table)
        if method == "POST":
            return self._insert(request, table)
        if method == "PATCH":
            matched = self._matching(request, table)
            values = json.loads(request.content)
            for row in matched:
                row.update(values)
            return httpx.Response(200, json=[dict(row) for row in matched])
        if method == "DELETE":
            matched = self._matching(request, table)
            self.tables[table] = [row for row in self.tables[table] if row not in matched]
            return httpx.Response(200, json=[dict(row) for row in matched])
        return httpx.Response(405, json={"message": "method not allowed"})

    def _select(self, request: httpx.Request, table: str) -> httpx.Response:
        rows = self._matching(request, table)
        params = request.url.params
        order = params.get("order")
        if order:
            column, _, direction = order.partition(".")
            rows.sort(key=lambda row: _comparable(row.get(column)), reverse=direction == "desc")
        total = len(rows)
        offset = int(params.get("offset", 0))
        limit = params.get("limit")
        page = rows[offset:] if limit is None else rows[offset : offset + int(limit)]

        headers = {}
        counted = "count=exact" in request.headers.get("prefer", "")
        if counted and offset > 0 and offset >= total:
            return httpx.Response(
                416,
                headers={"content-range": f"*/{total}"},
                json={
                    "code": "PGRST103",
                    "message": "Requested range not satisfiable",
                    "details": f"An offset of {offset} was requested, but there are only {total} rows.",
                },
            )
        if counted:
            span = f"{offset}-{offset + len(page) - 1}" if page else "*"
            headers["content-range"] = f"{span}/{total}"
        if request.method == "HEAD":
            return httpx.Response(200, headers=headers)
        return httpx.Response(200, headers=headers, json=[dict(row) for row in page])

    def _insert(self, request: httpx.Request, table: str) -> httpx.Response:
        payload = json.loads(request.content)
        created = []
        for values in payload if isinstance(payload, list) else [payload]:
            missing = [c for c in NOT_NULL[table] if values.get(c) is None]
            if missing:
                return httpx.Response(
                    400,
                    json={"code": "23502", "message": f'null value in column "{missing[0]}" violates not-null constraint'},
                )
            now = self.tick()
            row = {"id": str(uuid4()), **DEFAULTS[table], **values, "created_at": now, "updated_at": now}
            self.tables[table].append(row)
            created.append(dict(row))
        return httpx.Response(201, json=created)
