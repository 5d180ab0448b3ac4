"""Session client for the backend's identity provider (sign up / in / out)."""

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from taskboard.client.api import ApiError

logger = logging.getLogger(__name__)

AUTH_PATH = "/auth/v1"


@dataclass(frozen=True)
class SessionUser:
    id: str
    email: str
    name: str | None = None

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "SessionUser":
        metadata = payload.get("user_metadata") or {}
        email = payload.get("email") or ""
        return cls(id=str(payload["id"]), email=email, name=metadata.get("name") or email or None)


@dataclass(frozen=True)
class Session:
    access_token: str
    refresh_token: str | None
    user: SessionUser


class AuthClient:
    """Holds the current session and exposes its token to ``ApiClient``."""

    def __init__(
        self,
        backend_url: str,
        api_key: str,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._api_key = api_key
        self._client = httpx.AsyncClient(
            base_url=backend_url.rstrip("/") + AUTH_PATH,
            timeout=timeout,
            transport=transport,
            headers={"apikey": api_key, "Content-Type": "application/json"},
        )
        self.session: Session | None = None

    async def close(self) -> None:
        await self._client.aclose()

    def access_token(self) -> str | None:
        """Token of the current session, or None when signed out."""
        return self.session.access_token if self.session else None

    async def _post(self, path: str, json: dict[str, Any] | None = None, **kwargs: Any) -> dict[str, Any]:
        response = await self._client.post(path, json=json, **kwargs)
        if response.is_error:
            try:
                body = response.json()
            except ValueError:
                body = {}
            message = body.get("msg") or body.get("error_description") or body.get("message") or "Request failed"
            raise ApiError(response.status_code, message, body.get("error") or body.get("code"))
        return response.json() if response.content else {}

    def _store_session(self, payload: dict[str, Any]) -> Session | None:
        token = payload.get("access_token")
        if not token:
            return None
        self.session = Session(
            access_token=token,
            refresh_token=payload.get("refresh_token"),
            user=SessionUser.from_payload(payload["user"]),
        )
        logger.info("Signed in as %s", self.session.user.email)
        return self.session

    async def sign_up(self, email: str, password: str, name: str | None = None) -> Session | None:
        """Register a user. Returns a session unless the provider requires email confirmation."""
        payload = await self._post("/signup", {"email": email, "password": password, "data": {"name": name}})
        return self._store_session(payload)

    async def sign_in(self, email: str, password: str) -> Session:
        payload = await self._post("/token", {"email": email, "password": password}, params={"grant_type": "password"})
        session = self._store_session(payload)
        if session is None:
            raise ApiError(401, "Sign in failed")
        return session

    async def sign_out(self) -> None:
        if self.session is None:
            return
        token = self.session.access_token
        self.session = None
        await self._post("/logout", headers={"Authorization": f"Bearer {token}"})
