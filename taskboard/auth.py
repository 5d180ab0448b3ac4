"""Authenticated request context for the API routes."""

import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Annotated

import httpx
from fastapi import Depends, Header

from taskboard.backend import Identity, IdentityProvider, ScopedBackend
from taskboard.config import Settings, get_settings
from taskboard.errors import Unauthenticated

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RequestContext:
    """The verified caller and a data handle carrying their credential."""

    identity: Identity
    backend: ScopedBackend


def get_transport() -> httpx.AsyncBaseTransport | None:
    """Transport for backend calls; ``None`` means the default network transport."""
    return None


async def get_http_client(
    settings: Annotated[Settings, Depends(get_settings)],
    transport: Annotated[httpx.AsyncBaseTransport | None, Depends(get_transport)],
) -> AsyncIterator[httpx.AsyncClient]:
    """One backend client per request, closed when the response is sent."""
    url, _ = settings.require_backend()
    async with httpx.AsyncClient(base_url=url, timeout=settings.request_timeout, transport=transport) as http:
        yield http


def bearer_token(authorization: str | None) -> str:
    """Extract the token from an ``Authorization: Bearer <token>`` header."""
    if not authorization:
        raise Unauthenticated(details="No authorization header")
    scheme, _, token = authorization.partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        raise Unauthenticated(details="Malformed authorization header")
    return token


async def get_request_context(
    settings: Annotated[Settings, Depends(get_settings)],
    http: Annotated[httpx.AsyncClient, Depends(get_http_client)],
    authorization: Annotated[str | None, Header()] = None,
) -> RequestContext:
    """Verify the caller and return a backend handle scoped to them.

    Configuration is checked before the token so a misconfigured server
    reports a server error rather than an authentication failure.
    """
    _, api_key = settings.require_backend()
    token = bearer_token(authorization)
    identity = await IdentityProvider(http, api_key).verify(token)
    logger.debug("Authenticated user %s", identity.id)
    return RequestContext(identity=identity, backend=ScopedBackend(http, api_key, token))
