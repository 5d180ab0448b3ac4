"""Tests for the identity provider session client."""

import pytest

from taskboard.client import ApiError, AuthClient
from tests.fake_backend import API_KEY, BACKEND_URL, FakeBackend


@pytest.fixture
def auth(backend: FakeBackend) -> AuthClient:
    """An auth client talking to the fake identity provider."""
    return AuthClient(BACKEND_URL, API_KEY, transport=backend.transport())


@pytest.mark.asyncio
async def test_sign_up_starts_a_session(auth: AuthClient, backend: FakeBackend) -> None:
    """Test that signing up stores the session and its token."""
    session = await auth.sign_up("carol@example.com", "secret-pass", name="Carol")
    assert session is not None
    assert session.user.email == "carol@example.com"
    assert session.user.name == "Carol"
    assert auth.access_token() == session.access_token
    assert backend.requests[-1].headers["apikey"] == API_KEY
    await auth.close()


@pytest.mark.asyncio
async def test_sign_up_duplicate_email(auth: AuthClient) -> None:
    """Test that the provider's error message is surfaced."""
    await auth.sign_up("carol@example.com", "secret-pass")
    with pytest.raises(ApiError) as exc:
        await auth.sign_up("carol@example.com", "other-pass")
    assert exc.value.status_code == 422
    assert exc.value.error == "User already registered"
    await auth.close()


@pytest.mark.asyncio
async def test_sign_in_and_out(auth: AuthClient) -> None:
    """Test a password sign-in followed by sign-out."""
    await auth.sign_up("carol@example.com", "secret-pass")
    await auth.sign_out()
    assert auth.access_token() is None

    session = await auth.sign_in("carol@example.com", "secret-pass")
    assert session.user.name == "carol@example.com"
    assert auth.access_token() == session.access_token

    await auth.sign_out()
    assert auth.session is None
    await auth.close()


@pytest.mark.asyncio
async def test_sign_in_wrong_password(auth: AuthClient) -> None:
    """Test rejected credentials."""
    await auth.sign_up("carol@example.com", "secret-pass")
    with pytest.raises(ApiError) as exc:
        await auth.sign_in("carol@example.com", "wrong")
    assert exc.value.status_code == 400
    assert exc.value.error == "Invalid login credentials"
    await auth.close()


@pytest.mark.asyncio
async def test_sign_out_when_signed_out(auth: AuthClient, backend: FakeBackend) -> None:
    """Test that signing out without a session makes no request."""
    await auth.sign_out()
    assert backend.requests == []
    await auth.close()
