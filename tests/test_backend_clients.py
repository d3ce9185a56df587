"""Tests for the auth and storage service clients"""

import json

import httpx
import pytest

from tests.config import test_config
from yurushiri.backends.auth_client import AuthClient
from yurushiri.backends.storage_client import StorageClient
from yurushiri.errors import AuthError, StorageError


SESSION_RESPONSE = {
    "access_token": "access-1",
    "refresh_token": "refresh-1",
    "expires_in": 3600,
    "user": {"id": "user-1", "email": "user@example.com"},
}


async def test_sign_in(auth_client_factory):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=SESSION_RESPONSE)

    result = await auth_client_factory(handler).sign_in("user@example.com", "secret1")

    assert result.user.id == "user-1"
    assert result.tokens.access_token == "access-1"
    assert seen[0].url.path == "/auth/v1/token"
    assert seen[0].url.params["grant_type"] == "password"
    assert seen[0].headers["apikey"] == "test-anon-key"


async def test_sign_in_rejected(auth_client_factory):
    client = auth_client_factory(
        lambda request: httpx.Response(
            400, json={"error_description": "Invalid login credentials"}
        )
    )

    with pytest.raises(AuthError) as exc_info:
        await client.sign_in("user@example.com", "wrong")

    assert exc_info.value.status_code == 400
    assert str(exc_info.value) == "Invalid login credentials"


async def test_unreachable(auth_client_factory):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(AuthError) as exc_info:
        await auth_client_factory(handler).get_user("access-1")

    assert exc_info.value.status_code is None


async def test_unconfigured():
    client = AuthClient({})

    assert client.is_configured is False
    with pytest.raises(AuthError):
        await client.sign_in("user@example.com", "secret1")


async def test_sign_up_with_confirmation(auth_client_factory):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"id": "user-2", "email": "new@example.com"})

    result = await auth_client_factory(handler).sign_up(
        "new@example.com", "secret1", redirect_to="https://app.test/"
    )

    assert result.user.id == "user-2"
    assert result.tokens is None
    assert seen[0].url.params["redirect_to"] == "https://app.test/"


async def test_sign_up_without_confirmation(auth_client_factory):
    result = await auth_client_factory(
        lambda request: httpx.Response(200, json=SESSION_RESPONSE)
    ).sign_up("user@example.com", "secret1")

    assert result.tokens.refresh_token == "refresh-1"


async def test_get_user_with_expired_token(auth_client_factory):
    client = auth_client_factory(lambda request: httpx.Response(401, json={"msg": "expired"}))

    assert await client.get_user("expired-token") is None


async def test_refresh(auth_client_factory):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=SESSION_RESPONSE)

    result = await auth_client_factory(handler).refresh("refresh-0")

    assert result.tokens.access_token == "access-1"
    assert seen[0].url.params["grant_type"] == "refresh_token"
    assert json.loads(seen[0].content) == {"refresh_token": "refresh-0"}


async def test_sign_out_never_raises(auth_client_factory):
    client = auth_client_factory(lambda request: httpx.Response(500, text="boom"))

    await client.sign_out("access-1")


async def test_upload_returns_public_url(storage_client, storage_requests):
    url = await storage_client.upload(
        "events/cover.png", b"png-bytes", "image/png", access_token="user-token"
    )

    assert url == (
        "https://supabase.test/storage/v1/object/public/event-images/events/cover.png"
    )
    request = storage_requests[0]
    assert request.url.path == "/storage/v1/object/event-images/events/cover.png"
    assert request.headers["Authorization"] == "Bearer user-token"
    assert request.headers["x-upsert"] == "true"
    assert request.content == b"png-bytes"


def test_path_from_public_url(storage_client):
    url = storage_client.public_url("events/a.webp")

    assert storage_client.path_from_public_url(url) == "events/a.webp"
    assert storage_client.path_from_public_url("https://elsewhere.test/a.png") is None
    assert storage_client.path_from_public_url(None) is None


async def test_upload_failure():
    client = StorageClient(
        test_config,
        transport=httpx.MockTransport(lambda request: httpx.Response(403, text="denied")),
    )

    with pytest.raises(StorageError, match="403"):
        await client.upload("events/a.png", b"x", "image/png")
