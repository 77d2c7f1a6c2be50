"""
Tests for UsersServiceClient.
"""

import json

import httpx
import pytest

from calculator_api.exceptions import UsersServiceError
from calculator_api.services.users_service import UsersServiceClient

API_URL = "https://users.test"


def _client(mock_http_client, handler) -> UsersServiceClient:
    return UsersServiceClient(
        api_url=API_URL + "/",
        api_key="secret-key",
        http_client=mock_http_client(handler),
    )


class TestRedirectUrl:
    """Tests for get_oauth_redirect_url."""

    async def test_returns_redirect_url(self, mock_http_client):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"redirect_url": "https://accounts.google.test/o"})

        client = _client(mock_http_client, handler)

        assert await client.get_oauth_redirect_url("google") == "https://accounts.google.test/o"
        assert str(seen[0].url) == f"{API_URL}/oauth/google/redirect_url"
        assert seen[0].headers["x-api-key"] == "secret-key"

    async def test_error_status_raises(self, mock_http_client):
        client = _client(mock_http_client, lambda r: httpx.Response(500))

        with pytest.raises(UsersServiceError):
            await client.get_oauth_redirect_url()

    async def test_missing_field_raises(self, mock_http_client):
        client = _client(mock_http_client, lambda r: httpx.Response(200, json={}))

        with pytest.raises(UsersServiceError, match="redirect_url missing"):
            await client.get_oauth_redirect_url()


class TestSessionExchange:
    """Tests for exchange_code_for_session_token."""

    async def test_posts_code(self, mock_http_client):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(201, json={"session_token": "sess-1"})

        client = _client(mock_http_client, handler)

        assert await client.exchange_code_for_session_token("auth-code") == "sess-1"
        assert seen[0].method == "POST"
        assert json.loads(seen[0].content) == {"code": "auth-code"}

    async def test_rejected_code_raises(self, mock_http_client):
        client = _client(mock_http_client, lambda r: httpx.Response(400, json={"error": "bad"}))

        with pytest.raises(UsersServiceError):
            await client.exchange_code_for_session_token("bad-code")

    async def test_non_json_raises(self, mock_http_client):
        client = _client(mock_http_client, lambda r: httpx.Response(200, text="<html>"))

        with pytest.raises(UsersServiceError, match="invalid JSON"):
            await client.exchange_code_for_session_token("code")


class TestCurrentUser:
    """Tests for get_current_user."""

    async def test_resolves_user(self, mock_http_client):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200,
                json={
                    "id": "user-123",
                    "email": "student@example.com",
                    "google_user_data": {"name": "Student", "picture": "https://pic"},
                },
            )

        client = _client(mock_http_client, handler)

        user = await client.get_current_user("sess-1")

        assert user is not None
        assert user.id == "user-123"
        assert user.name == "Student"
        assert user.picture == "https://pic"
        assert seen[0].headers["Authorization"] == "Bearer sess-1"

    @pytest.mark.parametrize("status_code", [401, 403, 404])
    async def test_unknown_session_returns_none(self, mock_http_client, status_code: int):
        client = _client(mock_http_client, lambda r: httpx.Response(status_code))

        assert await client.get_current_user("expired") is None

    @pytest.mark.parametrize(
        "payload",
        [
            {"id": "u1", "email": "a@b.c", "google_user_data": None, "name": "Top Level"},
            {"id": "u1", "email": "a@b.c", "name": "Top Level"},
        ],
    )
    async def test_profile_without_google_data(self, mock_http_client, payload: dict):
        """A null or missing google_user_data falls back to top-level profile fields."""
        client = _client(mock_http_client, lambda r: httpx.Response(200, json=payload))

        user = await client.get_current_user("sess-1")

        assert user is not None
        assert user.id == "u1"
        assert user.name == "Top Level"
        assert user.picture is None

    async def test_server_error_raises(self, mock_http_client):
        client = _client(mock_http_client, lambda r: httpx.Response(503))

        with pytest.raises(UsersServiceError):
            await client.get_current_user("sess-1")

    async def test_malformed_user_raises(self, mock_http_client):
        client = _client(mock_http_client, lambda r: httpx.Response(200, json={"id": "x"}))

        with pytest.raises(UsersServiceError, match="malformed"):
            await client.get_current_user("sess-1")

    async def test_unreachable_raises(self, mock_http_client):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectTimeout("timed out", request=request)

        client = _client(mock_http_client, handler)

        with pytest.raises(UsersServiceError, match="request failed"):
            await client.get_current_user("sess-1")


class TestDeleteSession:
    """Tests for delete_session."""

    async def test_deletes_with_bearer(self, mock_http_client):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(204)

        client = _client(mock_http_client, handler)

        await client.delete_session("sess-1")

        assert seen[0].method == "DELETE"
        assert seen[0].headers["Authorization"] == "Bearer sess-1"

    async def test_already_gone_is_fine(self, mock_http_client):
        client = _client(mock_http_client, lambda r: httpx.Response(404))
        await client.delete_session("sess-1")

    async def test_server_error_raises(self, mock_http_client):
        client = _client(mock_http_client, lambda r: httpx.Response(500))

        with pytest.raises(UsersServiceError):
            await client.delete_session("sess-1")
