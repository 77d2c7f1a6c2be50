"""
Users service client - OAuth redirect, session exchange and user lookup.

Authentication is delegated to an external users/session microservice;
this client only forwards codes and session tokens to it.
"""

from typing import Any

import httpx
from structlog import get_logger

from calculator_api.exceptions import UsersServiceError
from calculator_api.models.domain import AuthenticatedUser

logger = get_logger(__name__)


class UsersServiceClient:
    """HTTP client for the users/session service."""

    def __init__(
        self,
        api_url: str,
        api_key: str,
        timeout: float = 10.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.api_url = api_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._http_client = http_client

    @property
    def http_client(self) -> httpx.AsyncClient:
        """Get HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self.timeout)
        return self._http_client

    def _headers(self, session_token: str | None = None) -> dict[str, str]:
        headers = {"x-api-key": self.api_key}
        if session_token:
            headers["Authorization"] = f"Bearer {session_token}"
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        operation: str,
        session_token: str | None = None,
        json: dict[str, Any] | None = None,
    ) -> httpx.Response:
        try:
            return await self.http_client.request(
                method,
                f"{self.api_url}{path}",
                headers=self._headers(session_token),
                json=json,
            )
        except httpx.HTTPError as exc:
            logger.error("users_service_unreachable", operation=operation, error=str(exc))
            raise UsersServiceError(f"{operation} request failed: {exc}") from exc

    @staticmethod
    def _json(response: httpx.Response, operation: str) -> dict[str, Any]:
        try:
            data = response.json()
        except ValueError as exc:
            raise UsersServiceError(f"{operation} returned invalid JSON") from exc
        if not isinstance(data, dict):
            raise UsersServiceError(f"{operation} returned unexpected payload")
        return data

    async def get_oauth_redirect_url(self, provider: str = "google") -> str:
        """Get the provider's OAuth consent URL."""
        response = await self._request(
            "GET", f"/oauth/{provider}/redirect_url", "get_oauth_redirect_url"
        )
        if response.status_code != 200:
            logger.error(
                "oauth_redirect_url_failed", status=response.status_code, provider=provider
            )
            raise UsersServiceError(f"redirect_url returned {response.status_code}")

        data = self._json(response, "get_oauth_redirect_url")
        redirect_url = data.get("redirect_url")
        if not isinstance(redirect_url, str) or not redirect_url:
            raise UsersServiceError("redirect_url missing from response")
        return redirect_url

    async def exchange_code_for_session_token(self, code: str) -> str:
        """
        Exchange an OAuth authorization code for a session token.

        Raises:
            UsersServiceError: If the service rejects the code or is unreachable
        """
        response = await self._request(
            "POST", "/sessions", "exchange_code", json={"code": code}
        )
        if response.status_code not in (200, 201):
            logger.warning("session_exchange_failed", status=response.status_code)
            raise UsersServiceError(f"session exchange returned {response.status_code}")

        data = self._json(response, "exchange_code")
        session_token = data.get("session_token")
        if not isinstance(session_token, str) or not session_token:
            raise UsersServiceError("session_token missing from response")

        logger.info("session_created")
        return session_token

    async def get_current_user(self, session_token: str) -> AuthenticatedUser | None:
        """
        Resolve a session token to a user.

        Returns None when the service does not recognize the session.
        """
        response = await self._request(
            "GET", "/users/me", "get_current_user", session_token=session_token
        )
        if response.status_code in (401, 403, 404):
            return None
        if response.status_code != 200:
            logger.error("user_lookup_failed", status=response.status_code)
            raise UsersServiceError(f"users/me returned {response.status_code}")

        data = self._json(response, "get_current_user")
        # google_user_data may be absent or null for non-Google sign-ins
        profile = data.get("google_user_data") or {}
        try:
            return AuthenticatedUser(
                id=str(data["id"]),
                email=str(data["email"]),
                name=profile.get("name") or data.get("name"),
                picture=profile.get("picture") or data.get("picture"),
            )
        except (KeyError, ValueError, AttributeError) as exc:
            raise UsersServiceError(f"users/me returned malformed user: {exc}") from exc

    async def delete_session(self, session_token: str) -> None:
        """Invalidate a session token on the users service."""
        response = await self._request(
            "DELETE", "/sessions", "delete_session", session_token=session_token
        )
        if response.status_code not in (200, 204, 404):
            logger.error("session_delete_failed", status=response.status_code)
            raise UsersServiceError(f"session delete returned {response.status_code}")
        logger.info("session_deleted")

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
