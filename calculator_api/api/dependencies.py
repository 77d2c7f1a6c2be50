"""
FastAPI Dependencies - Session cookie authentication and service wiring.

NO DICTIONARIES - All dependencies return typed objects.
"""

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger

from calculator_api.config import settings
from calculator_api.db.session import get_db
from calculator_api.exceptions import UsersServiceError
from calculator_api.models.domain import AuthenticatedUser
from calculator_api.services.payment_provider import PaymentProvider
from calculator_api.services.paypal_provider import PayPalProvider
from calculator_api.services.tokens import TokenService
from calculator_api.services.users_service import UsersServiceClient

logger = get_logger(__name__)

# Shared HTTP clients, created on first use and closed on shutdown
_users_service: UsersServiceClient | None = None
_paypal_provider: PayPalProvider | None = None


def get_users_service() -> UsersServiceClient:
    """Get the users/session service client."""
    global _users_service
    if _users_service is None:
        _users_service = UsersServiceClient(
            api_url=settings.users_service_api_url,
            api_key=settings.users_service_api_key,
            timeout=settings.users_service_timeout,
        )
    return _users_service


def get_paypal_provider() -> PaymentProvider:
    """Get the PayPal payment provider."""
    global _paypal_provider
    if _paypal_provider is None:
        _paypal_provider = PayPalProvider(
            client_id=settings.paypal_client_id,
            client_secret=settings.paypal_client_secret,
            api_base=settings.paypal_api_base,
            timeout=settings.paypal_timeout,
        )
    return _paypal_provider


async def close_clients() -> None:
    """Close shared HTTP clients (for graceful shutdown)."""
    global _users_service, _paypal_provider

    if _users_service is not None:
        await _users_service.close()
        _users_service = None
    if _paypal_provider is not None:
        await _paypal_provider.close()
        _paypal_provider = None


def get_session_token(request: Request) -> str | None:
    """Read the session token cookie, if any."""
    return request.cookies.get(settings.session_cookie_name) or None


async def get_current_user(
    request: Request,
    users_service: UsersServiceClient = Depends(get_users_service),
) -> AuthenticatedUser:
    """
    FastAPI dependency resolving the session cookie to a user.

    Raises:
        HTTPException 401: No cookie, or the users service does not know the session
        HTTPException 502: Users service unavailable
    """
    session_token = get_session_token(request)
    if not session_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    try:
        user = await users_service.get_current_user(session_token)
    except UsersServiceError as exc:
        logger.error("session_lookup_failed", error=str(exc))
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Authentication service unavailable",
        ) from exc

    if user is None:
        logger.info("session_not_recognized", path=request.url.path)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    return user


def get_token_service(db: AsyncSession = Depends(get_db)) -> TokenService:
    """Get a request-scoped token service."""
    return TokenService(db)
