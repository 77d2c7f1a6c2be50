"""
Auth Routes - OAuth redirect, session cookie lifecycle and current user.

Authentication itself is delegated to the users service; these routes only
move the authorization code and session token between browser and service.
"""

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from structlog import get_logger

from calculator_api.api.dependencies import (
    get_current_user,
    get_session_token,
    get_users_service,
)
from calculator_api.config import settings
from calculator_api.exceptions import UsersServiceError
from calculator_api.models.api import (
    CreateSessionRequest,
    CurrentUserResponse,
    RedirectUrlResponse,
    SuccessResponse,
)
from calculator_api.models.domain import AuthenticatedUser
from calculator_api.services.admin import is_admin
from calculator_api.services.users_service import UsersServiceClient

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["auth"])


def _set_session_cookie(response: Response, value: str, max_age: int) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=value,
        httponly=True,
        secure=True,
        samesite="none",
        path="/",
        max_age=max_age,
    )


@router.get(
    "/oauth/google/redirect_url",
    response_model=RedirectUrlResponse,
    response_model_by_alias=True,
)
async def get_google_redirect_url(
    users_service: UsersServiceClient = Depends(get_users_service),
) -> RedirectUrlResponse:
    """Get the Google OAuth consent URL."""
    try:
        redirect_url = await users_service.get_oauth_redirect_url("google")
    except UsersServiceError as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Authentication service unavailable",
        ) from exc

    return RedirectUrlResponse(redirect_url=redirect_url)


@router.post("/sessions", response_model=SuccessResponse)
async def create_session(
    response: Response,
    request: CreateSessionRequest | None = None,
    users_service: UsersServiceClient = Depends(get_users_service),
) -> SuccessResponse:
    """
    Exchange an OAuth authorization code for a session cookie.

    Sets an HTTP-only, Secure, SameSite=None cookie valid for 60 days.
    """
    if request is None or not request.code:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No authorization code provided",
        )

    try:
        session_token = await users_service.exchange_code_for_session_token(request.code)
    except UsersServiceError as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Authentication service unavailable",
        ) from exc

    _set_session_cookie(response, session_token, settings.session_cookie_max_age)
    return SuccessResponse()


@router.get(
    "/users/me",
    response_model=CurrentUserResponse,
    response_model_by_alias=True,
)
async def get_me(user: AuthenticatedUser = Depends(get_current_user)) -> CurrentUserResponse:
    """Get the signed-in user with their admin flag."""
    return CurrentUserResponse(
        id=user.id,
        email=user.email,
        name=user.name,
        picture=user.picture,
        is_admin=is_admin(user.email),
    )


@router.get("/logout", response_model=SuccessResponse)
async def logout(
    http_request: Request,
    response: Response,
    users_service: UsersServiceClient = Depends(get_users_service),
) -> SuccessResponse:
    """Invalidate the remote session (if any) and clear the cookie."""
    session_token = get_session_token(http_request)

    if session_token:
        try:
            await users_service.delete_session(session_token)
        except UsersServiceError as exc:
            # Cookie is cleared regardless; the remote session expires on its own
            logger.warning("logout_session_delete_failed", error=str(exc))

    _set_session_cookie(response, "", 0)
    logger.info("user_logout", had_session=session_token is not None)
    return SuccessResponse()
