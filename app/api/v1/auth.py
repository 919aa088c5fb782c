"""
Auth router - Google OAuth2 login flow and session management.
"""

import logging
from urllib.parse import urlencode

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends, Query
from fastapi.responses import RedirectResponse

from app.api.middlewares.authentication import get_current_user, get_optional_user
from app.api.payloads import AuthStatusData, AuthUrlData, Envelope, ErrorResponse, SessionData, UserData, UserPayload
from app.container import ApplicationContainer
from app.controllers.auth.authorization_controller import AuthorizationController
from app.controllers.auth.token_controller import TokenController
from app.controllers.user.user_controller import UserController
from app.exceptions import BaseError
from app.models import User
from settings import settings

logger = logging.getLogger(__name__)
router = APIRouter()


def _frontend_redirect(path: str, **params: str) -> RedirectResponse:
    return RedirectResponse(url=f"{settings.frontend_url.rstrip('/')}{path}?{urlencode(params)}", status_code=302)


@router.get(
    "/google",
    response_model=Envelope[AuthUrlData],
    responses={500: {"model": ErrorResponse, "description": "Google OAuth is not configured"}},
    summary="Get the Google consent URL",
)
@inject
async def google_auth_url(
    state: str | None = Query(None, description="Opaque value echoed back to the callback"),
    authorization_controller: AuthorizationController = Depends(
        Provide[ApplicationContainer.controllers.authorization_controller]
    ),
) -> Envelope[AuthUrlData]:
    auth_url = authorization_controller.build_authorization_url(state)
    return Envelope(message="Authorization URL generated", data=AuthUrlData(auth_url=auth_url))


@router.get("/callback", summary="Google OAuth2 callback", response_class=RedirectResponse)
@inject
async def google_callback(
    code: str | None = Query(None),
    state: str | None = Query(None),
    error: str | None = Query(None),
    authorization_controller: AuthorizationController = Depends(
        Provide[ApplicationContainer.controllers.authorization_controller]
    ),
) -> RedirectResponse:
    """
    Completes the login and redirects to the frontend with the session token, or with an error code.
    """
    if error:
        logger.info(f"Google consent was not granted; error: {error}")
        return _frontend_redirect("/login", error=error)
    if not code:
        return _frontend_redirect("/login", error="missing_code")

    try:
        login = await authorization_controller.complete_login(code)
    except BaseError as e:
        logger.warning(f"Login failed; {e}", extra=e.extra)
        return _frontend_redirect("/login", error=e.error_type.value)

    logger.info(f"User logged in; user_id: {login.user.id}, new_user: {login.is_new_user}")
    return _frontend_redirect("/auth/success", token=login.session_token)


@router.post(
    "/refresh",
    response_model=Envelope[SessionData],
    responses={
        401: {"model": ErrorResponse, "description": "Re-authentication required"},
        503: {"model": ErrorResponse, "description": "Token refresh failed, retry later"},
    },
    summary="Refresh Google credentials and reissue the session token",
)
@inject
async def refresh_session(
    user: User = Depends(get_current_user),
    token_controller: TokenController = Depends(Provide[ApplicationContainer.controllers.token_controller]),
    authorization_controller: AuthorizationController = Depends(
        Provide[ApplicationContainer.controllers.authorization_controller]
    ),
) -> Envelope[SessionData]:
    await token_controller.ensure_valid(user)
    token = authorization_controller.issue_session_token(user)
    return Envelope(
        message="Session refreshed", data=SessionData(token=token, user=UserPayload.from_model(user))
    )


@router.get("/me", response_model=Envelope[UserData], summary="Get the signed-in user")
async def me(user: User = Depends(get_current_user)) -> Envelope[UserData]:
    return Envelope(message="User retrieved successfully", data=UserData(user=UserPayload.from_model(user)))


@router.post("/logout", response_model=Envelope[None], summary="Log out and revoke Google access")
@inject
async def logout(
    user: User = Depends(get_current_user),
    user_controller: UserController = Depends(Provide[ApplicationContainer.controllers.user_controller]),
) -> Envelope[None]:
    await user_controller.logout(user)
    return Envelope(message="Logged out successfully")


@router.delete("/account", response_model=Envelope[None], summary="Deactivate the signed-in account")
@inject
async def delete_account(
    user: User = Depends(get_current_user),
    user_controller: UserController = Depends(Provide[ApplicationContainer.controllers.user_controller]),
) -> Envelope[None]:
    await user_controller.delete_account(user)
    return Envelope(message="Account deleted successfully")


@router.get("/status", response_model=Envelope[AuthStatusData], summary="Check authentication status")
async def auth_status(user: User | None = Depends(get_optional_user)) -> Envelope[AuthStatusData]:
    if user is None:
        return Envelope(message="Not authenticated", data=AuthStatusData(authenticated=False))
    return Envelope(
        message="Authenticated", data=AuthStatusData(authenticated=True, user=UserPayload.from_model(user))
    )
