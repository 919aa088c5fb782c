from typing import Annotated

from dependency_injector.wiring import Provide, inject
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.container import ApplicationContainer
from app.controllers.auth.authorization_controller import AuthorizationController
from app.exceptions import AuthError, ErrorType
from app.models import User
from app.repos.user import UserRepo

# Missing credentials are reported through the error envelope rather than FastAPI's default 403.
security = HTTPBearer(auto_error=False)


@inject
async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    authorization_controller: AuthorizationController = Depends(
        Provide[ApplicationContainer.controllers.authorization_controller]
    ),
    user_repo: UserRepo = Depends(Provide[ApplicationContainer.repos.user]),
) -> User:
    """
    FastAPI dependency resolving the signed-in user from the ``Authorization: Bearer`` session token.

    The token signature and expiry are checked locally; the user must still exist and be active.

    Raises:
        AuthError: If the token is missing, invalid or expired, or the user is gone or deactivated
    """
    if credentials is None or not credentials.credentials:
        raise AuthError("Access token required", ErrorType.INVALID_TOKEN)

    claims = authorization_controller.verify_session_token(credentials.credentials)

    user = await user_repo.get_active(claims.user_id)
    if user is None:
        raise AuthError("User not found or inactive", ErrorType.INVALID_USER, user_id=claims.user_id)

    return user


@inject
async def get_optional_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    authorization_controller: AuthorizationController = Depends(
        Provide[ApplicationContainer.controllers.authorization_controller]
    ),
    user_repo: UserRepo = Depends(Provide[ApplicationContainer.repos.user]),
) -> User | None:
    """Like ``get_current_user`` but yields ``None`` instead of failing."""
    if credentials is None or not credentials.credentials:
        return None
    try:
        claims = authorization_controller.verify_session_token(credentials.credentials)
    except AuthError:
        return None
    return await user_repo.get_active(claims.user_id)
