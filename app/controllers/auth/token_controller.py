"""
Token lifecycle: keeps a user's Google access token usable for the remote calls that need it.
"""

import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from app.controllers.google.oauth_client import GoogleOAuthClient
from app.exceptions import ReauthRequiredError
from app.models import User
from app.repos.user import StoredCredentials, UserRepo


def utc_now() -> datetime:
    return datetime.now(UTC)


class TokenController:
    """
    Decides when a stored access token is stale and refreshes it.

    The cheap path, an unexpired token, returns the stored value without any remote call. A refresh that
    Google rejects as permanently invalid clears every credential field on the user and raises
    ``ReauthRequiredError``; transient failures raise ``RefreshTransientFailureError`` and leave the stored
    credentials alone.
    """

    def __init__(
        self, user_repo: UserRepo, oauth_client: GoogleOAuthClient, clock: Callable[[], datetime] = utc_now
    ) -> None:
        self._logger = logging.getLogger(__name__)
        self._user_repo = user_repo
        self._oauth_client = oauth_client
        self._clock = clock

    async def ensure_valid(self, user: User) -> str:
        """Return a currently valid access token for ``user``, refreshing it first when expired."""
        if user.access_token and not user.is_token_expired(self._clock()):
            return user.access_token

        if not user.refresh_token:
            self._logger.info(f"Access token expired and no refresh token on file; user_id: {user.id}")
            raise ReauthRequiredError(
                "Google credentials expired; re-authentication required", action="ensure_valid", user_id=user.id
            )

        return await self.refresh(user)

    async def refresh(self, user: User) -> str:
        """Exchange the stored refresh token for a new access token and persist it."""
        if not user.refresh_token:
            raise ReauthRequiredError("No refresh token on file; re-authentication required", user_id=user.id)

        try:
            grant = await self._oauth_client.refresh_access_token(user.refresh_token)
        except ReauthRequiredError as e:
            self._logger.warning(f"Refresh token rejected by Google, clearing credentials; user_id: {user.id}")
            await self._user_repo.clear_credentials(user)
            # Terminal state; must survive a rollback of the surrounding request.
            await self._user_repo.commit()
            e.extra["user_id"] = user.id
            raise

        await self._user_repo.put_credentials(
            user,
            StoredCredentials(
                access_token=grant.access_token,
                refresh_token=grant.refresh_token,
                expires_at=self._clock() + timedelta(seconds=grant.expires_in),
            ),
        )
        await self._user_repo.commit()
        self._logger.info(f"Refreshed Google access token; user_id: {user.id}, expires_in: {grant.expires_in}")
        return grant.access_token

    async def revoke(self, user: User) -> bool:
        """
        Revoke the user's grant at Google (best effort) and clear the stored credentials.

        Revoking the refresh token also invalidates every access token minted from it.
        """
        token = user.refresh_token or user.access_token
        revoked = False
        if token:
            revoked = await self._oauth_client.revoke(token)
            if not revoked:
                self._logger.warning(f"Could not revoke Google token, clearing locally anyway; user_id: {user.id}")

        await self._user_repo.clear_credentials(user)
        return revoked
