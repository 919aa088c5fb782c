"""
Authorization controller for the Google OAuth2 login flow.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from app.controllers.auth.token_controller import utc_now
from app.controllers.google.models import RemoteIdentity, TokenGrant
from app.controllers.google.oauth_client import GoogleOAuthClient
from app.exceptions import EmailNotVerifiedError
from app.models import User
from app.repos.user import StoredCredentials, UserRepo
from app.utils.session_token import SessionClaims, SessionTokenSigner

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoginResult:
    user: User
    session_token: str
    is_new_user: bool


class AuthorizationController:
    """Controller for the consent, code exchange and identity binding steps of a login."""

    def __init__(
        self,
        user_repo: UserRepo,
        oauth_client: GoogleOAuthClient,
        token_signer: SessionTokenSigner,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._user_repo = user_repo
        self._oauth_client = oauth_client
        self._token_signer = token_signer
        self._clock = clock

    def build_authorization_url(self, state: str | None = None) -> str:
        return self._oauth_client.build_authorization_url(state)

    async def exchange_code(self, code: str) -> TokenGrant:
        return await self._oauth_client.exchange_code(code)

    async def fetch_remote_identity(self, access_token: str) -> RemoteIdentity:
        return await self._oauth_client.fetch_identity(access_token)

    async def bind_identity(self, identity: RemoteIdentity, grant: TokenGrant) -> tuple[User, bool]:
        """
        Create or update the local user for a Google identity and store its tokens.

        Returns the user and whether it was newly created. A user found by Google id (or, failing that, by
        email) gets its profile and tokens overwritten, keeping the stored refresh token when Google did not
        issue a new one. Deactivated users are reactivated by logging in again.
        """
        if not identity.email_verified:
            logger.warning(f"Rejected login with unverified email; google_id: {identity.external_id}")
            raise EmailNotVerifiedError("Google account email address is not verified", action="bind_identity")

        now = self._clock()
        credentials = StoredCredentials(
            access_token=grant.access_token,
            refresh_token=grant.refresh_token,
            expires_at=now + timedelta(seconds=grant.expires_in),
        )

        user = await self._user_repo.get_by_google_id(identity.external_id)
        if user is None:
            user = await self._user_repo.get_by_email(identity.email)

        if user is None:
            user = User(
                google_id=identity.external_id,
                email=identity.email,
                name=identity.name,
                picture=identity.picture,
                access_token=credentials.access_token,
                refresh_token=credentials.refresh_token,
                token_expiry=credentials.expires_at,
                last_login_at=now,
                is_active=True,
            )
            await self._user_repo.add(user)
            logger.info(f"Created user for Google identity; user_id: {user.id}, email: {user.email}")
            return user, True

        await self._user_repo.update(
            user,
            {
                "google_id": identity.external_id,
                "email": identity.email,
                "name": identity.name,
                "picture": identity.picture,
                "last_login_at": now,
                "is_active": True,
            },
        )
        await self._user_repo.put_credentials(user, credentials)
        logger.info(f"Updated user from Google identity; user_id: {user.id}, email: {user.email}")
        return user, False

    def issue_session_token(self, user: User) -> str:
        return self._token_signer.issue(user.id, user.google_id, user.email, now=self._clock())

    def verify_session_token(self, token: str) -> SessionClaims:
        return self._token_signer.verify(token)

    async def complete_login(self, code: str) -> LoginResult:
        """Run the whole callback: exchange, identity lookup, binding and session token issuance."""
        grant = await self.exchange_code(code)
        identity = await self.fetch_remote_identity(grant.access_token)
        user, is_new_user = await self.bind_identity(identity, grant)
        return LoginResult(user=user, session_token=self.issue_session_token(user), is_new_user=is_new_user)
