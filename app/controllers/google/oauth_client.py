"""
Google OAuth2 endpoints: consent URL, code exchange, refresh, identity lookup and revocation.

Every failure is classified here, from HTTP status and the ``error`` field of the token endpoint's JSON body,
into the application error taxonomy. Nothing above this module sees raw Google error payloads.
"""

import logging
from typing import Any

from app.controllers.google.http import GoogleHttpClient, RemoteResponse, RemoteTransportError
from app.controllers.google.models import (
    DEFAULT_TOKEN_LIFETIME_SECONDS,
    REVOKE_ENDPOINT,
    TOKEN_ENDPOINT,
    USERINFO_ENDPOINT,
    GoogleOAuthConfig,
    RemoteIdentity,
    TokenGrant,
)
from app.exceptions import (
    ExchangeFailedError,
    IdentityFetchFailedError,
    ReauthRequiredError,
    RefreshTransientFailureError,
)

# Token endpoint error codes meaning the refresh token itself will never work again.
GRANT_REVOKED_ERRORS = frozenset({"invalid_grant"})


class GoogleOAuthClient:
    """Stateless OAuth2 client: holds only the immutable client config; tokens are call arguments."""

    def __init__(self, config: GoogleOAuthConfig, http: GoogleHttpClient) -> None:
        self._logger = logging.getLogger(__name__)
        self._config = config
        self._http = http

    @property
    def config(self) -> GoogleOAuthConfig:
        return self._config

    def build_authorization_url(self, state: str | None = None) -> str:
        return self._config.require().authorization_url(state)

    async def exchange_code(self, code: str) -> TokenGrant:
        config = self._config.require()
        try:
            response = await self._http.request(
                "POST",
                TOKEN_ENDPOINT,
                data={
                    "grant_type": "authorization_code",
                    "code": code,
                    "client_id": config.client_id,
                    "client_secret": config.client_secret,
                    "redirect_uri": config.redirect_uri,
                },
            )
        except RemoteTransportError as e:
            self._logger.warning(f"Authorization code exchange did not complete: {e}")
            raise ExchangeFailedError("Failed to exchange authorization code for tokens", action="exchange") from e

        if not response.ok or not response.body.get("access_token"):
            self._logger.warning(
                f"Authorization code exchange rejected; status: {response.status}, body: {response.body}"
            )
            raise ExchangeFailedError(
                "Failed to exchange authorization code for tokens",
                action="exchange",
                remote_status=response.status,
                remote_error=_error_code(response),
            )

        return _token_grant(response.body)

    async def refresh_access_token(self, refresh_token: str) -> TokenGrant:
        config = self._config.require()
        try:
            response = await self._http.request(
                "POST",
                TOKEN_ENDPOINT,
                data={
                    "grant_type": "refresh_token",
                    "refresh_token": refresh_token,
                    "client_id": config.client_id,
                    "client_secret": config.client_secret,
                },
            )
        except RemoteTransportError as e:
            self._logger.warning(f"Token refresh did not complete: {e}")
            raise RefreshTransientFailureError(
                "Failed to refresh access token, retry later", action="refresh"
            ) from e

        if response.ok and response.body.get("access_token"):
            return _token_grant(response.body)

        error_code = _error_code(response)
        self._logger.warning(f"Token refresh rejected; status: {response.status}, body: {response.body}")
        if error_code in GRANT_REVOKED_ERRORS:
            raise ReauthRequiredError(
                "Refresh token is invalid, expired or revoked; re-authentication required",
                action="refresh",
                remote_status=response.status,
                remote_error=error_code,
            )
        raise RefreshTransientFailureError(
            "Failed to refresh access token, retry later",
            action="refresh",
            remote_status=response.status,
            remote_error=error_code,
        )

    async def fetch_identity(self, access_token: str) -> RemoteIdentity:
        try:
            response = await self._http.request("GET", USERINFO_ENDPOINT, access_token=access_token)
        except RemoteTransportError as e:
            self._logger.warning(f"Identity lookup did not complete: {e}")
            raise IdentityFetchFailedError("Failed to fetch user information from Google", action="identity") from e

        body = response.body
        external_id = body.get("id") or body.get("sub")
        if not response.ok or not external_id or not body.get("email"):
            self._logger.warning(f"Identity lookup rejected; status: {response.status}, body: {body}")
            raise IdentityFetchFailedError(
                "Failed to fetch user information from Google",
                action="identity",
                remote_status=response.status,
                remote_error=_error_code(response),
            )

        verified = body.get("verified_email", body.get("email_verified", False))
        return RemoteIdentity(
            external_id=str(external_id),
            email=body["email"],
            name=body.get("name") or body["email"],
            picture=body.get("picture"),
            email_verified=verified is True or verified == "true",
        )

    async def revoke(self, token: str) -> bool:
        """Revoke a token at Google. Best effort: failures are logged and reported as False."""
        try:
            response = await self._http.request("POST", REVOKE_ENDPOINT, data={"token": token})
        except RemoteTransportError as e:
            self._logger.warning(f"Token revocation did not complete: {e}")
            return False

        if not response.ok:
            self._logger.warning(f"Token revocation rejected; status: {response.status}, body: {response.body}")
        return response.ok


def _token_grant(body: dict[str, Any]) -> TokenGrant:
    expires_in = body.get("expires_in")
    return TokenGrant(
        access_token=body["access_token"],
        refresh_token=body.get("refresh_token") or None,
        expires_in=int(expires_in) if expires_in else DEFAULT_TOKEN_LIFETIME_SECONDS,
        scope=body.get("scope"),
    )


def _error_code(response: RemoteResponse) -> str | None:
    error = response.body.get("error")
    if isinstance(error, str):
        return error
    if isinstance(error, dict):
        return error.get("status") or error.get("message")
    return None
