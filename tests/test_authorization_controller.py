from datetime import timedelta

import pytest

from app.controllers.auth.authorization_controller import AuthorizationController
from app.controllers.google.models import RemoteIdentity, TokenGrant
from app.exceptions import EmailNotVerifiedError
from app.repos.user import UserRepo
from app.utils.session_token import SessionTokenSigner
from tests.factories import NOW, create_user


def identity(**overrides) -> RemoteIdentity:
    values = {
        "external_id": "google-123",
        "email": "jane@example.com",
        "name": "Jane Q. Smith",
        "picture": "https://example.com/new.png",
        "email_verified": True,
    }
    values.update(overrides)
    return RemoteIdentity(**values)


@pytest.fixture
def signer() -> SessionTokenSigner:
    return SessionTokenSigner(
        "unit-test-secret-that-is-long-enough-for-hs256", ttl_hours=24, issuer="mailmirror", audience="mailmirror-web"
    )


@pytest.fixture
def controller(oauth_client, signer) -> AuthorizationController:
    return AuthorizationController(UserRepo(), oauth_client, signer, clock=lambda: NOW)


class TestBindIdentity:
    @pytest.mark.asyncio
    async def test_new_user(self, database, controller):
        async with database():
            user, is_new = await controller.bind_identity(identity(), TokenGrant("ya29.a", "1//r", 3600))

            assert is_new is True
            assert user.id is not None
            assert user.google_id == "google-123"
            assert user.name == "Jane Q. Smith"
            assert user.access_token == "ya29.a"
            assert user.refresh_token == "1//r"
            assert user.token_expiry == NOW + timedelta(hours=1)
            assert user.last_login_at == NOW

    @pytest.mark.asyncio
    async def test_rebind_without_new_refresh_token_keeps_the_stored_one(self, database, controller):
        async with database():
            existing = await create_user(refresh_token="1//original", last_login_at=NOW - timedelta(days=3))

            user, is_new = await controller.bind_identity(identity(), TokenGrant("ya29.b", None, 3600))

            assert is_new is False
            assert user.id == existing.id
            assert user.access_token == "ya29.b"
            assert user.refresh_token == "1//original"
            assert user.picture == "https://example.com/new.png"
            assert user.last_login_at == NOW

    @pytest.mark.asyncio
    async def test_matches_by_email_when_google_id_is_unknown(self, database, controller):
        async with database():
            existing = await create_user(google_id="legacy-id")

            user, is_new = await controller.bind_identity(identity(), TokenGrant("ya29.c", "1//c", 3600))

            assert is_new is False
            assert user.id == existing.id
            assert user.google_id == "google-123"

    @pytest.mark.asyncio
    async def test_reactivates_deactivated_user(self, database, controller):
        async with database():
            await create_user(is_active=False, access_token=None, refresh_token=None, token_expiry=None)

            user, is_new = await controller.bind_identity(identity(), TokenGrant("ya29.d", "1//d", 3600))

            assert is_new is False
            assert user.is_active is True
            assert user.refresh_token == "1//d"

    @pytest.mark.asyncio
    async def test_unverified_email_is_rejected(self, database, controller):
        async with database():
            with pytest.raises(EmailNotVerifiedError):
                await controller.bind_identity(identity(email_verified=False), TokenGrant("ya29.e", "1//e", 3600))

            assert await UserRepo().get_by_google_id("google-123") is None


class TestCompleteLogin:
    @pytest.mark.asyncio
    async def test_exchanges_code_and_issues_session(self, database, oauth_client, signer):
        # Real clock, so the session token verifies now.
        controller = AuthorizationController(UserRepo(), oauth_client, signer)
        oauth_client.exchange_code.return_value = TokenGrant("ya29.login", "1//login", 3599)
        oauth_client.fetch_identity.return_value = identity()
        async with database():
            result = await controller.complete_login("auth-code")

            assert result.is_new_user is True
            assert result.user.access_token == "ya29.login"

        oauth_client.exchange_code.assert_awaited_once_with("auth-code")
        oauth_client.fetch_identity.assert_awaited_once_with("ya29.login")

        claims = signer.verify(result.session_token)
        assert claims.user_id == result.user.id
        assert claims.external_id == "google-123"
        assert claims.email == "jane@example.com"

    def test_authorization_url_is_delegated(self, controller, oauth_client):
        oauth_client.build_authorization_url.return_value = "https://accounts.google.com/o/oauth2/v2/auth?x=1"

        assert controller.build_authorization_url("state-1") == "https://accounts.google.com/o/oauth2/v2/auth?x=1"
        oauth_client.build_authorization_url.assert_called_once_with("state-1")
