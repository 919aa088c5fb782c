from datetime import timedelta

import pytest

from app.controllers.auth.token_controller import TokenController
from app.controllers.google.models import TokenGrant
from app.exceptions import ErrorType, ReauthRequiredError, RefreshTransientFailureError
from app.repos.user import StoredCredentials, UserRepo
from tests.factories import NOW, create_user


@pytest.fixture
def token_controller(oauth_client) -> TokenController:
    return TokenController(UserRepo(), oauth_client, clock=lambda: NOW)


class TestEnsureValid:
    @pytest.mark.asyncio
    async def test_unexpired_token_is_returned_without_remote_call(self, database, token_controller, oauth_client):
        async with database():
            user = await create_user(token_expiry=NOW + timedelta(seconds=1))

            assert await token_controller.ensure_valid(user) == "ya29.access-token"

        oauth_client.refresh_access_token.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_token_expiring_exactly_now_is_refreshed(self, database, token_controller, oauth_client):
        oauth_client.refresh_access_token.return_value = TokenGrant("ya29.fresh", None, 3600)
        async with database():
            user = await create_user(token_expiry=NOW)

            assert await token_controller.ensure_valid(user) == "ya29.fresh"

        oauth_client.refresh_access_token.assert_awaited_once_with("1//refresh-token")

    @pytest.mark.asyncio
    async def test_missing_access_token_is_refreshed(self, database, token_controller, oauth_client):
        oauth_client.refresh_access_token.return_value = TokenGrant("ya29.fresh", None, 3600)
        async with database():
            user = await create_user(access_token=None, token_expiry=None)

            assert await token_controller.ensure_valid(user) == "ya29.fresh"

    @pytest.mark.asyncio
    async def test_expired_without_refresh_token_requires_reauth(self, database, token_controller, oauth_client):
        async with database():
            user = await create_user(token_expiry=NOW - timedelta(minutes=5), refresh_token=None)

            with pytest.raises(ReauthRequiredError) as exc_info:
                await token_controller.ensure_valid(user)

        assert exc_info.value.requires_auth is True
        assert exc_info.value.extra["user_id"] == user.id
        oauth_client.refresh_access_token.assert_not_awaited()


class TestRefresh:
    @pytest.mark.asyncio
    async def test_success_stores_new_token_and_keeps_refresh_token(self, database, token_controller, oauth_client):
        oauth_client.refresh_access_token.return_value = TokenGrant("ya29.fresh", None, 1800)
        async with database():
            user = await create_user(token_expiry=NOW - timedelta(minutes=1))

            token = await token_controller.refresh(user)
            credentials = await UserRepo().get_credentials(user.id)

        assert token == "ya29.fresh"
        assert credentials == StoredCredentials("ya29.fresh", "1//refresh-token", NOW + timedelta(seconds=1800))

    @pytest.mark.asyncio
    async def test_rotated_refresh_token_is_stored(self, database, token_controller, oauth_client):
        oauth_client.refresh_access_token.return_value = TokenGrant("ya29.fresh", "1//rotated", 3600)
        async with database():
            user = await create_user(token_expiry=NOW - timedelta(minutes=1))

            await token_controller.refresh(user)

            assert user.refresh_token == "1//rotated"

    @pytest.mark.asyncio
    async def test_refreshed_token_is_committed(self, database, token_controller, oauth_client):
        oauth_client.refresh_access_token.return_value = TokenGrant("ya29.fresh", None, 3600)
        async with database(commit=True):
            user = await create_user(token_expiry=NOW - timedelta(minutes=1))
            user_id = user.id

        async with database():
            user = await UserRepo().get(user_id)
            await token_controller.refresh(user)

        async with database():
            credentials = await UserRepo().get_credentials(user_id)

        assert credentials.access_token == "ya29.fresh"

    @pytest.mark.asyncio
    async def test_invalid_grant_clears_credentials(self, database, token_controller, oauth_client):
        oauth_client.refresh_access_token.side_effect = ReauthRequiredError(
            "Refresh token is no longer valid", remote_error="invalid_grant"
        )
        async with database(commit=True):
            user = await create_user(token_expiry=NOW - timedelta(minutes=1))
            user_id = user.id

        async with database():
            user = await UserRepo().get(user_id)
            with pytest.raises(ReauthRequiredError) as exc_info:
                await token_controller.ensure_valid(user)

        assert exc_info.value.extra["user_id"] == user_id
        assert exc_info.value.error_type == ErrorType.AUTHENTICATION_REQUIRED

        # Cleared even though the request scope itself never committed.
        async with database():
            assert await UserRepo().get_credentials(user_id) == StoredCredentials(None, None, None)

    @pytest.mark.asyncio
    async def test_transient_failure_keeps_credentials(self, database, token_controller, oauth_client):
        oauth_client.refresh_access_token.side_effect = RefreshTransientFailureError("Token endpoint timed out")
        expired_at = NOW - timedelta(minutes=1)
        async with database():
            user = await create_user(token_expiry=expired_at)

            with pytest.raises(RefreshTransientFailureError):
                await token_controller.ensure_valid(user)

            credentials = await UserRepo().get_credentials(user.id)

        assert credentials == StoredCredentials("ya29.access-token", "1//refresh-token", expired_at)


class TestRevoke:
    @pytest.mark.asyncio
    async def test_revokes_refresh_token_and_clears(self, database, token_controller, oauth_client):
        async with database():
            user = await create_user()

            assert await token_controller.revoke(user) is True

            assert user.access_token is None
            assert user.refresh_token is None
            assert user.token_expiry is None

        oauth_client.revoke.assert_awaited_once_with("1//refresh-token")

    @pytest.mark.asyncio
    async def test_remote_failure_still_clears_locally(self, database, token_controller, oauth_client):
        oauth_client.revoke.return_value = False
        async with database():
            user = await create_user(refresh_token=None)

            assert await token_controller.revoke(user) is False

            assert user.access_token is None

        oauth_client.revoke.assert_awaited_once_with("ya29.access-token")

    @pytest.mark.asyncio
    async def test_nothing_to_revoke(self, database, token_controller, oauth_client):
        async with database():
            user = await create_user(access_token=None, refresh_token=None, token_expiry=None)

            assert await token_controller.revoke(user) is False

        oauth_client.revoke.assert_not_awaited()
