import pytest

from app.controllers.auth.token_controller import TokenController
from app.controllers.email.email_controller import EmailController
from app.controllers.user.user_controller import UserController
from app.exceptions import EntityNotFoundError, InvalidDataError
from app.models import EmailPriority
from app.repos.email_message import EmailFilters, EmailMessageRepo
from app.repos.user import UserRepo
from tests.factories import NOW, create_user, email_row


@pytest.fixture
def user_controller(oauth_client) -> UserController:
    return UserController(UserRepo(), TokenController(UserRepo(), oauth_client, clock=lambda: NOW))


@pytest.fixture
def email_controller() -> EmailController:
    return EmailController(EmailMessageRepo())


class TestEmailController:
    @pytest.mark.asyncio
    async def test_rejects_unknown_sort(self, database, email_controller):
        async with database():
            user = await create_user()

            with pytest.raises(InvalidDataError):
                await email_controller.list_emails(user, EmailFilters(), sort="size")

    @pytest.mark.asyncio
    async def test_ascending_subject_sort(self, database, email_controller):
        async with database():
            user = await create_user()
            for remote_id, subject in (("m1", "banana"), ("m2", "apple"), ("m3", "cherry")):
                await EmailMessageRepo().upsert(user.id, email_row(remote_id, subject=subject))

            emails, total = await email_controller.list_emails(user, EmailFilters(), sort="subject", order="asc")

            assert total == 3
            assert [email.subject for email in emails] == ["apple", "banana", "cherry"]

    @pytest.mark.asyncio
    async def test_update_requires_a_field(self, database, email_controller):
        async with database():
            user = await create_user()
            await EmailMessageRepo().upsert(user.id, email_row("m1"))
            (email,) = await EmailMessageRepo().find_by_remote_ids(user.id, ["m1"])

            with pytest.raises(InvalidDataError):
                await email_controller.update_email(user, email.id)

            updated = await email_controller.update_email(user, email.id, priority=EmailPriority.low)
            assert updated.priority == EmailPriority.low

    @pytest.mark.asyncio
    async def test_get_missing_email(self, database, email_controller):
        async with database():
            user = await create_user()

            with pytest.raises(EntityNotFoundError):
                await email_controller.get_email(user, 12345)

    @pytest.mark.asyncio
    async def test_bulk_update(self, database, email_controller):
        async with database():
            user = await create_user()
            for remote_id in ("m1", "m2", "m3"):
                await EmailMessageRepo().upsert(user.id, email_row(remote_id))
            ids = [email.id for email in await EmailMessageRepo().find_by_remote_ids(user.id, ["m1", "m2"])]

            with pytest.raises(InvalidDataError):
                await email_controller.bulk_update(user, ids, "isDeleted", True)

            assert await email_controller.bulk_update(user, ids, "isStarred", True) == 2
            assert (await EmailMessageRepo().get_by_remote_id(user.id, "m3")).is_starred is False


class TestUserController:
    @pytest.mark.asyncio
    async def test_update_profile(self, database, user_controller):
        async with database():
            user = await create_user()

            with pytest.raises(InvalidDataError):
                await user_controller.update_profile(user, name="   ")

            await user_controller.update_profile(user, name="  Jane S.  ")
            assert user.name == "Jane S."

    @pytest.mark.asyncio
    async def test_delete_account_keeps_messages(self, database, user_controller, oauth_client):
        async with database():
            user = await create_user()
            await EmailMessageRepo().upsert(user.id, email_row("m1"))

            await user_controller.delete_account(user)

            assert user.is_active is False
            assert user.refresh_token is None
            assert await EmailMessageRepo().get_by_remote_id(user.id, "m1") is not None

        oauth_client.revoke.assert_awaited_once_with("1//refresh-token")

    @pytest.mark.asyncio
    async def test_purge_removes_everything(self, database, user_controller):
        async with database():
            user = await create_user()
            await EmailMessageRepo().upsert(user.id, email_row("m1"))
            user_id = user.id

            assert await user_controller.purge(user) == 1
            assert await UserRepo().get(user_id) is None
