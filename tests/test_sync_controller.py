from datetime import timedelta

import pytest

from app.controllers.auth.token_controller import TokenController
from app.controllers.email.sync_controller import SyncController, build_remote_query
from app.controllers.google.models import MessagePage
from app.exceptions import ReauthRequiredError, RemoteFetchFailedError, RemoteRateLimitedError
from app.repos.email_message import EmailFilters, EmailMessageRepo
from app.repos.user import UserRepo
from tests.factories import NOW, create_user, email_row, gmail_message


@pytest.fixture
def sync_controller(oauth_client, gmail_client) -> SyncController:
    token_controller = TokenController(UserRepo(), oauth_client, clock=lambda: NOW)
    return SyncController(EmailMessageRepo(), token_controller, gmail_client, max_concurrent_fetches=2)


def serve_messages(gmail_client, message_ids, failing=()):
    gmail_client.list_messages.return_value = MessagePage(
        message_ids=list(message_ids), next_page_token="page-2", result_size_estimate=len(message_ids)
    )

    async def get_message(access_token, message_id):
        if message_id in failing:
            raise RemoteFetchFailedError(f"Gmail request failed: get message {message_id}")
        return gmail_message(message_id)

    gmail_client.get_message.side_effect = get_message


class TestBuildRemoteQuery:
    def test_empty(self):
        assert build_remote_query("  ", EmailFilters()) == ""

    def test_operators(self):
        filters = EmailFilters(
            sender="Jane Smith",
            subject="report",
            date_from=NOW - timedelta(days=7),
            date_to=NOW,
            has_attachment=True,
            is_unread=True,
        )

        assert build_remote_query("invoice", filters) == (
            'invoice from:"Jane Smith" subject:report after:2026/10/12 before:2026/10/19 has:attachment is:unread'
        )


class TestSync:
    @pytest.mark.asyncio
    async def test_one_failing_message_does_not_abort_the_rest(self, database, sync_controller, gmail_client):
        serve_messages(gmail_client, ["m1", "m2", "m3", "m4", "m5"], failing={"m3"})
        async with database():
            user = await create_user()

            result = await sync_controller.sync(user, max_results=5)

            assert result.synced_count == 4
            assert result.failed_count == 1
            assert result.next_page_token == "page-2"
            assert {email.remote_id for email in result.emails} == {"m1", "m2", "m4", "m5"}
            assert await EmailMessageRepo().get_by_remote_id(user.id, "m3") is None

    @pytest.mark.asyncio
    async def test_malformed_message_payload_only_drops_that_message(self, database, sync_controller, gmail_client):
        gmail_client.list_messages.return_value = MessagePage(["m1", "m2", "m3"], next_page_token=None)
        payloads = {
            "m1": gmail_message("m1"),
            "m2": gmail_message("m2", payload="garbage"),
            "m3": gmail_message("m3", headers=["not-a-dict", {"name": "Subject", "value": "Odd headers"}]),
        }
        gmail_client.get_message.side_effect = lambda access_token, message_id: payloads[message_id]
        async with database():
            user = await create_user()

            result = await sync_controller.sync(user)

            assert result.synced_count == 2
            assert result.failed_count == 1
            assert {email.remote_id for email in result.emails} == {"m1", "m3"}
            assert (await EmailMessageRepo().get_by_remote_id(user.id, "m3")).subject == "Odd headers"

    @pytest.mark.asyncio
    async def test_normalized_fields_are_stored(self, database, sync_controller, gmail_client):
        serve_messages(gmail_client, ["m1"])
        async with database():
            user = await create_user()

            await sync_controller.sync(user)
            email = await EmailMessageRepo().get_by_remote_id(user.id, "m1")

            assert email.sender == "jane@x.com"
            assert email.sender_name == "Jane Smith"
            assert email.subject == "Message m1"
            assert email.recipients == ["bob@example.com", "carol@example.com"]
            assert email.is_read is False

    @pytest.mark.asyncio
    async def test_inbox_query_and_options(self, database, sync_controller, gmail_client):
        serve_messages(gmail_client, [])
        async with database():
            user = await create_user()

            await sync_controller.sync(user, max_results=10, page_token="abc", query="from:boss")
            await sync_controller.sync(user, label_ids=["STARRED"])

        first, second = gmail_client.list_messages.await_args_list
        assert first.args == ("ya29.access-token",)
        assert first.kwargs == {
            "query": "in:inbox from:boss",
            "label_ids": None,
            "max_results": 10,
            "page_token": "abc",
        }
        assert second.kwargs["query"] == ""
        assert second.kwargs["label_ids"] == ["STARRED"]

    @pytest.mark.asyncio
    async def test_resync_is_idempotent(self, database, sync_controller, gmail_client):
        serve_messages(gmail_client, ["m1", "m2"])
        async with database():
            user = await create_user()

            await sync_controller.sync(user)
            result = await sync_controller.sync(user)
            _, total = await EmailMessageRepo().find_for_user(user.id, EmailFilters(), limit=20, offset=0)

            assert result.synced_count == 2
            assert total == 2

    @pytest.mark.asyncio
    async def test_list_unauthorized_aborts_before_fetching(self, database, sync_controller, gmail_client):
        gmail_client.list_messages.side_effect = ReauthRequiredError("Gmail rejected the access token")
        async with database():
            user = await create_user()

            with pytest.raises(ReauthRequiredError) as exc_info:
                await sync_controller.sync(user)

        assert exc_info.value.extra["user_id"] == user.id
        gmail_client.get_message.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_expired_credentials_without_refresh_token(self, database, sync_controller, gmail_client):
        async with database():
            user = await create_user(token_expiry=NOW - timedelta(hours=1), refresh_token=None)

            with pytest.raises(ReauthRequiredError):
                await sync_controller.sync(user)

        gmail_client.list_messages.assert_not_awaited()


class TestSearch:
    @pytest.mark.asyncio
    async def test_too_few_local_matches_trigger_one_remote_sync(self, database, sync_controller, gmail_client):
        serve_messages(gmail_client, ["r1"])
        gmail_client.get_message.side_effect = None
        gmail_client.get_message.return_value = gmail_message(
            "r1", headers=[{"name": "Subject", "value": "Invoice for October"}]
        )
        async with database():
            user = await create_user()
            await EmailMessageRepo().upsert(user.id, email_row("m1", subject="Invoice 1"))
            await EmailMessageRepo().upsert(user.id, email_row("m2", subject="Invoice 2"))

            result = await sync_controller.search(user, "invoice", EmailFilters(), page=1, limit=20)

        assert gmail_client.list_messages.await_count == 1
        assert gmail_client.list_messages.await_args.kwargs["query"] == "in:inbox invoice"
        assert result.remote_sync_triggered is True
        assert result.synced_count == 1
        assert result.total == 3
        assert {email.remote_id for email in result.emails} == {"m1", "m2", "r1"}

    @pytest.mark.asyncio
    async def test_full_local_page_skips_remote(self, database, sync_controller, gmail_client):
        async with database():
            user = await create_user()
            for i in range(3):
                await EmailMessageRepo().upsert(user.id, email_row(f"m{i}", subject=f"Invoice {i}"))

            result = await sync_controller.search(user, "invoice", EmailFilters(), page=1, limit=3)

        assert result.remote_sync_triggered is False
        assert result.total == 3
        gmail_client.list_messages.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_empty_query_never_goes_remote(self, database, sync_controller, gmail_client):
        async with database():
            user = await create_user()
            await EmailMessageRepo().upsert(user.id, email_row("m1"))

            result = await sync_controller.search(user, "", EmailFilters(), page=1, limit=20)

        assert result.remote_sync_triggered is False
        assert result.total == 1
        gmail_client.list_messages.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_remote_failure_serves_local_results(self, database, sync_controller, gmail_client):
        gmail_client.list_messages.side_effect = RemoteRateLimitedError("Gmail rate limit exceeded")
        async with database():
            user = await create_user()
            await EmailMessageRepo().upsert(user.id, email_row("m1", subject="Invoice"))

            result = await sync_controller.search(user, "invoice", EmailFilters(), page=1, limit=20)

        assert result.remote_sync_triggered is True
        assert result.remote_error == "RATE_LIMIT_EXCEEDED"
        assert [email.remote_id for email in result.emails] == ["m1"]

    @pytest.mark.asyncio
    async def test_reauth_propagates(self, database, sync_controller, gmail_client):
        gmail_client.list_messages.side_effect = ReauthRequiredError("Gmail rejected the access token")
        async with database():
            user = await create_user()

            with pytest.raises(ReauthRequiredError):
                await sync_controller.search(user, "invoice", EmailFilters(), page=1, limit=20)


class TestStats:
    @pytest.mark.asyncio
    async def test_today_counts_from_utc_midnight(self, database, sync_controller):
        async with database():
            user = await create_user()
            await EmailMessageRepo().upsert(user.id, email_row("m1", received_at=NOW.replace(hour=0)))
            await EmailMessageRepo().upsert(user.id, email_row("m2", received_at=NOW - timedelta(hours=13)))
            await EmailMessageRepo().upsert(user.id, email_row("m3", is_read=True, is_starred=True))

            counts = await sync_controller.get_stats(user, now=NOW)

        assert (counts.total, counts.unread, counts.starred, counts.today) == (3, 2, 1, 2)

    @pytest.mark.asyncio
    async def test_week_is_rolling_and_month_starts_on_the_first(self, database, sync_controller):
        async with database():
            user = await create_user()
            for remote_id, days_ago in [("m1", 6), ("m2", 8), ("m3", 18), ("m4", 19)]:
                row = email_row(remote_id, received_at=NOW - timedelta(days=days_ago))
                await EmailMessageRepo().upsert(user.id, row)

            counts = await sync_controller.get_stats(user, now=NOW)

        assert (counts.today, counts.this_week, counts.this_month, counts.total) == (0, 1, 3, 4)
