"""
Gmail synchronization: pulls one page of remote message metadata into the local mirror.

A sync runs its stages strictly in order (ensure credential, list, fetch, normalize, upsert, report). A
failure in the first two stages aborts the sync before anything is written. Per-message failures in the
later stages only drop that message.
"""

import asyncio
import logging
from dataclasses import dataclass, field, replace
from datetime import UTC, date, datetime, timedelta

from sqlalchemy.exc import SQLAlchemyError

from app.controllers.auth.token_controller import TokenController
from app.controllers.google.gmail_client import GmailClient
from app.controllers.google.message_utils import MessageUtils, NormalizedMessage
from app.exceptions import BaseError, PartialSyncError, ReauthRequiredError
from app.models import EmailMessage, User
from app.repos.email_message import EmailCounts, EmailFilters, EmailMessageRepo

INBOX_QUERY = "in:inbox"


@dataclass
class SyncResult:
    synced_count: int
    failed_count: int
    next_page_token: str | None
    emails: list[EmailMessage] = field(default_factory=list)
    result_size_estimate: int = 0


@dataclass
class SearchResult:
    emails: list[EmailMessage]
    total: int
    page: int
    limit: int
    remote_query: str
    remote_sync_triggered: bool = False
    synced_count: int = 0
    remote_error: str | None = None


def build_remote_query(text: str, filters: EmailFilters) -> str:
    """Translate search criteria into Gmail search operators. An empty result means "search locally only"."""
    parts: list[str] = []
    if text.strip():
        parts.append(text.strip())
    if filters.sender:
        parts.append(f"from:{_quoted(filters.sender)}")
    if filters.subject:
        parts.append(f"subject:{_quoted(filters.subject)}")
    if filters.date_from is not None:
        parts.append(f"after:{_gmail_date(filters.date_from)}")
    if filters.date_to is not None:
        parts.append(f"before:{_gmail_date(filters.date_to)}")
    if filters.has_attachment is True:
        parts.append("has:attachment")
    if filters.is_unread is True:
        parts.append("is:unread")
    return " ".join(parts)


def _quoted(value: str) -> str:
    value = value.strip()
    return f'"{value}"' if " " in value else value


def _gmail_date(value: date) -> str:
    return value.strftime("%Y/%m/%d")


class SyncController:
    """Controller for syncing, searching and summarizing a user's mirrored Gmail metadata."""

    def __init__(
        self,
        email_message_repo: EmailMessageRepo,
        token_controller: TokenController,
        gmail_client: GmailClient,
        max_concurrent_fetches: int = 10,
    ) -> None:
        self._logger = logging.getLogger(__name__)
        self._email_message_repo = email_message_repo
        self._token_controller = token_controller
        self._gmail_client = gmail_client
        self._max_concurrent_fetches = max(1, max_concurrent_fetches)

    async def sync(
        self,
        user: User,
        max_results: int = 20,
        page_token: str | None = None,
        query: str = "",
        label_ids: list[str] | None = None,
    ) -> SyncResult:
        access_token = await self._token_controller.ensure_valid(user)

        remote_query = query.strip() if label_ids else f"{INBOX_QUERY} {query}".strip()
        try:
            page = await self._gmail_client.list_messages(
                access_token, query=remote_query, label_ids=label_ids, max_results=max_results, page_token=page_token
            )
        except BaseError as e:
            e.extra["user_id"] = user.id
            raise

        self._logger.info(
            f"Listed Gmail messages; user_id: {user.id}, count: {len(page.message_ids)}, query: '{remote_query}'"
        )

        normalized = await self._fetch_all(user, access_token, page.message_ids)

        synced_ids: list[str] = []
        for message in normalized:
            if await self._store(user, message):
                synced_ids.append(message.remote_id)

        failed_count = len(page.message_ids) - len(synced_ids)
        if failed_count:
            self._logger.warning(
                f"Partial sync; user_id: {user.id}, synced: {len(synced_ids)}, failed: {failed_count}"
            )
        else:
            self._logger.info(f"Sync complete; user_id: {user.id}, synced: {len(synced_ids)}")

        return SyncResult(
            synced_count=len(synced_ids),
            failed_count=failed_count,
            next_page_token=page.next_page_token,
            emails=await self._email_message_repo.find_by_remote_ids(user.id, synced_ids),
            result_size_estimate=page.result_size_estimate,
        )

    async def search(
        self, user: User, text: str, filters: EmailFilters, page: int = 1, limit: int = 20
    ) -> SearchResult:
        """
        Search the local mirror first and fall back to a scoped remote sync when it holds fewer matches
        than one page. Whether the remote was consulted is part of the result.
        """
        filters = replace(filters, search=text.strip())
        offset = (page - 1) * limit
        emails, total = await self._email_message_repo.find_for_user(user.id, filters, limit, offset)

        remote_query = build_remote_query(text, filters)
        result = SearchResult(emails=emails, total=total, page=page, limit=limit, remote_query=remote_query)
        if total >= limit or not remote_query:
            return result

        result.remote_sync_triggered = True
        try:
            sync_result = await self.sync(user, max_results=limit, query=remote_query)
        except ReauthRequiredError:
            raise
        except BaseError as e:
            self._logger.warning(f"Remote search sync failed, serving local results; user_id: {user.id}, {e}")
            result.remote_error = e.error_type.value
            return result

        result.synced_count = sync_result.synced_count
        result.emails, result.total = await self._email_message_repo.find_for_user(user.id, filters, limit, offset)
        return result

    async def get_stats(self, user: User, now: datetime | None = None) -> EmailCounts:
        now = now or datetime.now(UTC)
        start_of_day = now.astimezone(UTC).replace(hour=0, minute=0, second=0, microsecond=0)
        # The week is a rolling seven days, the month starts on the 1st.
        return await self._email_message_repo.count_for_user(
            user.id,
            since=start_of_day,
            week_since=now - timedelta(days=7),
            month_since=start_of_day.replace(day=1),
        )

    async def _fetch_all(self, user: User, access_token: str, message_ids: list[str]) -> list[NormalizedMessage]:
        semaphore = asyncio.Semaphore(self._max_concurrent_fetches)

        async def fetch_one(message_id: str) -> NormalizedMessage | None:
            async with semaphore:
                try:
                    raw = await self._gmail_client.get_message(access_token, message_id)
                    return MessageUtils.normalize(raw)
                except BaseError as e:
                    error = PartialSyncError(
                        f"Dropped message {message_id} from sync: {e}", action="fetch_message", user_id=user.id
                    )
                    self._logger.warning(str(error), extra=error.extra)
                    return None
                except Exception as e:
                    # Malformed payload; only this message is lost.
                    error = PartialSyncError(
                        f"Dropped message {message_id} from sync: {e!r}", action="normalize_message", user_id=user.id
                    )
                    self._logger.exception(str(error), extra=error.extra)
                    return None

        results = await asyncio.gather(*(fetch_one(message_id) for message_id in message_ids))
        return [message for message in results if message is not None]

    async def _store(self, user: User, message: NormalizedMessage) -> bool:
        try:
            await self._email_message_repo.upsert(user.id, message.to_row())
        except SQLAlchemyError:
            self._logger.exception(f"Failed to store message; user_id: {user.id}, remote_id: {message.remote_id}")
            return False
        return True
