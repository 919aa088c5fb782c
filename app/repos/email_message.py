from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import func, or_, update
from sqlalchemy.sql.selectable import Select

from app.models import EmailMessage
from app.repos.base import BaseRepo

SORTABLE_COLUMNS = {
    "receivedDate": EmailMessage.received_at,
    "subject": EmailMessage.subject,
    "sender": EmailMessage.sender,
}

# Conflict target of the upsert; never part of the update set.
_KEY_COLUMNS = ("user_id", "remote_id")


@dataclass
class EmailFilters:
    """Local filter criteria. Text criteria are case-insensitive substring matches."""

    search: str = ""
    sender: str = ""
    subject: str = ""
    date_from: datetime | None = None
    date_to: datetime | None = None
    is_unread: bool | None = None
    has_attachment: bool | None = None


@dataclass
class EmailCounts:
    total: int
    unread: int
    starred: int
    today: int
    this_week: int
    this_month: int


class EmailMessageRepo(BaseRepo[EmailMessage]):
    """Repository for mirrored Gmail message metadata."""

    def __init__(self) -> None:
        super().__init__(EmailMessage)

    async def get_for_user(self, user_id: int, email_id: int) -> EmailMessage | None:
        result = await self.execute(
            self.base_stmt.where(EmailMessage.id == email_id, EmailMessage.user_id == user_id).execution_options(
                populate_existing=True
            )
        )
        return result.one_or_none()

    async def get_by_remote_id(self, user_id: int, remote_id: str) -> EmailMessage | None:
        owned = self.base_stmt.where(EmailMessage.user_id == user_id, EmailMessage.remote_id == remote_id)
        result = await self.execute(owned.execution_options(populate_existing=True))
        return result.one_or_none()

    async def upsert(self, user_id: int, values: dict[str, Any]) -> None:
        """Insert or update one message keyed by (user_id, remote_id) inside its own savepoint."""
        stmt = self.upsert_stmt().values(user_id=user_id, **values)
        changes = {key: stmt.excluded[key] for key in values if key not in _KEY_COLUMNS}
        changes["updated_at"] = func.now()
        stmt = stmt.on_conflict_do_update(index_elements=list(_KEY_COLUMNS), set_=changes)

        async with self._db.session.begin_nested():
            await self._db.session.execute(stmt)

    async def find_by_remote_ids(self, user_id: int, remote_ids: list[str]) -> list[EmailMessage]:
        if not remote_ids:
            return []
        query = (
            self.base_stmt.where(EmailMessage.user_id == user_id, EmailMessage.remote_id.in_(remote_ids))
            .order_by(EmailMessage.received_at.desc(), EmailMessage.id.desc())
            .execution_options(populate_existing=True)
        )
        result = await self.execute(query)
        return list(result.all())

    async def find_for_user(
        self,
        user_id: int,
        filters: EmailFilters,
        limit: int,
        offset: int,
        sort: str = "receivedDate",
        descending: bool = True,
    ) -> tuple[list[EmailMessage], int]:
        """Return one page of matching messages together with the total match count."""
        query = self._filtered(user_id, filters)
        total = await self.count(query)

        column = SORTABLE_COLUMNS.get(sort, EmailMessage.received_at)
        ordering = column.desc() if descending else column.asc()
        page_query = (
            query.order_by(ordering, EmailMessage.id.desc())
            .limit(limit)
            .offset(offset)
            .execution_options(populate_existing=True)
        )
        result = await self.execute(page_query)
        return list(result.all()), total

    async def count_for_user(
        self, user_id: int, since: datetime, week_since: datetime, month_since: datetime
    ) -> EmailCounts:
        """Count a user's mirrored emails; `since`, `week_since` and `month_since` bound the received-at windows."""
        owned = self.base_stmt.where(EmailMessage.user_id == user_id)
        return EmailCounts(
            total=await self.count(owned),
            unread=await self.count(owned.where(EmailMessage.is_read.is_(False))),
            starred=await self.count(owned.where(EmailMessage.is_starred.is_(True))),
            today=await self.count(owned.where(EmailMessage.received_at >= since)),
            this_week=await self.count(owned.where(EmailMessage.received_at >= week_since)),
            this_month=await self.count(owned.where(EmailMessage.received_at >= month_since)),
        )

    async def bulk_update(self, user_id: int, email_ids: list[int], values: dict[str, Any]) -> int:
        stmt = (
            update(EmailMessage)
            .where(EmailMessage.user_id == user_id, EmailMessage.id.in_(email_ids))
            .values(**values, updated_at=func.now())
            .execution_options(synchronize_session=False)
        )
        result = await self._db.session.execute(stmt)
        return int(result.rowcount or 0)

    def _filtered(self, user_id: int, filters: EmailFilters) -> Select[tuple[EmailMessage]]:
        query = self.base_stmt.where(EmailMessage.user_id == user_id)

        if filters.search:
            query = query.where(
                or_(
                    EmailMessage.subject.icontains(filters.search, autoescape=True),
                    EmailMessage.sender.icontains(filters.search, autoescape=True),
                    EmailMessage.sender_name.icontains(filters.search, autoescape=True),
                    EmailMessage.snippet.icontains(filters.search, autoescape=True),
                )
            )
        if filters.sender:
            query = query.where(EmailMessage.sender.icontains(filters.sender, autoescape=True))
        if filters.subject:
            query = query.where(EmailMessage.subject.icontains(filters.subject, autoescape=True))
        if filters.date_from is not None:
            query = query.where(EmailMessage.received_at >= filters.date_from)
        if filters.date_to is not None:
            query = query.where(EmailMessage.received_at <= filters.date_to)
        if filters.is_unread is not None:
            query = query.where(EmailMessage.is_read.is_(not filters.is_unread))
        if filters.has_attachment is not None:
            query = query.where(EmailMessage.has_attachments.is_(filters.has_attachment))

        return query
