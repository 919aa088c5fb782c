import logging
from typing import Any

from app.exceptions import EntityNotFoundError, InvalidDataError
from app.models import EmailMessage, EmailPriority, User
from app.repos.email_message import SORTABLE_COLUMNS, EmailFilters, EmailMessageRepo

# Flags a user may change directly, outside of sync.
BULK_ACTIONS = {"isRead": "is_read", "isStarred": "is_starred"}


class EmailController:
    """Controller for reading and flagging mirrored messages. Never touches Google."""

    def __init__(self, email_message_repo: EmailMessageRepo):
        self._logger = logging.getLogger(__name__)
        self._email_message_repo = email_message_repo

    async def list_emails(
        self,
        user: User,
        filters: EmailFilters,
        page: int = 1,
        limit: int = 20,
        sort: str = "receivedDate",
        order: str = "DESC",
    ) -> tuple[list[EmailMessage], int]:
        if page < 1 or limit < 1:
            raise InvalidDataError("Page and limit must be positive integers")
        if sort not in SORTABLE_COLUMNS:
            raise InvalidDataError(f"Cannot sort by '{sort}'; expected one of {', '.join(SORTABLE_COLUMNS)}")

        return await self._email_message_repo.find_for_user(
            user.id, filters, limit=limit, offset=(page - 1) * limit, sort=sort, descending=order.upper() != "ASC"
        )

    async def get_email(self, user: User, email_id: int) -> EmailMessage:
        email = await self._email_message_repo.get_for_user(user.id, email_id)
        if email is None:
            raise EntityNotFoundError("Email not found", user_id=user.id)
        return email

    async def update_email(
        self,
        user: User,
        email_id: int,
        is_read: bool | None = None,
        is_starred: bool | None = None,
        priority: EmailPriority | None = None,
    ) -> EmailMessage:
        email = await self.get_email(user, email_id)

        values: dict[str, Any] = {}
        if is_read is not None:
            values["is_read"] = is_read
        if is_starred is not None:
            values["is_starred"] = is_starred
        if priority is not None:
            values["priority"] = priority
        if not values:
            raise InvalidDataError("Nothing to update; provide isRead, isStarred or priority")

        self._logger.info(f"Updating email flags; user_id: {user.id}, email_id: {email_id}, fields: {list(values)}")
        return await self._email_message_repo.update(email, values)

    async def bulk_update(self, user: User, email_ids: list[int], action: str, value: bool) -> int:
        column = BULK_ACTIONS.get(action)
        if column is None:
            raise InvalidDataError(f"Invalid action '{action}'; expected isRead or isStarred")
        if not email_ids:
            raise InvalidDataError("Email IDs array is required")

        updated = await self._email_message_repo.bulk_update(user.id, email_ids, {column: value})
        self._logger.info(f"Bulk updated emails; user_id: {user.id}, action: {action}, updated: {updated}")
        return updated
