from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import delete

from app.models import EmailMessage, User
from app.repos.base import BaseRepo


@dataclass(frozen=True)
class StoredCredentials:
    """OAuth credential fields of a user, exactly as they will be replayed to Google."""

    access_token: str | None
    refresh_token: str | None
    expires_at: datetime | None


class UserRepo(BaseRepo[User]):
    """Repository for users; doubles as the credential store for their Google tokens."""

    def __init__(self) -> None:
        super().__init__(User)

    async def get_by_google_id(self, google_id: str) -> User | None:
        result = await self.execute(self.base_stmt.where(User.google_id == google_id))
        return result.one_or_none()

    async def get_by_email(self, email: str) -> User | None:
        result = await self.execute(self.base_stmt.where(User.email == email))
        return result.one_or_none()

    async def get_active(self, user_id: int) -> User | None:
        result = await self.execute(self.base_stmt.where(User.id == user_id, User.is_active.is_(True)))
        return result.one_or_none()

    async def get_all_active(self) -> list[User]:
        result = await self.execute(self.base_stmt.where(User.is_active.is_(True)).order_by(User.id))
        return list(result.all())

    async def get_credentials(self, user_id: int) -> StoredCredentials | None:
        user = await self.get(user_id)
        if user is None:
            return None
        return StoredCredentials(
            access_token=user.access_token, refresh_token=user.refresh_token, expires_at=user.token_expiry
        )

    async def put_credentials(self, user: User, credentials: StoredCredentials) -> User:
        """Store credentials as given. A missing refresh token keeps the one already on file."""
        user.access_token = credentials.access_token
        user.token_expiry = credentials.expires_at
        if credentials.refresh_token:
            user.refresh_token = credentials.refresh_token
        await self.flush()
        return user

    async def clear_credentials(self, user: User) -> User:
        user.access_token = None
        user.refresh_token = None
        user.token_expiry = None
        await self.flush()
        return user

    async def deactivate(self, user: User) -> User:
        """Soft delete: tombstone the user and drop its credentials. Messages are kept."""
        user.is_active = False
        return await self.clear_credentials(user)

    async def hard_delete(self, user: User) -> int:
        """Delete the user and every message it owns. Returns the number of messages removed."""
        result = await self._db.session.execute(delete(EmailMessage).where(EmailMessage.user_id == user.id))
        await self.delete(user)
        await self.flush()
        return int(result.rowcount or 0)
