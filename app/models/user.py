from datetime import UTC, datetime
from typing import TYPE_CHECKING

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin
from .decorators.types import EncryptedText, UTCDateTime

if TYPE_CHECKING:
    from .email_message import EmailMessage


class User(Base, TimestampMixin):
    """A Google identity bound to a local account, together with its delegated OAuth credentials."""

    __tablename__ = "users"

    google_id: Mapped[str] = mapped_column(sa.String(255), nullable=False, unique=True)
    email: Mapped[str] = mapped_column(sa.String(255), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(sa.String(255), nullable=False, default="")
    picture: Mapped[str | None] = mapped_column(sa.Text, nullable=True)

    access_token: Mapped[str | None] = mapped_column(EncryptedText, nullable=True)
    refresh_token: Mapped[str | None] = mapped_column(EncryptedText, nullable=True)
    token_expiry: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    last_login_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    is_active: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=True, index=True)

    emails: Mapped[list["EmailMessage"]] = relationship(
        "EmailMessage", back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )

    def is_token_expired(self, now: datetime | None = None) -> bool:
        """An access token is expired once ``now`` reaches its expiry; a missing token is always expired."""
        if not self.access_token or self.token_expiry is None:
            return True
        return (now or datetime.now(UTC)) >= self.token_expiry

    def __repr__(self) -> str:
        return f"<User(email='{self.email}', active={self.is_active})>"
