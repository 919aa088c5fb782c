from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.schema import UniqueConstraint

from .base import Base, TimestampMixin
from .decorators.types import EnumStringType, UTCDateTime

if TYPE_CHECKING:
    from .user import User


class EmailPriority(Enum):
    high = "high"
    medium = "medium"
    low = "low"


class EmailMessage(Base, TimestampMixin):
    """Normalized metadata of one Gmail message, mirrored for a single user."""

    __tablename__ = "email_messages"

    user_id: Mapped[int] = mapped_column(
        sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    remote_id: Mapped[str] = mapped_column(sa.String(255), nullable=False, comment="Gmail message id")
    message_id_header: Mapped[str | None] = mapped_column(sa.String(998), nullable=True)
    thread_id: Mapped[str | None] = mapped_column(sa.String(255), nullable=True, index=True)

    subject: Mapped[str] = mapped_column(sa.Text, nullable=False, default="")
    sender: Mapped[str] = mapped_column(sa.String(255), nullable=False, default="", index=True)
    sender_name: Mapped[str] = mapped_column(sa.String(255), nullable=False, default="")
    recipients: Mapped[list[str]] = mapped_column(sa.JSON, nullable=False, default=list)
    snippet: Mapped[str] = mapped_column(sa.Text, nullable=False, default="")
    body_preview: Mapped[str] = mapped_column(sa.Text, nullable=False, default="")
    received_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, index=True)

    is_read: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False, index=True)
    is_starred: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False, index=True)
    has_attachments: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False)
    priority: Mapped[EmailPriority] = mapped_column(
        EnumStringType(EmailPriority), nullable=False, default=EmailPriority.medium, index=True
    )
    labels: Mapped[list[str]] = mapped_column(sa.JSON, nullable=False, default=list)
    size_estimate: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)

    user: Mapped["User"] = relationship("User", back_populates="emails")

    __table_args__ = (UniqueConstraint("user_id", "remote_id", name="uq_email_messages_user_remote"),)

    def __repr__(self) -> str:
        return f"<EmailMessage(user='{self.user_id}', remote_id='{self.remote_id}')>"
