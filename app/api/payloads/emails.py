"""
Pydantic models for email endpoints.
"""

from datetime import datetime

from pydantic import Field

from app.api.payloads.common import CamelModel, PageRequest, Pagination
from app.models import EmailMessage, EmailPriority
from settings import settings


class EmailPayload(CamelModel):
    id: int
    gmail_message_id: str
    message_id: str | None = None
    thread_id: str | None = None
    subject: str
    sender: str
    sender_name: str
    recipients: list[str]
    snippet: str
    body_preview: str
    received_date: datetime
    is_read: bool
    is_starred: bool
    has_attachments: bool
    priority: EmailPriority
    labels: list[str]
    size: int
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_model(cls, email: EmailMessage) -> "EmailPayload":
        return cls(
            id=email.id,
            gmail_message_id=email.remote_id,
            message_id=email.message_id_header,
            thread_id=email.thread_id,
            subject=email.subject,
            sender=email.sender,
            sender_name=email.sender_name,
            recipients=list(email.recipients or []),
            snippet=email.snippet,
            body_preview=email.body_preview,
            received_date=email.received_at,
            is_read=email.is_read,
            is_starred=email.is_starred,
            has_attachments=email.has_attachments,
            priority=email.priority,
            labels=list(email.labels or []),
            size=email.size_estimate,
            created_at=email.created_at,
            updated_at=email.updated_at,
        )


class EmailData(CamelModel):
    email: EmailPayload


class EmailListData(CamelModel):
    emails: list[EmailPayload]
    pagination: Pagination


class UpdateEmailRequest(CamelModel):
    is_read: bool | None = None
    is_starred: bool | None = None
    priority: EmailPriority | None = None


class BulkUpdateRequest(CamelModel):
    email_ids: list[int] = Field(..., min_length=1)
    action: str = Field(..., description="isRead or isStarred")
    value: bool


class BulkUpdateData(CamelModel):
    updated_count: int
    action: str
    value: bool


class SyncRequest(CamelModel):
    max_results: int = Field(settings.sync.default_page_size, ge=1, le=settings.sync.max_page_size)
    page_token: str | None = None
    query: str = ""
    label_ids: list[str] | None = None


class SyncData(CamelModel):
    emails: list[EmailPayload]
    synced_count: int
    failed_count: int
    next_page_token: str | None = None
    result_size_estimate: int = 0


class SearchFilters(CamelModel):
    sender: str = ""
    subject: str = ""
    date_from: datetime | None = None
    date_to: datetime | None = None
    has_attachment: bool | None = None
    is_unread: bool | None = None


class SearchRequest(CamelModel):
    query: str = ""
    filters: SearchFilters = Field(default_factory=SearchFilters)
    pagination: PageRequest = Field(default_factory=PageRequest)


class SearchData(CamelModel):
    emails: list[EmailPayload]
    pagination: Pagination
    query: str
    remote_query: str
    remote_sync_triggered: bool
    synced_count: int
    remote_error: str | None = None


class StatsData(CamelModel):
    total: int
    unread: int
    starred: int
    today: int
