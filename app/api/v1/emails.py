"""
Emails router - Mirrored Gmail metadata: listing, flags, sync, search and stats.
"""

import logging
from datetime import datetime
from typing import Literal

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends, Path, Query

from app.api.middlewares.authentication import get_current_user
from app.api.payloads import (
    BulkUpdateData,
    BulkUpdateRequest,
    EmailData,
    EmailListData,
    EmailPayload,
    Envelope,
    ErrorResponse,
    Pagination,
    SearchData,
    SearchRequest,
    StatsData,
    SyncData,
    SyncRequest,
    UpdateEmailRequest,
)
from app.container import ApplicationContainer
from app.controllers.email.email_controller import EmailController
from app.controllers.email.sync_controller import SyncController
from app.models import User
from app.repos.email_message import EmailFilters
from settings import settings

logger = logging.getLogger(__name__)
router = APIRouter()

REMOTE_ERRORS = {
    401: {"model": ErrorResponse, "description": "Re-authentication required (requiresAuth is true)"},
    403: {"model": ErrorResponse, "description": "Gmail access forbidden"},
    429: {"model": ErrorResponse, "description": "Gmail rate limit exceeded"},
    502: {"model": ErrorResponse, "description": "Gmail request failed"},
    503: {"model": ErrorResponse, "description": "Token refresh failed, retry later"},
}


@router.get(
    "",
    response_model=Envelope[EmailListData],
    responses={400: {"model": ErrorResponse, "description": "Invalid parameter"}},
    summary="List mirrored emails",
)
@router.get("/", response_model=Envelope[EmailListData], include_in_schema=False)
@inject
async def list_emails(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.sync.default_page_size, ge=1, le=settings.sync.max_page_size),
    search: str = Query("", description="Substring over subject, sender, sender name and snippet"),
    sender: str = Query(""),
    subject: str = Query(""),
    date_from: datetime | None = Query(None, alias="dateFrom"),
    date_to: datetime | None = Query(None, alias="dateTo"),
    is_unread: bool | None = Query(None, alias="isUnread"),
    has_attachment: bool | None = Query(None, alias="hasAttachment"),
    sort: Literal["receivedDate", "subject", "sender"] = Query("receivedDate"),
    order: Literal["ASC", "DESC", "asc", "desc"] = Query("DESC"),
    user: User = Depends(get_current_user),
    email_controller: EmailController = Depends(Provide[ApplicationContainer.controllers.email_controller]),
) -> Envelope[EmailListData]:
    filters = EmailFilters(
        search=search,
        sender=sender,
        subject=subject,
        date_from=date_from,
        date_to=date_to,
        is_unread=is_unread,
        has_attachment=has_attachment,
    )
    emails, total = await email_controller.list_emails(user, filters, page=page, limit=limit, sort=sort, order=order)
    return Envelope(
        message="Emails retrieved successfully",
        data=EmailListData(
            emails=[EmailPayload.from_model(email) for email in emails],
            pagination=Pagination.build(page, limit, total),
        ),
    )


@router.post("/sync", response_model=Envelope[SyncData], responses=REMOTE_ERRORS, summary="Sync from Gmail")
@inject
async def sync_emails(
    request: SyncRequest | None = None,
    user: User = Depends(get_current_user),
    sync_controller: SyncController = Depends(Provide[ApplicationContainer.controllers.sync_controller]),
) -> Envelope[SyncData]:
    request = request or SyncRequest()
    result = await sync_controller.sync(
        user,
        max_results=request.max_results,
        page_token=request.page_token,
        query=request.query,
        label_ids=request.label_ids,
    )
    return Envelope(
        message=f"Synced {result.synced_count} emails",
        data=SyncData(
            emails=[EmailPayload.from_model(email) for email in result.emails],
            synced_count=result.synced_count,
            failed_count=result.failed_count,
            next_page_token=result.next_page_token,
            result_size_estimate=result.result_size_estimate,
        ),
    )


@router.post("/search", response_model=Envelope[SearchData], responses=REMOTE_ERRORS, summary="Search emails")
@inject
async def search_emails(
    request: SearchRequest,
    user: User = Depends(get_current_user),
    sync_controller: SyncController = Depends(Provide[ApplicationContainer.controllers.sync_controller]),
) -> Envelope[SearchData]:
    """
    Searches the local mirror; when it holds less than one page of matches, Gmail is queried and the
    mirror refreshed first. ``remoteSyncTriggered`` and ``syncedCount`` report that write.
    """
    filters = EmailFilters(
        sender=request.filters.sender,
        subject=request.filters.subject,
        date_from=request.filters.date_from,
        date_to=request.filters.date_to,
        is_unread=request.filters.is_unread,
        has_attachment=request.filters.has_attachment,
    )
    page, limit = request.pagination.page, request.pagination.limit
    result = await sync_controller.search(user, request.query, filters, page=page, limit=limit)
    return Envelope(
        message="Search completed successfully",
        data=SearchData(
            emails=[EmailPayload.from_model(email) for email in result.emails],
            pagination=Pagination.build(page, limit, result.total),
            query=request.query,
            remote_query=result.remote_query,
            remote_sync_triggered=result.remote_sync_triggered,
            synced_count=result.synced_count,
            remote_error=result.remote_error,
        ),
    )


@router.get("/stats/overview", response_model=Envelope[StatsData], summary="Email statistics")
@inject
async def email_stats(
    user: User = Depends(get_current_user),
    sync_controller: SyncController = Depends(Provide[ApplicationContainer.controllers.sync_controller]),
) -> Envelope[StatsData]:
    counts = await sync_controller.get_stats(user)
    return Envelope(
        message="Email statistics retrieved successfully",
        data=StatsData(total=counts.total, unread=counts.unread, starred=counts.starred, today=counts.today),
    )


@router.put(
    "/bulk",
    response_model=Envelope[BulkUpdateData],
    responses={400: {"model": ErrorResponse, "description": "Invalid action or email ids"}},
    summary="Bulk update read or starred flags",
)
@inject
async def bulk_update_emails(
    request: BulkUpdateRequest,
    user: User = Depends(get_current_user),
    email_controller: EmailController = Depends(Provide[ApplicationContainer.controllers.email_controller]),
) -> Envelope[BulkUpdateData]:
    updated = await email_controller.bulk_update(user, request.email_ids, request.action, request.value)
    return Envelope(
        message=f"{updated} emails updated successfully",
        data=BulkUpdateData(updated_count=updated, action=request.action, value=request.value),
    )


@router.get(
    "/{email_id}",
    response_model=Envelope[EmailData],
    responses={404: {"model": ErrorResponse, "description": "Email not found"}},
    summary="Get a mirrored email",
)
@inject
async def get_email(
    email_id: int = Path(..., ge=1),
    user: User = Depends(get_current_user),
    email_controller: EmailController = Depends(Provide[ApplicationContainer.controllers.email_controller]),
) -> Envelope[EmailData]:
    email = await email_controller.get_email(user, email_id)
    return Envelope(message="Email retrieved successfully", data=EmailData(email=EmailPayload.from_model(email)))


@router.put(
    "/{email_id}",
    response_model=Envelope[EmailData],
    responses={
        400: {"model": ErrorResponse, "description": "Nothing to update"},
        404: {"model": ErrorResponse, "description": "Email not found"},
    },
    summary="Update read, starred or priority flags",
)
@inject
async def update_email(
    request: UpdateEmailRequest,
    email_id: int = Path(..., ge=1),
    user: User = Depends(get_current_user),
    email_controller: EmailController = Depends(Provide[ApplicationContainer.controllers.email_controller]),
) -> Envelope[EmailData]:
    email = await email_controller.update_email(
        user, email_id, is_read=request.is_read, is_starred=request.is_starred, priority=request.priority
    )
    return Envelope(message="Email updated successfully", data=EmailData(email=EmailPayload.from_model(email)))
