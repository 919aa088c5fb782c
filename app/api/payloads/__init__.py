"""
API models package for Pydantic response/request models.
"""

from .common import CamelModel, Envelope, PageRequest, Pagination
from .emails import (
    BulkUpdateData,
    BulkUpdateRequest,
    EmailData,
    EmailListData,
    EmailPayload,
    SearchData,
    SearchFilters,
    SearchRequest,
    StatsData,
    SyncData,
    SyncRequest,
    UpdateEmailRequest,
)
from .error import ErrorResponse
from .users import (
    AccountInfo,
    Activity,
    ActivityData,
    ActivityEmailCounts,
    AuthStatusData,
    AuthUrlData,
    SessionData,
    UpdateProfileRequest,
    UserData,
    UserPayload,
)

__all__ = [
    "AccountInfo",
    "Activity",
    "ActivityData",
    "ActivityEmailCounts",
    "AuthStatusData",
    "AuthUrlData",
    "BulkUpdateData",
    "BulkUpdateRequest",
    "CamelModel",
    "EmailData",
    "EmailListData",
    "EmailPayload",
    "Envelope",
    "ErrorResponse",
    "PageRequest",
    "Pagination",
    "SearchData",
    "SearchFilters",
    "SearchRequest",
    "SessionData",
    "StatsData",
    "SyncData",
    "SyncRequest",
    "UpdateEmailRequest",
    "UpdateProfileRequest",
    "UserData",
    "UserPayload",
]
