from datetime import datetime

from app.api.payloads.common import CamelModel
from app.models import User


class UserPayload(CamelModel):
    id: int
    email: str
    name: str
    picture: str | None = None
    last_login_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_model(cls, user: User) -> "UserPayload":
        return cls(
            id=user.id,
            email=user.email,
            name=user.name,
            picture=user.picture,
            last_login_at=user.last_login_at,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


class UserData(CamelModel):
    user: UserPayload


class UpdateProfileRequest(CamelModel):
    name: str | None = None
    picture: str | None = None


class AuthUrlData(CamelModel):
    auth_url: str


class SessionData(CamelModel):
    token: str
    user: UserPayload


class AuthStatusData(CamelModel):
    authenticated: bool
    user: UserPayload | None = None


class ActivityEmailCounts(CamelModel):
    today: int
    this_week: int
    this_month: int
    total: int
    unread: int
    starred: int


class AccountInfo(CamelModel):
    last_login: datetime | None = None
    member_since: datetime | None = None


class Activity(CamelModel):
    email_counts: ActivityEmailCounts
    account_info: AccountInfo


class ActivityData(CamelModel):
    activity: Activity
