from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends

from app.api.middlewares.authentication import get_current_user
from app.api.payloads import (
    AccountInfo,
    Activity,
    ActivityData,
    ActivityEmailCounts,
    Envelope,
    ErrorResponse,
    UpdateProfileRequest,
    UserData,
    UserPayload,
)
from app.container import ApplicationContainer
from app.controllers.email.sync_controller import SyncController
from app.controllers.user.user_controller import UserController
from app.models import User

router = APIRouter()


@router.get("/profile", response_model=Envelope[UserData], summary="Get the signed-in user's profile")
async def get_profile(user: User = Depends(get_current_user)) -> Envelope[UserData]:
    return Envelope(message="User profile retrieved successfully", data=UserData(user=UserPayload.from_model(user)))


@router.put(
    "/profile",
    response_model=Envelope[UserData],
    responses={400: {"model": ErrorResponse, "description": "Invalid profile fields"}},
    summary="Update display name or avatar",
)
@inject
async def update_profile(
    request: UpdateProfileRequest,
    user: User = Depends(get_current_user),
    user_controller: UserController = Depends(Provide[ApplicationContainer.controllers.user_controller]),
) -> Envelope[UserData]:
    user = await user_controller.update_profile(user, name=request.name, picture=request.picture)
    return Envelope(message="Profile updated successfully", data=UserData(user=UserPayload.from_model(user)))


@router.get("/activity", response_model=Envelope[ActivityData], summary="Email counts and account dates")
@inject
async def get_activity(
    user: User = Depends(get_current_user),
    sync_controller: SyncController = Depends(Provide[ApplicationContainer.controllers.sync_controller]),
) -> Envelope[ActivityData]:
    counts = await sync_controller.get_stats(user)
    activity = Activity(
        email_counts=ActivityEmailCounts(
            today=counts.today,
            this_week=counts.this_week,
            this_month=counts.this_month,
            total=counts.total,
            unread=counts.unread,
            starred=counts.starred,
        ),
        account_info=AccountInfo(last_login=user.last_login_at, member_since=user.created_at),
    )
    return Envelope(message="User activity retrieved successfully", data=ActivityData(activity=activity))
