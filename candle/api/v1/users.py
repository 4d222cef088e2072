"""User profile endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import Field

from candle.dependencies import (
    delete_auth_account,
    get_current_user,
    get_notification_settings_service,
    get_privacy_service,
    get_user_service,
)
from candle.schemas.requests import RequestModel
from candle.schemas.responses import ApiResponse
from candle.services.notification_settings import NotificationSettingsService
from candle.services.privacy import PrivacyService
from candle.services.users import UserService

router = APIRouter()


class UpdateProfileRequest(RequestModel):
    """Request model for updating the user profile."""
    name: Optional[str] = Field(default=None, max_length=100)
    avatar: Optional[str] = None
    anniversary_date: Optional[str] = None


class FcmTokenRequest(RequestModel):
    token: str = Field(..., min_length=1)


class NotificationSettingsRequest(RequestModel):
    """Only the fields sent are changed."""
    push_enabled: Optional[bool] = None
    daily_prompt_reminder: Optional[bool] = None
    daily_question_reminder: Optional[bool] = None
    streak_reminder: Optional[bool] = None
    partner_activity_notifications: Optional[bool] = None
    preferred_notification_time: Optional[str] = Field(default=None, pattern=r"^([01]\d|2[0-3]):[0-5]\d$")


@router.get("/me", response_model=ApiResponse)
async def get_profile(
    current_user: dict = Depends(get_current_user),
    users: UserService = Depends(get_user_service),
) -> ApiResponse:
    """Current user's profile, created on first access for Firebase accounts."""
    user = users.get_or_create(current_user["uid"], current_user.get("email", ""), current_user.get("name", ""))
    return ApiResponse.success_response(user, "User profile retrieved successfully")


@router.put("/me", response_model=ApiResponse)
async def update_profile(
    request: UpdateProfileRequest,
    current_user: dict = Depends(get_current_user),
    users: UserService = Depends(get_user_service),
) -> ApiResponse:
    user = users.update(current_user["uid"], {
        "name": request.name,
        "avatar": request.avatar,
        "anniversaryDate": request.anniversary_date,
    })
    return ApiResponse.success_response(user, "Profile updated successfully")


@router.put("/me/fcm-token", response_model=ApiResponse)
async def register_fcm_token(
    request: FcmTokenRequest,
    current_user: dict = Depends(get_current_user),
    users: UserService = Depends(get_user_service),
) -> ApiResponse:
    """Register the device token used for push notifications."""
    users.register_fcm_token(current_user["uid"], request.token)
    return ApiResponse.success_response(None, "FCM token registered")


@router.get("/me/notification-settings", response_model=ApiResponse)
async def get_notification_settings(
    current_user: dict = Depends(get_current_user),
    settings: NotificationSettingsService = Depends(get_notification_settings_service),
) -> ApiResponse:
    return ApiResponse.success_response(settings.get(current_user["uid"]))


@router.put("/me/notification-settings", response_model=ApiResponse)
async def update_notification_settings(
    request: NotificationSettingsRequest,
    current_user: dict = Depends(get_current_user),
    settings: NotificationSettingsService = Depends(get_notification_settings_service),
) -> ApiResponse:
    changes = request.model_dump(by_alias=True, exclude_none=True)
    updated = settings.update(current_user["uid"], changes)
    return ApiResponse.success_response(updated, "Notification settings updated")


@router.get("/me/export", response_model=ApiResponse)
async def export_my_data(
    current_user: dict = Depends(get_current_user),
    privacy: PrivacyService = Depends(get_privacy_service),
) -> ApiResponse:
    """Everything stored about the caller, as JSON."""
    return ApiResponse.success_response(privacy.export_user_data(current_user["uid"]), "Data export ready")


@router.delete("/me", response_model=ApiResponse)
async def delete_account(
    current_user: dict = Depends(get_current_user),
    privacy: PrivacyService = Depends(get_privacy_service),
) -> ApiResponse:
    """Delete the caller's data and sign-in account. Partnerships are paused."""
    privacy.delete_account(current_user["uid"])
    delete_auth_account(current_user["uid"])
    return ApiResponse.success_response(None, "Account deleted")
