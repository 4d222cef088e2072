"""Streak endpoints for the caller's partnership."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status

from candle.dependencies import get_streak_service, get_user_partnership
from candle.models.partnership import Partnership
from candle.schemas.requests import RequestModel
from candle.schemas.responses import ApiResponse
from candle.services.streaks import StreakService, check_milestone

router = APIRouter()


class RecordActivityRequest(RequestModel):
    question_id: Optional[str] = None


@router.get("/status", response_model=ApiResponse)
async def get_streak_status(
    partnership: Partnership = Depends(get_user_partnership),
    streaks: StreakService = Depends(get_streak_service),
) -> ApiResponse:
    """Check the streak, resetting it if the activity window has lapsed."""
    streak_status = streaks.check_status(partnership.id)
    fresh = streaks.partnerships.get_or_raise(partnership.id)
    return ApiResponse.success_response({
        **streak_status.to_dict(),
        "streakCount": fresh.streak_count,
        "streakRestoreAvailable": fresh.streak_restore_available and not fresh.streak_restore_used,
        "previousStreakCount": fresh.previous_streak_count,
    })


@router.post("/activity", response_model=ApiResponse)
async def record_activity(
    request: RecordActivityRequest,
    partnership: Partnership = Depends(get_user_partnership),
    streaks: StreakService = Depends(get_streak_service),
) -> ApiResponse:
    result = streaks.record_activity(partnership.id, request.question_id)
    return ApiResponse.success_response(result)


@router.post("/restore", response_model=ApiResponse)
async def restore_streak(
    partnership: Partnership = Depends(get_user_partnership),
    streaks: StreakService = Depends(get_streak_service),
) -> ApiResponse:
    result = streaks.restore(partnership.id)
    if not result["success"]:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=result["message"])
    return ApiResponse.success_response(result, result["message"])


@router.get("/time-remaining", response_model=ApiResponse)
async def get_time_remaining(
    partnership: Partnership = Depends(get_user_partnership),
    streaks: StreakService = Depends(get_streak_service),
) -> ApiResponse:
    return ApiResponse.success_response({"timeRemaining": streaks.time_remaining(partnership.id)})


@router.get("/milestones/{streak_count}", response_model=ApiResponse)
async def get_milestone(streak_count: int) -> ApiResponse:
    return ApiResponse.success_response(check_milestone(streak_count).to_dict())
