"""Countdown endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, status
from pydantic import Field

from candle.dependencies import get_countdown_service, get_current_user, get_user_partnership
from candle.models.countdown import Countdown
from candle.models.partnership import Partnership
from candle.schemas.requests import RequestModel
from candle.schemas.responses import ApiResponse
from candle.services.countdowns import CountdownService
from candle.utils.exceptions import AuthorizationError

router = APIRouter()


class CreateCountdownRequest(RequestModel):
    title: str = Field(..., min_length=1, max_length=100)
    target_date: str
    description: Optional[str] = Field(default=None, max_length=500)


class UpdateCountdownRequest(RequestModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=100)
    target_date: Optional[str] = None
    description: Optional[str] = Field(default=None, max_length=500)


def _owned(countdowns: CountdownService, countdown_id: str, partnership: Partnership) -> Countdown:
    countdown = countdowns.get(countdown_id)
    if countdown.partnership_id != partnership.id:
        raise AuthorizationError("This countdown belongs to another partnership")
    return countdown


@router.post("", response_model=ApiResponse, status_code=status.HTTP_201_CREATED)
async def create_countdown(
    request: CreateCountdownRequest,
    current_user: dict = Depends(get_current_user),
    partnership: Partnership = Depends(get_user_partnership),
    countdowns: CountdownService = Depends(get_countdown_service),
) -> ApiResponse:
    countdown = countdowns.create(
        partnership.id, current_user["uid"], request.title, request.target_date, request.description
    )
    return ApiResponse.success_response(countdown, "Countdown created")


@router.get("", response_model=ApiResponse)
async def list_countdowns(
    partnership: Partnership = Depends(get_user_partnership),
    countdowns: CountdownService = Depends(get_countdown_service),
) -> ApiResponse:
    return ApiResponse.success_response(countdowns.list(partnership.id))


@router.put("/{countdown_id}", response_model=ApiResponse)
async def update_countdown(
    countdown_id: str,
    request: UpdateCountdownRequest,
    partnership: Partnership = Depends(get_user_partnership),
    countdowns: CountdownService = Depends(get_countdown_service),
) -> ApiResponse:
    _owned(countdowns, countdown_id, partnership)
    updates = request.model_dump(by_alias=True, exclude_none=True)
    return ApiResponse.success_response(countdowns.update(countdown_id, updates), "Countdown updated")


@router.delete("/{countdown_id}", response_model=ApiResponse)
async def delete_countdown(
    countdown_id: str,
    partnership: Partnership = Depends(get_user_partnership),
    countdowns: CountdownService = Depends(get_countdown_service),
) -> ApiResponse:
    _owned(countdowns, countdown_id, partnership)
    countdowns.delete(countdown_id)
    return ApiResponse.success_response(None, "Countdown deleted")
