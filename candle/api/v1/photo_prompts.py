"""Daily photo prompt endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import Field

from candle.dependencies import get_current_user, get_photo_prompt_service, get_user_partnership
from candle.models.partnership import Partnership
from candle.models.photo_prompt import PhotoPrompt
from candle.schemas.requests import RequestModel
from candle.schemas.responses import ApiResponse
from candle.services.photo_prompts import PhotoPromptService
from candle.utils.exceptions import AuthorizationError

router = APIRouter()


class DailyPromptRequest(RequestModel):
    prompt_text: Optional[str] = Field(default=None, min_length=1, max_length=200)


class UploadPhotoRequest(RequestModel):
    data: str = Field(..., min_length=1, description="Base64-encoded JPEG")


def _owned(photo_prompts: PhotoPromptService, prompt_id: str, partnership: Partnership) -> PhotoPrompt:
    prompt = photo_prompts.get(prompt_id)
    if prompt.partnership_id != partnership.id:
        raise AuthorizationError("This prompt belongs to another partnership")
    return prompt


def _with_status(prompt: PhotoPrompt) -> dict:
    data = prompt.to_dict()
    data["bothUploaded"] = prompt.both_uploaded
    return data


@router.get("/today", response_model=ApiResponse)
async def todays_prompt(
    partnership: Partnership = Depends(get_user_partnership),
    photo_prompts: PhotoPromptService = Depends(get_photo_prompt_service),
) -> ApiResponse:
    return ApiResponse.success_response(_with_status(photo_prompts.get_daily_prompt(partnership.id)))


@router.post("/today", response_model=ApiResponse)
async def create_todays_prompt(
    request: DailyPromptRequest,
    partnership: Partnership = Depends(get_user_partnership),
    photo_prompts: PhotoPromptService = Depends(get_photo_prompt_service),
) -> ApiResponse:
    """Today's prompt, created with custom text if there is none yet."""
    prompt = photo_prompts.get_daily_prompt(partnership.id, request.prompt_text)
    return ApiResponse.success_response(_with_status(prompt))


@router.get("/history", response_model=ApiResponse)
async def prompt_history(
    partnership: Partnership = Depends(get_user_partnership),
    photo_prompts: PhotoPromptService = Depends(get_photo_prompt_service),
) -> ApiResponse:
    return ApiResponse.success_response([_with_status(p) for p in photo_prompts.history(partnership.id)])


@router.get("/{prompt_id}", response_model=ApiResponse)
async def get_prompt(
    prompt_id: str,
    partnership: Partnership = Depends(get_user_partnership),
    photo_prompts: PhotoPromptService = Depends(get_photo_prompt_service),
) -> ApiResponse:
    return ApiResponse.success_response(_with_status(_owned(photo_prompts, prompt_id, partnership)))


@router.post("/{prompt_id}/photo", response_model=ApiResponse)
async def upload_photo(
    prompt_id: str,
    request: UploadPhotoRequest,
    current_user: dict = Depends(get_current_user),
    partnership: Partnership = Depends(get_user_partnership),
    photo_prompts: PhotoPromptService = Depends(get_photo_prompt_service),
) -> ApiResponse:
    _owned(photo_prompts, prompt_id, partnership)
    prompt = photo_prompts.upload_photo(prompt_id, current_user["uid"], request.data)
    return ApiResponse.success_response(_with_status(prompt), "Photo shared")
