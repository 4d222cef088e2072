"""Partnership endpoints: invites, pairing, and per-couple settings."""

from typing import Optional

from fastapi import APIRouter, Depends, status
from pydantic import Field

from candle.dependencies import get_current_user, get_partnership_service
from candle.models.partnership import PartnershipStatus
from candle.schemas.requests import RequestModel
from candle.schemas.responses import ApiResponse
from candle.services.partnerships import PartnershipService

router = APIRouter()


class AcceptInviteRequest(RequestModel):
    invite_code: str = Field(..., pattern=r"^\d{6}$")


class UpdatePartnershipRequest(RequestModel):
    anniversary_date: Optional[str] = None
    status: Optional[PartnershipStatus] = None


class TypingRequest(RequestModel):
    is_typing: bool


class SkipQuestionRequest(RequestModel):
    question_id: str


@router.post("", response_model=ApiResponse, status_code=status.HTTP_201_CREATED)
async def create_partnership(
    current_user: dict = Depends(get_current_user),
    partnerships: PartnershipService = Depends(get_partnership_service),
) -> ApiResponse:
    """Start a pending partnership and get an invite code to share."""
    partnership = partnerships.create(current_user["uid"])
    return ApiResponse.success_response(partnership, "Invite code created")


@router.post("/accept", response_model=ApiResponse)
async def accept_invite(
    request: AcceptInviteRequest,
    current_user: dict = Depends(get_current_user),
    partnerships: PartnershipService = Depends(get_partnership_service),
) -> ApiResponse:
    partnership = partnerships.accept_invite(request.invite_code, current_user["uid"])
    return ApiResponse.success_response(partnership, "You're now connected")


@router.get("/me", response_model=ApiResponse)
async def get_my_partnership(
    current_user: dict = Depends(get_current_user),
    partnerships: PartnershipService = Depends(get_partnership_service),
) -> ApiResponse:
    """The caller's partnership, or null data when they have none yet."""
    return ApiResponse.success_response(partnerships.get_for_user(current_user["uid"]))


@router.get("/{partnership_id}", response_model=ApiResponse)
async def get_partnership(
    partnership_id: str,
    current_user: dict = Depends(get_current_user),
    partnerships: PartnershipService = Depends(get_partnership_service),
) -> ApiResponse:
    return ApiResponse.success_response(partnerships.require_member(partnership_id, current_user["uid"]))


@router.put("/{partnership_id}", response_model=ApiResponse)
async def update_partnership(
    partnership_id: str,
    request: UpdatePartnershipRequest,
    current_user: dict = Depends(get_current_user),
    partnerships: PartnershipService = Depends(get_partnership_service),
) -> ApiResponse:
    partnerships.require_member(partnership_id, current_user["uid"])
    updates = request.model_dump(by_alias=True, exclude_none=True, mode="json")
    partnership = partnerships.update(partnership_id, updates)
    return ApiResponse.success_response(partnership, "Partnership updated")


@router.put("/{partnership_id}/typing", response_model=ApiResponse)
async def set_typing(
    partnership_id: str,
    request: TypingRequest,
    current_user: dict = Depends(get_current_user),
    partnerships: PartnershipService = Depends(get_partnership_service),
) -> ApiResponse:
    partnerships.require_member(partnership_id, current_user["uid"])
    partnership = partnerships.set_typing(partnership_id, current_user["uid"], request.is_typing)
    return ApiResponse.success_response({"typingUsers": partnership.typing_users})


@router.post("/{partnership_id}/skip-question", response_model=ApiResponse)
async def skip_question(
    partnership_id: str,
    request: SkipQuestionRequest,
    current_user: dict = Depends(get_current_user),
    partnerships: PartnershipService = Depends(get_partnership_service),
) -> ApiResponse:
    partnerships.require_member(partnership_id, current_user["uid"])
    partnership = partnerships.skip_question(partnership_id, request.question_id)
    return ApiResponse.success_response({"skippedQuestionIds": partnership.skipped_question_ids})


@router.post("/{partnership_id}/unpair", response_model=ApiResponse)
async def unpair(
    partnership_id: str,
    current_user: dict = Depends(get_current_user),
    partnerships: PartnershipService = Depends(get_partnership_service),
) -> ApiResponse:
    """Pause the partnership; either member may start a new one afterwards."""
    partnerships.require_member(partnership_id, current_user["uid"])
    return ApiResponse.success_response(partnerships.unpair(partnership_id), "Partnership paused")
