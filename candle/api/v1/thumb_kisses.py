"""Thumb Kiss endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends

from candle.dependencies import check_tap_rate_limit, get_thumb_kiss_service, get_user_partnership
from candle.models.partnership import Partnership
from candle.schemas.requests import RequestModel
from candle.schemas.responses import ApiResponse
from candle.services.thumb_kisses import ThumbKissService

router = APIRouter()


class TapRequest(RequestModel):
    client_timestamp: Optional[str] = None


@router.post("/tap", response_model=ApiResponse)
async def tap(
    request: TapRequest,
    current_user: dict = Depends(check_tap_rate_limit),
    partnership: Partnership = Depends(get_user_partnership),
    thumb_kisses: ThumbKissService = Depends(get_thumb_kiss_service),
) -> ApiResponse:
    """Record a tap; ``synced`` tells the client to fire haptics."""
    partner_id = partnership.partner_of(current_user["uid"]) or ""
    result = thumb_kisses.record_tap(
        partnership.id,
        current_user["uid"],
        partner_id,
        client_timestamp=request.client_timestamp,
    )
    thumb_kisses.cleanup_old_taps(partnership.id)
    return ApiResponse.success_response(result, "Thumb kiss!" if result["synced"] else "Tap recorded")


@router.get("/partner-latest", response_model=ApiResponse)
async def partner_latest_tap(
    current_user: dict = Depends(check_tap_rate_limit),
    partnership: Partnership = Depends(get_user_partnership),
    thumb_kisses: ThumbKissService = Depends(get_thumb_kiss_service),
) -> ApiResponse:
    """Partner's newest tap; ``pairedWith`` is set once it formed a thumb kiss."""
    partner_id = partnership.partner_of(current_user["uid"])
    latest = thumb_kisses.latest_partner_tap(partnership.id, partner_id) if partner_id else None
    return ApiResponse.success_response(latest)
