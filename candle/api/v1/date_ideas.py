"""Date idea endpoints: browse, swipe, matches."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from candle.dependencies import get_current_user, get_date_idea_service, get_user_partnership
from candle.models.date_idea import GeoPoint, MatchStatus, SwipeDirection
from candle.models.partnership import Partnership
from candle.schemas.requests import RequestModel
from candle.schemas.responses import ApiResponse
from candle.services.date_ideas import DateIdeaService
from candle.utils.exceptions import AuthorizationError

router = APIRouter()


class SwipeRequest(RequestModel):
    direction: SwipeDirection


class UpdateMatchRequest(RequestModel):
    status: MatchStatus
    notes: Optional[str] = None


@router.get("", response_model=ApiResponse)
async def list_date_ideas(
    latitude: Optional[float] = Query(default=None, ge=-90, le=90),
    longitude: Optional[float] = Query(default=None, ge=-180, le=180),
    category: Optional[str] = None,
    radius_km: float = Query(default=50, gt=0, alias="radiusKm"),
    limit: int = Query(default=20, ge=1, le=100),
    current_user: dict = Depends(get_current_user),
    date_ideas: DateIdeaService = Depends(get_date_idea_service),
) -> ApiResponse:
    """Ideas near a location when both coordinates are given."""
    location = None
    if latitude is not None and longitude is not None:
        location = GeoPoint(latitude=latitude, longitude=longitude)
    return ApiResponse.success_response(date_ideas.fetch(location, category, radius_km, limit))


@router.get("/matches", response_model=ApiResponse)
async def list_matches(
    partnership: Partnership = Depends(get_user_partnership),
    date_ideas: DateIdeaService = Depends(get_date_idea_service),
) -> ApiResponse:
    return ApiResponse.success_response(date_ideas.get_matches(partnership.id))


@router.put("/matches/{match_id}", response_model=ApiResponse)
async def update_match(
    match_id: str,
    request: UpdateMatchRequest,
    partnership: Partnership = Depends(get_user_partnership),
    date_ideas: DateIdeaService = Depends(get_date_idea_service),
) -> ApiResponse:
    if date_ideas.get_match(match_id).partnership_id != partnership.id:
        raise AuthorizationError("This match belongs to another partnership")
    return ApiResponse.success_response(date_ideas.update_match_status(match_id, request.status, request.notes))


@router.get("/swipes", response_model=ApiResponse)
async def my_swipes(
    current_user: dict = Depends(get_current_user),
    partnership: Partnership = Depends(get_user_partnership),
    date_ideas: DateIdeaService = Depends(get_date_idea_service),
) -> ApiResponse:
    return ApiResponse.success_response(date_ideas.get_user_swipes(partnership.id, current_user["uid"]))


@router.get("/{date_idea_id}", response_model=ApiResponse)
async def get_date_idea(
    date_idea_id: str,
    current_user: dict = Depends(get_current_user),
    date_ideas: DateIdeaService = Depends(get_date_idea_service),
) -> ApiResponse:
    idea = date_ideas.get(date_idea_id)
    if idea is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Date idea not found")
    return ApiResponse.success_response(idea)


@router.post("/{date_idea_id}/swipe", response_model=ApiResponse)
async def swipe(
    date_idea_id: str,
    request: SwipeRequest,
    current_user: dict = Depends(get_current_user),
    partnership: Partnership = Depends(get_user_partnership),
    date_ideas: DateIdeaService = Depends(get_date_idea_service),
) -> ApiResponse:
    if date_ideas.get(date_idea_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Date idea not found")
    result = date_ideas.swipe(partnership.id, current_user["uid"], date_idea_id, request.direction)
    return ApiResponse.success_response(result, "It's a match!" if result["matched"] else "Swipe recorded")
