"""Game endpoints: live sessions and scores."""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import Field

from candle.dependencies import get_current_user, get_game_score_service, get_game_state_service, get_user_partnership
from candle.models.game import GameState, GameType
from candle.models.partnership import Partnership
from candle.schemas.requests import RequestModel
from candle.schemas.responses import ApiResponse
from candle.services.games import GameScoreService, GameStateService
from candle.utils.exceptions import AuthorizationError

router = APIRouter()


class CreateGameRequest(RequestModel):
    game_type: GameType
    initial_state: Dict[str, Any] = Field(default_factory=dict)


class UpdateGameRequest(RequestModel):
    state: Dict[str, Any]
    merge: bool = False


class EndGameRequest(RequestModel):
    winner_id: Optional[str] = None


class SaveScoreRequest(RequestModel):
    game_type: GameType
    score: float
    metadata: Optional[Dict[str, Any]] = None


def _owned(games: GameStateService, game_id: str, partnership: Partnership) -> GameState:
    game = games.get_or_raise(game_id)
    if game.partnership_id != partnership.id:
        raise AuthorizationError("This game belongs to another partnership")
    return game


@router.post("/sessions", response_model=ApiResponse, status_code=status.HTTP_201_CREATED)
async def create_game(
    request: CreateGameRequest,
    partnership: Partnership = Depends(get_user_partnership),
    games: GameStateService = Depends(get_game_state_service),
) -> ApiResponse:
    game = games.create(partnership.id, request.game_type, request.initial_state)
    return ApiResponse.success_response(game, "Game started")


@router.get("/sessions", response_model=ApiResponse)
async def list_active_games(
    game_type: Optional[GameType] = Query(default=None, alias="gameType"),
    partnership: Partnership = Depends(get_user_partnership),
    games: GameStateService = Depends(get_game_state_service),
) -> ApiResponse:
    return ApiResponse.success_response(games.get_active(partnership.id, game_type))


@router.get("/sessions/{game_id}", response_model=ApiResponse)
async def get_game(
    game_id: str,
    partnership: Partnership = Depends(get_user_partnership),
    games: GameStateService = Depends(get_game_state_service),
) -> ApiResponse:
    return ApiResponse.success_response(_owned(games, game_id, partnership))


@router.put("/sessions/{game_id}", response_model=ApiResponse)
async def update_game(
    game_id: str,
    request: UpdateGameRequest,
    partnership: Partnership = Depends(get_user_partnership),
    games: GameStateService = Depends(get_game_state_service),
) -> ApiResponse:
    """Merge updates are written now; plain updates are debounced and acknowledged."""
    _owned(games, game_id, partnership)
    game = await games.update(game_id, request.state, merge=request.merge)
    if game is None:
        return ApiResponse.success_response({"queued": True}, "Update queued")
    return ApiResponse.success_response(game, "Game updated")


@router.post("/sessions/{game_id}/end", response_model=ApiResponse)
async def end_game(
    game_id: str,
    request: EndGameRequest,
    partnership: Partnership = Depends(get_user_partnership),
    games: GameStateService = Depends(get_game_state_service),
) -> ApiResponse:
    _owned(games, game_id, partnership)
    if request.winner_id and not partnership.has_member(request.winner_id):
        raise AuthorizationError("Winner must be a member of the partnership")
    return ApiResponse.success_response(games.end_session(game_id, request.winner_id), "Game ended")


@router.post("/scores", response_model=ApiResponse, status_code=status.HTTP_201_CREATED)
async def save_score(
    request: SaveScoreRequest,
    current_user: dict = Depends(get_current_user),
    partnership: Partnership = Depends(get_user_partnership),
    scores: GameScoreService = Depends(get_game_score_service),
) -> ApiResponse:
    record = scores.save(request.game_type, partnership.id, current_user["uid"], request.score, request.metadata)
    return ApiResponse.success_response(record, "Score saved")


@router.get("/scores", response_model=ApiResponse)
async def list_scores(
    game_type: Optional[GameType] = Query(default=None, alias="gameType"),
    limit: Optional[int] = Query(default=None, ge=1, le=200),
    partnership: Partnership = Depends(get_user_partnership),
    scores: GameScoreService = Depends(get_game_score_service),
) -> ApiResponse:
    return ApiResponse.success_response(scores.list(partnership.id, game_type, limit=limit))


@router.get("/scores/leaderboard", response_model=ApiResponse)
async def leaderboard(
    game_type: GameType = Query(..., alias="gameType"),
    limit: int = Query(default=10, ge=1, le=100),
    partnership: Partnership = Depends(get_user_partnership),
    scores: GameScoreService = Depends(get_game_score_service),
) -> ApiResponse:
    return ApiResponse.success_response(scores.leaderboard(partnership.id, game_type, limit))


@router.get("/scores/stats", response_model=ApiResponse)
async def user_stats(
    game_type: GameType = Query(..., alias="gameType"),
    current_user: dict = Depends(get_current_user),
    partnership: Partnership = Depends(get_user_partnership),
    scores: GameScoreService = Depends(get_game_score_service),
) -> ApiResponse:
    stats = scores.user_stats(
        partnership.id, current_user["uid"], game_type, partnership.partner_of(current_user["uid"])
    )
    return ApiResponse.success_response(stats)
