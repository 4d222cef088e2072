"""
Game Models
Shared game state and score history.
"""

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import Field

from candle.models.base import FirestoreModel


class GameType(str, Enum):
    WHOS_MORE_LIKELY = "whos_more_likely"
    ANAGRAMS = "anagrams"
    WHAT_YOU_SAYING = "what_you_saying"
    FOUR_IN_A_ROW = "four_in_a_row"
    DRAW_DUEL = "draw_duel"
    PERFECT_PAIR = "perfect_pair"


class GameState(FirestoreModel):
    """Live game document."""

    id: str
    partnership_id: str
    game_type: GameType
    state: Dict[str, Any] = Field(default_factory=dict)
    is_active: bool = True
    winner_id: Optional[str] = None
    created_at: str
    updated_at: str


class GameScore(FirestoreModel):
    """A single recorded score."""

    id: str
    game_type: GameType
    partnership_id: str
    user_id: str
    score: float
    metadata: Optional[Dict[str, Any]] = None
    played_at: str


class UserGameStats(FirestoreModel):
    best_score: float = 0
    total_games: int = 0
    average_score: float = 0
    wins: int = 0
    losses: int = 0
