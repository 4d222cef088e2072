"""Shared game sessions and score history."""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from candle.models.game import GameScore, GameState, GameType, UserGameStats
from candle.services.debounce import KeyedDebouncer
from candle.services.firebase import GAME_SCORES, GAME_STATES, generate_id, query_direction, snapshot_data
from candle.utils.exceptions import FirestoreError, wraps_firestore_errors
from candle.utils.timeutils import to_iso, utc_now

logger = logging.getLogger(__name__)


class GameStateService:
    """Live game documents.

    Non-merge updates during play are debounced per game so rapid moves
    collapse into one write of the latest state.
    """

    def __init__(self, db: Any, debounce_ms: int = 300):
        self.db = db
        self._debouncer = KeyedDebouncer(debounce_ms, self._write_state)

    def _ref(self, game_id: str):
        return self.db.collection(GAME_STATES).document(game_id)

    @wraps_firestore_errors
    def create(
        self,
        partnership_id: str,
        game_type: GameType,
        initial_state: Optional[Dict[str, Any]] = None,
        now: Optional[datetime] = None,
    ) -> GameState:
        timestamp = to_iso(now or utc_now())
        game = GameState(
            id=generate_id(),
            partnership_id=partnership_id,
            game_type=game_type,
            state=initial_state or {},
            is_active=True,
            created_at=timestamp,
            updated_at=timestamp,
        )
        self._ref(game.id).set(game.to_dict())
        logger.info(f"Game {game.id} ({game.game_type}) started for {partnership_id}")
        return game

    @wraps_firestore_errors
    def get(self, game_id: str) -> Optional[GameState]:
        data = snapshot_data(self._ref(game_id).get())
        return GameState.from_dict(data) if data else None

    def get_or_raise(self, game_id: str) -> GameState:
        game = self.get(game_id)
        if game is None:
            raise FirestoreError("Game not found", "not-found")
        return game

    @wraps_firestore_errors
    def get_active(self, partnership_id: str, game_type: Optional[GameType] = None) -> List[GameState]:
        query = (
            self.db.collection(GAME_STATES)
            .where("partnershipId", "==", partnership_id)
            .where("isActive", "==", True)
        )
        if game_type:
            query = query.where("gameType", "==", GameType(game_type).value)
        return [GameState.from_dict(snapshot_data(doc)) for doc in query.get()]

    async def update(self, game_id: str, state: Dict[str, Any], merge: bool = False) -> Optional[GameState]:
        """Update a game's state.

        With ``merge`` the new keys are merged into the stored state and
        written immediately; the fresh game is returned. Otherwise the write
        is debounced and None is returned right away.
        """
        if merge:
            return self.merge_state(game_id, state)
        self._debouncer.schedule(game_id, {"state": state, "updated_at": to_iso(utc_now())})
        return None

    @wraps_firestore_errors
    def merge_state(self, game_id: str, state: Dict[str, Any], now: Optional[datetime] = None) -> GameState:
        game = self.get_or_raise(game_id)
        merged = {**game.state, **state}
        self._ref(game_id).update({"state": merged, "updatedAt": to_iso(now or utc_now())})
        return self.get_or_raise(game_id)

    def _write_state(self, game_id: str, payload: Dict[str, Any]) -> bool:
        """Debounced write; failures are logged so play is never interrupted."""
        try:
            self._ref(game_id).update({"state": payload["state"], "updatedAt": payload["updated_at"]})
            return True
        except Exception as e:
            logger.error(f"Error updating game state {game_id}: {e}")
            return False

    def has_pending_update(self, game_id: str) -> bool:
        return self._debouncer.is_pending(game_id)

    @wraps_firestore_errors
    def end_session(self, game_id: str, winner_id: Optional[str] = None, now: Optional[datetime] = None) -> GameState:
        # A pending debounced move must not land after the session ended
        self._debouncer.cancel(game_id)
        updates: Dict[str, Any] = {"isActive": False, "updatedAt": to_iso(now or utc_now())}
        if winner_id:
            updates["winnerId"] = winner_id
        self._ref(game_id).update(updates)
        return self.get_or_raise(game_id)


class GameScoreService:
    """Per-user score records and derived stats."""

    def __init__(self, db: Any):
        self.db = db

    def _collection(self):
        return self.db.collection(GAME_SCORES)

    @wraps_firestore_errors
    def save(
        self,
        game_type: GameType,
        partnership_id: str,
        user_id: str,
        score: float,
        metadata: Optional[Dict[str, Any]] = None,
        now: Optional[datetime] = None,
    ) -> GameScore:
        record = GameScore(
            id=generate_id(),
            game_type=game_type,
            partnership_id=partnership_id,
            user_id=user_id,
            score=score,
            metadata=metadata,
            played_at=to_iso(now or utc_now()),
        )
        self._collection().document(record.id).set(record.to_dict())
        return record

    @wraps_firestore_errors
    def list(
        self,
        partnership_id: str,
        game_type: Optional[GameType] = None,
        user_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[GameScore]:
        """Scores for a partnership, newest first."""
        query = self._collection().where("partnershipId", "==", partnership_id)
        if game_type:
            query = query.where("gameType", "==", GameType(game_type).value)
        if user_id:
            query = query.where("userId", "==", user_id)
        query = query.order_by("playedAt", direction=query_direction(descending=True))
        if limit:
            query = query.limit(limit)
        return [GameScore.from_dict(snapshot_data(doc)) for doc in query.get()]

    @wraps_firestore_errors
    def leaderboard(self, partnership_id: str, game_type: GameType, limit: int = 10) -> List[GameScore]:
        """Top scores for one game, best first."""
        docs = (
            self._collection()
            .where("partnershipId", "==", partnership_id)
            .where("gameType", "==", GameType(game_type).value)
            .order_by("score", direction=query_direction(descending=True))
            .limit(limit)
            .get()
        )
        return [GameScore.from_dict(snapshot_data(doc)) for doc in docs]

    def user_stats(
        self,
        partnership_id: str,
        user_id: str,
        game_type: GameType,
        partner_id: Optional[str] = None,
    ) -> UserGameStats:
        """Best, total and average for a user; wins count games beating the partner's best."""
        scores = [s.score for s in self.list(partnership_id, game_type, user_id=user_id)]
        if not scores:
            return UserGameStats()

        wins = losses = 0
        if partner_id:
            partner_scores = [s.score for s in self.list(partnership_id, game_type, user_id=partner_id)]
            if partner_scores:
                partner_best = max(partner_scores)
                wins = sum(1 for score in scores if score > partner_best)
                losses = sum(1 for score in scores if score < partner_best)

        return UserGameStats(
            best_score=max(scores),
            total_games=len(scores),
            average_score=round(sum(scores) / len(scores), 2),
            wins=wins,
            losses=losses,
        )
