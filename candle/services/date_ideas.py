"""Date ideas: nearby catalogue, partner swipes, and mutual matches."""

import logging
import math
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

import cachetools

from candle.models.date_idea import DateIdea, DateMatch, DateSwipe, GeoPoint, MatchStatus, SwipeDirection
from candle.services.firebase import (
    DATE_IDEAS,
    DATE_MATCHES,
    DATE_SWIPES,
    generate_id,
    query_direction,
    run_transaction,
    snapshot_data,
)
from candle.utils.exceptions import FirestoreError, ValidationError, wraps_firestore_errors
from candle.utils.timeutils import to_iso, utc_now

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371
ALL_CATEGORIES = "All"


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two coordinates in kilometres."""
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def match_id_for(partnership_id: str, date_idea_id: str) -> str:
    """Deterministic match id so the same pair of swipes never makes two matches."""
    return f"{partnership_id}_{date_idea_id}"


class DateIdeaService:
    """Date idea catalogue plus per-partnership swipes and matches."""

    CACHE_MAX_SIZE = 64

    def __init__(self, db: Any, partnerships: Any, cache_ttl: int = 900):
        self.db = db
        self.partnerships = partnerships
        # Catalogue reads keyed by (category, fetch size)
        self._catalogue_cache = cachetools.TTLCache(maxsize=self.CACHE_MAX_SIZE, ttl=cache_ttl)

    @wraps_firestore_errors
    def add_idea(self, idea: DateIdea) -> DateIdea:
        self.db.collection(DATE_IDEAS).document(idea.id).set(idea.to_dict())
        self._catalogue_cache.clear()
        return idea

    def _catalogue(self, category: Optional[str], fetch_limit: int) -> List[DateIdea]:
        key: Tuple[str, int] = (category or ALL_CATEGORIES, fetch_limit)
        cached = self._catalogue_cache.get(key)
        if cached is not None:
            return cached

        query = self.db.collection(DATE_IDEAS)
        if category and category != ALL_CATEGORIES:
            query = query.where("category", "==", category)
        ideas = [DateIdea.from_dict(snapshot_data(doc)) for doc in query.limit(fetch_limit).get()]
        self._catalogue_cache[key] = ideas
        return ideas

    @wraps_firestore_errors
    def fetch(
        self,
        location: Optional[GeoPoint] = None,
        category: Optional[str] = None,
        radius_km: float = 50,
        limit: int = 20,
    ) -> List[DateIdea]:
        """Ideas in a category, optionally within ``radius_km`` of a location.

        Twice the limit is read so the distance filter still leaves enough.
        """
        ideas = self._catalogue(category, limit * 2)
        if location is not None:
            ideas = [
                idea for idea in ideas
                if haversine_km(
                    location.latitude, location.longitude,
                    idea.location.latitude, idea.location.longitude,
                ) <= radius_km
            ]
        return ideas[:limit]

    @wraps_firestore_errors
    def get(self, date_idea_id: str) -> Optional[DateIdea]:
        data = snapshot_data(self.db.collection(DATE_IDEAS).document(date_idea_id).get())
        return DateIdea.from_dict(data) if data else None

    @wraps_firestore_errors
    def swipe(
        self,
        partnership_id: str,
        user_id: str,
        date_idea_id: str,
        direction: SwipeDirection,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """Record a swipe; a right swipe matching the partner's creates the match.

        Returns ``{"matched": bool, "match": DateMatch | None}``.
        """
        direction = SwipeDirection(direction)
        partnership = self.partnerships.get_or_raise(partnership_id)
        partner_id = partnership.partner_of(user_id)
        if not partner_id:
            raise FirestoreError("Partner not found", "not-found")

        timestamp = to_iso(now or utc_now())
        swipe = DateSwipe(
            id=generate_id(),
            partnership_id=partnership_id,
            user_id=user_id,
            date_idea_id=date_idea_id,
            direction=direction,
            created_at=timestamp,
        )
        self.db.collection(DATE_SWIPES).document(swipe.id).set(swipe.to_dict())

        if direction != SwipeDirection.RIGHT:
            return {"matched": False, "match": None}

        partner_swipes = (
            self.db.collection(DATE_SWIPES)
            .where("partnershipId", "==", partnership_id)
            .where("dateIdeaId", "==", date_idea_id)
            .where("userId", "==", partner_id)
            .where("direction", "==", SwipeDirection.RIGHT.value)
            .limit(1)
            .get()
        )
        if not partner_swipes:
            return {"matched": False, "match": None}

        match = self._create_match(partnership_id, date_idea_id, timestamp)
        logger.info(f"Date match {match.id} for partnership {partnership_id}")
        return {"matched": True, "match": match}

    def _create_match(self, partnership_id: str, date_idea_id: str, timestamp: str) -> DateMatch:
        match_ref = self.db.collection(DATE_MATCHES).document(match_id_for(partnership_id, date_idea_id))

        def _create(transaction):
            snapshot = match_ref.get(transaction=transaction)
            if snapshot.exists:
                return snapshot_data(snapshot)
            match = DateMatch(
                id=match_ref.id,
                partnership_id=partnership_id,
                date_idea_id=date_idea_id,
                matched_at=timestamp,
                status=MatchStatus.NEW,
            )
            transaction.set(match_ref, match.to_dict())
            return match.to_dict()

        return DateMatch.from_dict(run_transaction(self.db, _create))

    @wraps_firestore_errors
    def get_matches(self, partnership_id: str) -> List[DateMatch]:
        """Matches newest first, each with its date idea attached when it still exists."""
        docs = (
            self.db.collection(DATE_MATCHES)
            .where("partnershipId", "==", partnership_id)
            .order_by("matchedAt", direction=query_direction(descending=True))
            .get()
        )
        matches = []
        for doc in docs:
            match = DateMatch.from_dict(snapshot_data(doc))
            match.date_idea = self.get(match.date_idea_id)
            matches.append(match)
        return matches

    @wraps_firestore_errors
    def get_user_swipes(self, partnership_id: str, user_id: str) -> List[DateSwipe]:
        docs = (
            self.db.collection(DATE_SWIPES)
            .where("partnershipId", "==", partnership_id)
            .where("userId", "==", user_id)
            .get()
        )
        return [DateSwipe.from_dict(snapshot_data(doc)) for doc in docs]

    @wraps_firestore_errors
    def get_match(self, match_id: str) -> DateMatch:
        data = snapshot_data(self.db.collection(DATE_MATCHES).document(match_id).get())
        if not data:
            raise FirestoreError("Match not found", "not-found")
        return DateMatch.from_dict(data)

    @wraps_firestore_errors
    def update_match_status(self, match_id: str, status: MatchStatus, notes: Optional[str] = None) -> DateMatch:
        status = MatchStatus(status)
        if status == MatchStatus.NEW:
            raise ValidationError("Match status can only move to viewed or completed")
        updates: Dict[str, Any] = {"status": status.value}
        if notes is not None:
            updates["notes"] = notes
        self.db.collection(DATE_MATCHES).document(match_id).update(updates)
        return self.get_match(match_id)
