"""Countdowns to special dates."""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from candle.models.countdown import Countdown
from candle.services.firebase import COUNTDOWNS, generate_id, query_direction, snapshot_data
from candle.utils.exceptions import FirestoreError, ValidationError, wraps_firestore_errors
from candle.utils.timeutils import parse_iso, to_iso, utc_now

logger = logging.getLogger(__name__)


def _normalize_date(value: str) -> str:
    try:
        return to_iso(parse_iso(value))
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid target date: {value!r}")


class CountdownService:
    def __init__(self, db: Any):
        self.db = db

    def _ref(self, countdown_id: str):
        return self.db.collection(COUNTDOWNS).document(countdown_id)

    @wraps_firestore_errors
    def create(
        self,
        partnership_id: str,
        user_id: str,
        title: str,
        target_date: str,
        description: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Countdown:
        timestamp = to_iso(now or utc_now())
        countdown = Countdown(
            id=generate_id(),
            partnership_id=partnership_id,
            title=title,
            target_date=_normalize_date(target_date),
            description=description,
            created_by=user_id,
            created_at=timestamp,
            updated_at=timestamp,
        )
        self._ref(countdown.id).set(countdown.to_dict())
        return countdown

    @wraps_firestore_errors
    def list(self, partnership_id: str) -> List[Countdown]:
        """Countdowns for a partnership, soonest first."""
        docs = (
            self.db.collection(COUNTDOWNS)
            .where("partnershipId", "==", partnership_id)
            .order_by("targetDate", direction=query_direction(descending=False))
            .get()
        )
        return [Countdown.from_dict(snapshot_data(doc)) for doc in docs]

    @wraps_firestore_errors
    def get(self, countdown_id: str) -> Countdown:
        data = snapshot_data(self._ref(countdown_id).get())
        if not data:
            raise FirestoreError("Countdown not found", "not-found")
        return Countdown.from_dict(data)

    @wraps_firestore_errors
    def update(self, countdown_id: str, updates: Dict[str, Any], now: Optional[datetime] = None) -> Countdown:
        data = {k: v for k, v in updates.items() if v is not None}
        if "targetDate" in data:
            data["targetDate"] = _normalize_date(data["targetDate"])
        data["updatedAt"] = to_iso(now or utc_now())
        self._ref(countdown_id).update(data)
        return self.get(countdown_id)

    @wraps_firestore_errors
    def delete(self, countdown_id: str) -> None:
        self._ref(countdown_id).delete()
