"""Thumb Kisses: synchronized taps between partners.

Each tap is stored with the server's timestamp. When a tap lands within the
sync window of the partner's latest unpaired tap, the pair becomes a thumb
kiss. Both taps are marked consumed and point at each other through
``pairedWith``, so the partner who tapped first sees the kiss on their next
poll of the partner's latest tap.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Optional, Union

from candle.models.thumb_kiss import ThumbKiss
from candle.services.firebase import (
    THUMB_KISSES,
    field_of,
    generate_id,
    query_direction,
    run_transaction,
    snapshot_data,
)
from candle.utils.exceptions import wraps_firestore_errors
from candle.utils.timeutils import to_iso, to_millis, utc_now

logger = logging.getLogger(__name__)

SYNC_WINDOW_MS = 500


def is_synchronized(
    t_self: Union[str, datetime, int],
    t_partner: Union[str, datetime, int],
    window_ms: int = SYNC_WINDOW_MS,
) -> bool:
    """True when two tap times (ISO strings, datetimes or epoch ms) are strictly inside the window."""
    self_ms = t_self if isinstance(t_self, int) else to_millis(t_self)
    partner_ms = t_partner if isinstance(t_partner, int) else to_millis(t_partner)
    return abs(self_ms - partner_ms) < window_ms


class ThumbKissService:
    """Records taps and pairs them into thumb kisses."""

    def __init__(self, db: Any, window_ms: int = SYNC_WINDOW_MS, retention_minutes: int = 5):
        self.db = db
        self.window_ms = window_ms
        self.retention_minutes = retention_minutes

    def _collection(self):
        return self.db.collection(THUMB_KISSES)

    @wraps_firestore_errors
    def record_tap(
        self,
        partnership_id: str,
        user_id: str,
        partner_id: str,
        now: Optional[datetime] = None,
        client_timestamp: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Store a tap and pair it with the partner's tap if they are in sync."""
        timestamp = to_iso(now or utc_now())
        tap = ThumbKiss(
            id=generate_id(),
            partnership_id=partnership_id,
            user_id=user_id,
            timestamp=timestamp,
            created_at=timestamp,
            client_timestamp=client_timestamp,
        )
        tap_ref = self._collection().document(tap.id)
        tap_ref.set(tap.to_dict())

        partner_tap = self.latest_partner_tap(partnership_id, partner_id, unpaired_only=True)
        synced = False
        if partner_tap is not None and is_synchronized(tap.timestamp, partner_tap.timestamp, self.window_ms):
            synced = self._consume_pair(tap_ref, self._collection().document(partner_tap.id), timestamp)

        if synced:
            tap.consumed = True
            tap.paired_with = partner_tap.id
            tap.kissed_at = timestamp
            logger.info(f"Thumb kiss in partnership {partnership_id}")

        return {
            "tap": tap.to_dict(),
            "synced": synced,
            "haptic": synced,
            "partnerTap": partner_tap.to_dict() if partner_tap else None,
        }

    def _consume_pair(self, tap_ref: Any, partner_ref: Any, kissed_at: str) -> bool:
        """Mark both taps consumed unless another request already paired one of them."""

        def _consume(transaction):
            own = tap_ref.get(transaction=transaction)
            partner = partner_ref.get(transaction=transaction)
            if not own.exists or not partner.exists:
                return False
            if field_of(own, "consumed") or field_of(partner, "consumed"):
                return False
            transaction.update(tap_ref, {"consumed": True, "pairedWith": partner_ref.id, "kissedAt": kissed_at})
            transaction.update(partner_ref, {"consumed": True, "pairedWith": tap_ref.id, "kissedAt": kissed_at})
            return True

        return run_transaction(self.db, _consume)

    @wraps_firestore_errors
    def latest_partner_tap(
        self,
        partnership_id: str,
        partner_id: str,
        unpaired_only: bool = False,
    ) -> Optional[ThumbKiss]:
        """The partner's newest tap by ``createdAt``.

        Clients poll this to pick up a kiss completed by the partner's tap, so
        paired taps are included unless ``unpaired_only`` is set for pairing.
        """
        query = (
            self._collection()
            .where("partnershipId", "==", partnership_id)
            .where("userId", "==", partner_id)
        )
        if unpaired_only:
            query = query.where("consumed", "==", False)
        docs = query.order_by("createdAt", direction=query_direction(descending=True)).limit(1).get()
        if not docs:
            return None
        return ThumbKiss.from_dict(snapshot_data(docs[0]))

    def cleanup_old_taps(self, partnership_id: str, now: Optional[datetime] = None) -> int:
        """Delete taps older than the retention period. Never raises."""
        try:
            cutoff = to_iso((now or utc_now()) - timedelta(minutes=self.retention_minutes))
            docs = (
                self._collection()
                .where("partnershipId", "==", partnership_id)
                .where("createdAt", "<", cutoff)
                .get()
            )
            if not docs:
                return 0

            batch = self.db.batch()
            for doc in docs:
                batch.delete(doc.reference)
            batch.commit()
            logger.debug(f"Cleaned up {len(docs)} old taps for {partnership_id}")
            return len(docs)
        except Exception as e:
            # Non-critical
            logger.error(f"Error cleaning up old taps: {e}")
            return 0
