"""Partnership connections, invites, and per-couple bookkeeping."""

import logging
import random
from datetime import datetime
from typing import Any, Dict, List, Optional

from candle.models.partnership import Partnership, PartnershipStatus
from candle.services.firebase import PARTNERSHIPS, USERS, field_of, generate_id, run_transaction, snapshot_data
from candle.utils.exceptions import (
    AuthorizationError,
    FirestoreError,
    NotFoundError,
    ValidationError,
    wraps_firestore_errors,
)
from candle.utils.timeutils import to_iso, utc_now

logger = logging.getLogger(__name__)

MAX_INVITE_CODE_ATTEMPTS = 10

# get_for_user picks the first status found in this order
_STATUS_PRIORITY = (PartnershipStatus.ACTIVE.value, PartnershipStatus.PENDING.value, PartnershipStatus.PAUSED.value)


def generate_invite_code() -> str:
    """Six-digit numeric invite code."""
    return str(random.randint(100000, 999999))


class PartnershipService:
    """Reads and writes partnership documents."""

    def __init__(self, db: Any, referrals: Optional[Any] = None):
        """
        Args:
            db: Firestore client or LocalStore.
            referrals: ReferralService used to complete a referral when an
                invite is accepted.
        """
        self.db = db
        self.referrals = referrals

    def document_ref(self, partnership_id: str):
        return self.db.collection(PARTNERSHIPS).document(partnership_id)

    def _unique_invite_code(self) -> str:
        for _ in range(MAX_INVITE_CODE_ATTEMPTS):
            code = generate_invite_code()
            taken = (
                self.db.collection(PARTNERSHIPS)
                .where("inviteCode", "==", code)
                .where("status", "==", PartnershipStatus.PENDING.value)
                .limit(1)
                .get()
            )
            if not taken:
                return code
        raise FirestoreError("Failed to generate unique invite code", "aborted")

    @wraps_firestore_errors
    def create(self, user_id: str, now: Optional[datetime] = None) -> Partnership:
        """Create a pending partnership with a fresh invite code."""
        existing = self.get_for_user(user_id)
        if existing and existing.status == PartnershipStatus.ACTIVE.value:
            raise FirestoreError("You are already paired with a partner", "already-exists")

        timestamp = to_iso(now or utc_now())
        partnership = Partnership(
            id=generate_id(),
            user_id1=user_id,
            status=PartnershipStatus.PENDING,
            streak_count=0,
            last_activity_date="",
            invite_code=self._unique_invite_code(),
            created_at=timestamp,
            updated_at=timestamp,
        )
        self.document_ref(partnership.id).set(partnership.to_dict())
        logger.info(f"Partnership {partnership.id} created by {user_id}")
        return partnership

    @wraps_firestore_errors
    def accept_invite(self, invite_code: str, user_id: str, now: Optional[datetime] = None) -> Partnership:
        """Join a pending partnership by invite code and activate it."""
        docs = (
            self.db.collection(PARTNERSHIPS)
            .where("inviteCode", "==", invite_code)
            .where("status", "==", PartnershipStatus.PENDING.value)
            .limit(1)
            .get()
        )
        if not docs:
            raise FirestoreError("Invalid invite code", "not-found")

        partnership_id = docs[0].id
        if field_of(docs[0], "userId1") == user_id:
            raise ValidationError("You cannot accept your own invite")

        own = self._partnerships_of(user_id)
        if any(doc.get("status") == PartnershipStatus.ACTIVE.value for doc in own):
            raise FirestoreError("You are already paired with a partner", "already-exists")

        timestamp = to_iso(now or utc_now())
        # Invites the joiner created themselves are abandoned
        abandoned = [
            doc["id"] for doc in own
            if doc.get("status") == PartnershipStatus.PENDING.value and doc.get("userId1") == user_id
        ]
        if abandoned:
            batch = self.db.batch()
            for stale_id in abandoned:
                batch.delete(self.document_ref(stale_id))
            batch.commit()
            logger.info(f"Dropped {len(abandoned)} pending invite(s) of {user_id}")

        self.document_ref(partnership_id).update({
            "userId2": user_id,
            "status": PartnershipStatus.ACTIVE.value,
            "updatedAt": timestamp,
        })
        partnership = self.get(partnership_id)

        batch = self.db.batch()
        for member, partner in ((partnership.user_id1, user_id), (user_id, partnership.user_id1)):
            if self.db.collection(USERS).document(member).get().exists:
                batch.update(self.db.collection(USERS).document(member), {
                    "partnerId": partner,
                    "updatedAt": timestamp,
                })
        batch.commit()

        self._complete_referral(user_id)
        logger.info(f"User {user_id} joined partnership {partnership_id}")
        return partnership

    def _complete_referral(self, user_id: str) -> None:
        """Complete the joining user's pending referral; never fails the pairing."""
        user_ref = self.db.collection(USERS).document(user_id)
        referral_id = None
        try:
            user_doc = user_ref.get()
            referral_id = field_of(user_doc, "referralId")
            if referral_id and self.referrals is not None:
                self.referrals.mark_completed(referral_id, user_id)
        except Exception as e:
            logger.error(f"Error completing referral for {user_id}: {e}")
        finally:
            if referral_id:
                try:
                    user_ref.update({"referralId": None})
                except Exception as e:
                    logger.error(f"Error clearing referralId for {user_id}: {e}")

    @wraps_firestore_errors
    def get(self, partnership_id: str) -> Optional[Partnership]:
        data = snapshot_data(self.document_ref(partnership_id).get())
        return Partnership.from_dict(data) if data else None

    def get_or_raise(self, partnership_id: str) -> Partnership:
        partnership = self.get(partnership_id)
        if partnership is None:
            raise FirestoreError("Partnership not found", "not-found")
        return partnership

    def require_member(self, partnership_id: str, user_id: str) -> Partnership:
        """Partnership the user belongs to, or AuthorizationError."""
        partnership = self.get_or_raise(partnership_id)
        if not partnership.has_member(user_id):
            raise AuthorizationError("You are not a member of this partnership")
        return partnership

    def _partnerships_of(self, user_id: str) -> List[Dict[str, Any]]:
        """Raw documents of every partnership the user created or joined."""
        found: Dict[str, Dict[str, Any]] = {}
        for field in ("userId1", "userId2"):
            for doc in self.db.collection(PARTNERSHIPS).where(field, "==", user_id).get():
                data = snapshot_data(doc)
                data["id"] = doc.id
                found[doc.id] = data
        return list(found.values())

    @wraps_firestore_errors
    def get_for_user(self, user_id: str) -> Optional[Partnership]:
        """The user's partnership: active first, then a pending invite, then a paused one."""
        docs = self._partnerships_of(user_id)
        for status in _STATUS_PRIORITY:
            for data in docs:
                if data.get("status") == status:
                    return Partnership.from_dict(data)
        return None

    @wraps_firestore_errors
    def list_for_user(self, user_id: str) -> List[Partnership]:
        return [Partnership.from_dict(data) for data in self._partnerships_of(user_id)]

    @wraps_firestore_errors
    def update(self, partnership_id: str, updates: Dict[str, Any], now: Optional[datetime] = None) -> Partnership:
        """Apply a partial update (camelCase keys) and return the fresh document."""
        data = dict(updates)
        data["updatedAt"] = to_iso(now or utc_now())
        self.document_ref(partnership_id).update(data)
        return self.get_or_raise(partnership_id)

    @wraps_firestore_errors
    def increment_streak(self, partnership_id: str, now: Optional[datetime] = None) -> Partnership:
        """Atomically add one to the streak and stamp the activity time."""
        timestamp = to_iso(now or utc_now())
        ref = self.document_ref(partnership_id)

        def _increment(transaction):
            snapshot = ref.get(transaction=transaction)
            if not snapshot.exists:
                raise FirestoreError("Partnership not found", "not-found")
            transaction.update(ref, {
                "streakCount": (field_of(snapshot, "streakCount") or 0) + 1,
                "lastActivityDate": timestamp,
                "updatedAt": timestamp,
            })

        run_transaction(self.db, _increment)
        return self.get_or_raise(partnership_id)

    def reset_streak(self, partnership_id: str, now: Optional[datetime] = None) -> Partnership:
        now = now or utc_now()
        return self.update(partnership_id, {"streakCount": 0, "lastActivityDate": to_iso(now)}, now)

    def record_canvas_activity(self, partnership_id: str, now: Optional[datetime] = None) -> Partnership:
        now = now or utc_now()
        return self.update(partnership_id, {"lastCanvasActivityDate": to_iso(now)}, now)

    def set_typing(self, partnership_id: str, user_id: str, is_typing: bool) -> Partnership:
        partnership = self.get_or_raise(partnership_id)
        typing_users = list(partnership.typing_users)
        if is_typing and user_id not in typing_users:
            typing_users.append(user_id)
        elif not is_typing:
            typing_users = [uid for uid in typing_users if uid != user_id]
        return self.update(partnership_id, {"typingUsers": typing_users})

    def skip_question(self, partnership_id: str, question_id: str) -> Partnership:
        partnership = self.get_or_raise(partnership_id)
        if question_id in partnership.skipped_question_ids:
            return partnership
        return self.update(partnership_id, {
            "skippedQuestionIds": partnership.skipped_question_ids + [question_id],
        })

    @wraps_firestore_errors
    def unpair(self, partnership_id: str, now: Optional[datetime] = None) -> Partnership:
        """Pause the partnership and clear ``partnerId`` on both members."""
        timestamp = to_iso(now or utc_now())
        partnership = self.get_or_raise(partnership_id)

        batch = self.db.batch()
        batch.update(self.document_ref(partnership_id), {
            "status": PartnershipStatus.PAUSED.value,
            "typingUsers": [],
            "updatedAt": timestamp,
        })
        for member in partnership.member_ids:
            member_ref = self.db.collection(USERS).document(member)
            if member_ref.get().exists:
                batch.update(member_ref, {"partnerId": None, "updatedAt": timestamp})
        batch.commit()

        logger.info(f"Partnership {partnership_id} unpaired")
        return self.get_or_raise(partnership_id)

    def require_partner(self, partnership: Partnership, user_id: str) -> str:
        partner_id = partnership.partner_of(user_id)
        if not partner_id:
            raise NotFoundError("Partner not found")
        return partner_id
