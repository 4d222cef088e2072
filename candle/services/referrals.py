"""Referral codes, usage records, and rewards.

A user owns one referral code, recorded in an ownership document and on the
user. Every time someone pairs after signing up with the code, a separate
completed usage record is written and the referrer earns a free month.
"""

import logging
import random
from datetime import datetime, timedelta
from typing import Any, List, Optional

from candle.models.referral import Referral, ReferralStats, ReferralStatus
from candle.models.user import ReferralRewards
from candle.services.firebase import REFERRALS, USERS, field_of, generate_id, run_transaction, snapshot_data
from candle.utils.exceptions import FirestoreError, ValidationError, wraps_firestore_errors
from candle.utils.timeutils import parse_iso, to_iso, utc_now

logger = logging.getLogger(__name__)

# No 0/O or 1/I
CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
CODE_LENGTH = 8
MAX_CODE_ATTEMPTS = 10
REWARD_FREE_MONTH = "free_month"
REWARD_PREMIUM_FEATURE = "premium_feature"
REWARD_MESSAGE = "Your friend joined Candle! You earned 1 free month 🎉"


def generate_referral_code(user_id: str) -> str:
    """First four user-id characters plus four random unambiguous ones, uppercased."""
    prefix = user_id[:4].upper()
    suffix = "".join(random.choice(CODE_ALPHABET) for _ in range(4))
    return f"{prefix}{suffix}"


def normalize_referral_code(code: str) -> str:
    return code.replace("-", "").upper()


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}{'s' if count > 1 else ''}"


class ReferralService:
    """Referral ownership, completion and reward bookkeeping."""

    def __init__(self, db: Any, notifications: Optional[Any] = None, expiry_days: int = 30):
        self.db = db
        self.notifications = notifications
        self.expiry_days = expiry_days

    def _users(self):
        return self.db.collection(USERS)

    def _referrals(self):
        return self.db.collection(REFERRALS)

    def _new_ownership(self, user_id: str, code: str, now: datetime) -> Referral:
        referral = Referral(
            id=generate_id(),
            referrer_id=user_id,
            referral_code=code,
            status=ReferralStatus.PENDING,
            reward_granted=False,
            created_at=to_iso(now),
            expires_at=to_iso(now + timedelta(days=self.expiry_days)),
        )
        self._referrals().document(referral.id).set(referral.to_dict())
        return referral

    def _code_taken(self, code: str) -> bool:
        in_referrals = self._referrals().where("referralCode", "==", code).limit(1).get()
        in_users = self._users().where("referralCode", "==", code).limit(1).get()
        return bool(in_referrals or in_users)

    @wraps_firestore_errors
    def create(self, user_id: str, now: Optional[datetime] = None) -> Referral:
        """Return the user's referral code ownership record, creating one if needed."""
        now = now or utc_now()
        user_doc = self._users().document(user_id).get()
        if not user_doc.exists:
            raise FirestoreError("User not found", "not-found")

        existing_code = field_of(user_doc, "referralCode")
        if existing_code:
            docs = (
                self._referrals()
                .where("referrerId", "==", user_id)
                .where("referralCode", "==", existing_code)
                .limit(1)
                .get()
            )
            if docs:
                return Referral.from_dict(snapshot_data(docs[0]))
            return self._new_ownership(user_id, existing_code, now)

        for _ in range(MAX_CODE_ATTEMPTS):
            code = generate_referral_code(user_id)
            if not self._code_taken(code):
                break
        else:
            raise FirestoreError("Failed to generate unique referral code", "aborted")

        referral = self._new_ownership(user_id, code, now)
        self._users().document(user_id).update({"referralCode": code})
        logger.info(f"Referral code {code} created for {user_id}")
        return referral

    @wraps_firestore_errors
    def get_by_code(self, code: str, now: Optional[datetime] = None) -> Optional[Referral]:
        """Ownership record for a code, falling back to a user who holds it."""
        normalized = normalize_referral_code(code)
        docs = self._referrals().where("referralCode", "==", normalized).limit(1).get()
        if docs:
            return Referral.from_dict(snapshot_data(docs[0]))

        users = self._users().where("referralCode", "==", normalized).limit(1).get()
        if not users:
            return None
        now = now or utc_now()
        return Referral(
            id=users[0].id,
            referrer_id=users[0].id,
            referral_code=normalized,
            status=ReferralStatus.PENDING,
            created_at=to_iso(now),
            expires_at=to_iso(now + timedelta(days=self.expiry_days)),
        )

    @wraps_firestore_errors
    def get_user_referrals(self, user_id: str) -> List[Referral]:
        """Completed usage records of the user's code, latest completion first."""
        docs = self._referrals().where("referrerId", "==", user_id).get()
        referrals = [Referral.from_dict(snapshot_data(doc)) for doc in docs]
        usages = [
            r for r in referrals
            if r.referred_user_id and r.status == ReferralStatus.COMPLETED.value
        ]
        return sorted(usages, key=lambda r: r.completed_at or "", reverse=True)

    def get_stats(self, user_id: str) -> ReferralStats:
        usages = self.get_user_referrals(user_id)
        stats = ReferralStats(
            total_referrals=len(usages),
            completed_referrals=len(usages),
            # Usage records only exist once completed
            pending_referrals=0,
            total_rewards_earned=sum(1 for r in usages if r.reward_granted),
        )

        rewards = self._rewards_of(user_id)
        if rewards is not None:
            if rewards.free_months > 0:
                stats.current_reward = _plural(rewards.free_months, "free month")
            elif rewards.streak_restores > 0:
                stats.current_reward = _plural(rewards.streak_restores, "streak restore")
        return stats

    def _rewards_of(self, user_id: str) -> Optional[ReferralRewards]:
        doc = self._users().document(user_id).get()
        if not doc.exists:
            return None
        data = field_of(doc, "referralRewards")
        return ReferralRewards.from_dict(data) if data else ReferralRewards()

    def _find(self, code_or_id: str) -> Optional[Referral]:
        normalized = normalize_referral_code(code_or_id)
        if len(normalized) == CODE_LENGTH:
            return self.get_by_code(normalized)
        data = snapshot_data(self._referrals().document(code_or_id).get())
        return Referral.from_dict(data) if data else None

    @wraps_firestore_errors
    def mark_completed(self, code_or_id: str, referred_user_id: str, now: Optional[datetime] = None) -> Optional[Referral]:
        """Record that ``referred_user_id`` used a code and reward its owner.

        Accepts a referral code or a referral document id. Returns the new
        usage record, or None if this user had already used the code.
        """
        now = now or utc_now()
        referral = self._find(code_or_id)
        if referral is None:
            raise FirestoreError("Referral not found", "not-found")
        if referral.referrer_id == referred_user_id:
            raise ValidationError("Cannot use your own referral code")
        if referral.expires_at and parse_iso(referral.expires_at) < now:
            raise FirestoreError("Referral code has expired", "failed-precondition")

        already_used = (
            self._referrals()
            .where("referrerId", "==", referral.referrer_id)
            .where("referralCode", "==", referral.referral_code)
            .where("referredUserId", "==", referred_user_id)
            .where("status", "==", ReferralStatus.COMPLETED.value)
            .limit(1)
            .get()
        )
        if already_used:
            logger.info(f"{referred_user_id} already used referral code {referral.referral_code}")
            return None

        timestamp = to_iso(now)
        usage = Referral(
            id=generate_id(),
            referrer_id=referral.referrer_id,
            referral_code=referral.referral_code,
            referred_user_id=referred_user_id,
            status=ReferralStatus.COMPLETED,
            reward_granted=False,
            created_at=timestamp,
            completed_at=timestamp,
            expires_at=referral.expires_at,
        )
        self._referrals().document(usage.id).set(usage.to_dict())
        self.grant_reward(usage.id)
        return self._find(usage.id)

    @wraps_firestore_errors
    def grant_reward(self, referral_id: str) -> None:
        """Give the referrer one free month for a completed usage; safe to repeat."""
        ref = self._referrals().document(referral_id)

        def _grant(transaction) -> Optional[str]:
            data = snapshot_data(ref.get(transaction=transaction))
            if not data:
                raise FirestoreError("Referral not found", "not-found")
            referral = Referral.from_dict(data)

            if referral.reward_granted:
                return None
            if referral.status != ReferralStatus.COMPLETED.value:
                raise FirestoreError("Referral must be completed before granting reward", "failed-precondition")

            user_ref = self._users().document(referral.referrer_id)
            user_doc = user_ref.get(transaction=transaction)
            if not user_doc.exists:
                raise FirestoreError("Referrer not found", "not-found")
            stored = field_of(user_doc, "referralRewards")
            rewards = ReferralRewards.from_dict(stored) if stored else ReferralRewards()
            rewards.free_months += 1

            transaction.update(user_ref, {"referralRewards": rewards.to_dict()})
            transaction.update(ref, {"rewardGranted": True, "rewardType": REWARD_FREE_MONTH})
            return referral.referrer_id

        referrer_id = run_transaction(self.db, _grant)
        if referrer_id is None:
            return
        logger.info(f"Referral reward granted to {referrer_id}")

        # Push only after the reward is committed
        if self.notifications is not None:
            self.notifications.send_referral_notification(referrer_id, REWARD_MESSAGE)

    @wraps_firestore_errors
    def apply_reward(self, user_id: str, reward_type: str = REWARD_FREE_MONTH) -> ReferralRewards:
        """Spend one earned reward."""
        rewards = self._rewards_of(user_id)
        if rewards is None:
            raise FirestoreError("User not found", "not-found")

        if reward_type == REWARD_FREE_MONTH:
            if rewards.free_months <= 0:
                raise FirestoreError("No free months available", "failed-precondition")
            rewards.free_months -= 1
            self._users().document(user_id).update({"referralRewards": rewards.to_dict()})
        elif reward_type != REWARD_PREMIUM_FEATURE:
            raise ValidationError(f"Unknown reward type: {reward_type}")
        return rewards

    def validate(self, code: str, now: Optional[datetime] = None) -> bool:
        """True when the code exists and has not expired. Codes are reusable."""
        normalized = normalize_referral_code(code)
        if len(normalized) != CODE_LENGTH:
            return False
        try:
            referral = self.get_by_code(normalized, now)
        except FirestoreError as e:
            logger.error(f"Error validating referral code: {e}")
            return False
        if referral is None:
            return False
        if referral.expires_at and parse_iso(referral.expires_at) < (now or utc_now()):
            return False
        return True
