"""User profile documents."""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from candle.models.user import UserModel
from candle.services.firebase import USERS, snapshot_data
from candle.utils.exceptions import FirestoreError, wraps_firestore_errors
from candle.utils.timeutils import to_iso, utc_now

logger = logging.getLogger(__name__)


class UserService:
    def __init__(self, db: Any, referrals: Optional[Any] = None):
        self.db = db
        self.referrals = referrals

    def _ref(self, user_id: str):
        return self.db.collection(USERS).document(user_id)

    @wraps_firestore_errors
    def get(self, user_id: str) -> Optional[UserModel]:
        data = snapshot_data(self._ref(user_id).get())
        return UserModel.from_dict(data) if data else None

    def get_or_raise(self, user_id: str) -> UserModel:
        user = self.get(user_id)
        if user is None:
            raise FirestoreError("User not found", "not-found")
        return user

    @wraps_firestore_errors
    def create(
        self,
        user_id: str,
        email: str,
        name: str = "",
        referral_code: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> UserModel:
        """Create the profile for a signed-up account.

        A valid referral code is kept as ``referralId`` until the user pairs.
        """
        timestamp = to_iso(now or utc_now())
        user = UserModel(id=user_id, email=email, name=name, created_at=timestamp, updated_at=timestamp)

        if referral_code and self.referrals is not None:
            try:
                if self.referrals.validate(referral_code, now):
                    user.referral_id = referral_code
            except Exception as e:
                # Don't fail signup if referral lookup fails
                logger.error(f"Error processing referral code: {e}")

        self._ref(user_id).set(user.to_dict())
        logger.info(f"User profile created: {user_id}")
        return user

    def get_or_create(self, user_id: str, email: str, name: str = "") -> UserModel:
        return self.get(user_id) or self.create(user_id, email, name)

    @wraps_firestore_errors
    def update(self, user_id: str, updates: Dict[str, Any], now: Optional[datetime] = None) -> UserModel:
        data = {k: v for k, v in updates.items() if v is not None}
        data["updatedAt"] = to_iso(now or utc_now())
        self._ref(user_id).update(data)
        return self.get_or_raise(user_id)

    def register_fcm_token(self, user_id: str, token: str) -> UserModel:
        return self.update(user_id, {"fcmToken": token})
