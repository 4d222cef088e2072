"""Per-user notification preferences."""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from candle.models.notification_settings import NotificationSettings
from candle.services.firebase import SETTINGS, USERS, snapshot_data
from candle.utils.exceptions import ValidationError, wraps_firestore_errors
from candle.utils.timeutils import to_iso, utc_now

logger = logging.getLogger(__name__)

SETTINGS_DOC = "notifications"


class NotificationSettingsService:
    def __init__(self, db: Any):
        self.db = db

    def _ref(self, user_id: str):
        return self.db.collection(USERS).document(user_id).collection(SETTINGS).document(SETTINGS_DOC)

    @wraps_firestore_errors
    def stored(self, user_id: str) -> Optional[NotificationSettings]:
        """Saved preferences, or None when the user never changed them."""
        data = snapshot_data(self._ref(user_id).get())
        return NotificationSettings.from_dict(data) if data else None

    def get(self, user_id: str) -> NotificationSettings:
        return self.stored(user_id) or NotificationSettings()

    @wraps_firestore_errors
    def update(self, user_id: str, changes: Dict[str, Any], now: Optional[datetime] = None) -> NotificationSettings:
        """Merge ``changes`` (camelCase keys) into the saved preferences.

        Turning push off also drops the user's FCM token so nothing more is
        delivered to the device.
        """
        merged = self.get(user_id).to_dict()
        merged.update({k: v for k, v in changes.items() if v is not None})
        merged["updatedAt"] = to_iso(now or utc_now())
        try:
            settings = NotificationSettings.model_validate(merged)
        except ValueError as e:
            raise ValidationError("Invalid notification settings", {"errors": str(e)})

        self._ref(user_id).set(settings.to_dict(), merge=True)
        if changes.get("pushEnabled") is False:
            user_ref = self.db.collection(USERS).document(user_id)
            if user_ref.get().exists:
                user_ref.update({"fcmToken": None})
                logger.info(f"Push disabled for {user_id}, FCM token removed")
        return settings
