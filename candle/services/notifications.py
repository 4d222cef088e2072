"""Push notifications through Firebase Cloud Messaging."""

import logging
from typing import Any, Dict, Optional

from candle.services.firebase import PARTNERSHIPS, USERS, field_of
from candle.services.notification_settings import NotificationSettingsService

logger = logging.getLogger(__name__)


class NotificationService:
    """Sends FCM pushes to a user's registered device token.

    Every send is non-critical: failures are logged and reported as False,
    never raised to the caller.
    """

    def __init__(self, db: Any, messaging: Optional[Any] = None):
        """
        Args:
            db: Firestore client or LocalStore.
            messaging: ``firebase_admin.messaging`` module, or None in local
                mode where pushes are only logged.
        """
        self.db = db
        self.messaging = messaging

    def send_to_user(
        self,
        user_id: str,
        title: str,
        body: str,
        data: Optional[Dict[str, str]] = None,
    ) -> bool:
        """Send a push to one user. Returns True if it was handed to FCM."""
        try:
            user_doc = self.db.collection(USERS).document(user_id).get()
            token = field_of(user_doc, "fcmToken")
            if not token:
                logger.debug(f"No FCM token for user {user_id}, skipping push")
                return False

            if self.messaging is None:
                logger.info(f"[local push] to={user_id} title={title!r} body={body!r}")
                return True

            message = self.messaging.Message(
                token=token,
                notification=self.messaging.Notification(title=title, body=body),
                data={k: str(v) for k, v in (data or {}).items()},
            )
            message_id = self.messaging.send(message)
            logger.info(f"Push sent to {user_id}: {message_id}")
            return True
        except Exception as e:
            logger.error(f"Error sending push to {user_id}: {e}")
            return False

    def allows(self, user_id: str, preference: str) -> bool:
        """Whether the user's saved preferences permit this kind of push.

        Users who never saved preferences get every kind.
        """
        try:
            settings = NotificationSettingsService(self.db).stored(user_id)
        except Exception as e:
            logger.error(f"Error reading notification settings for {user_id}: {e}")
            return True
        return settings is None or bool(getattr(settings, preference))

    def user_name(self, user_id: str, fallback: str) -> str:
        doc = self.db.collection(USERS).document(user_id).get()
        return field_of(doc, "name") or fallback

    def send_message_notification(
        self,
        partnership_id: str,
        sender_id: str,
        message_type: str,
        message_id: str,
        content: str = "",
    ) -> bool:
        """Tell the sender's partner about a new chat message."""
        try:
            partnership = self.db.collection(PARTNERSHIPS).document(partnership_id).get()
            if not partnership.exists:
                logger.warning(f"Partnership {partnership_id} not found for message notification")
                return False

            user_id1 = field_of(partnership, "userId1")
            partner_id = field_of(partnership, "userId2") if user_id1 == sender_id else user_id1
            if not partner_id:
                logger.warning("No partner ID found for message notification")
                return False

            if not self.allows(partner_id, "partner_activity_notifications"):
                return False

            sender_name = self.user_name(sender_id, "Your partner")
            if message_type == "photo":
                body = f"{sender_name} sent a photo"
            elif message_type == "voice":
                body = f"{sender_name} sent a voice message"
            else:
                preview = content if len(content) <= 100 else content[:100] + "..."
                body = f"{sender_name}: {preview}" if preview else f"{sender_name} sent a message"

            return self.send_to_user(
                partner_id,
                "New Message",
                body,
                {"type": "message", "partnershipId": partnership_id, "messageId": message_id},
            )
        except Exception as e:
            logger.error(f"Error sending message notification: {e}")
            return False

    def send_streak_reminder(self, user_id: str, partner_name: str, hours_remaining: int) -> bool:
        if not self.allows(user_id, "streak_reminder"):
            return False
        return self.send_to_user(
            user_id,
            "Streak About to Expire!",
            f"Your streak is about to expire! Answer today's question with "
            f"{partner_name} to keep it alive.",
            {"type": "streak_reminder", "hoursRemaining": str(hours_remaining)},
        )

    def send_photo_shared_notification(
        self, partner_id: str, sender_name: str, prompt_id: str, partnership_id: str
    ) -> bool:
        if not self.allows(partner_id, "partner_activity_notifications"):
            return False
        return self.send_to_user(
            partner_id,
            "New Photo Shared",
            f"{sender_name} shared a photo with you!",
            {"type": "photo_shared", "promptId": prompt_id, "partnershipId": partnership_id},
        )

    def send_referral_notification(self, user_id: str, body: str) -> bool:
        return self.send_to_user(user_id, "Referral Reward!", body, {"type": "referral"})
