"""Daily photo prompts.

Each partnership gets one prompt per UTC day, rotating through a fixed list
by day of year. Both partners answer it with a photo.
"""

import base64
import binascii
import logging
from datetime import date, datetime
from typing import Any, List, Optional

from candle.models.photo_prompt import PhotoPrompt
from candle.services.firebase import PHOTO_PROMPTS, generate_id, query_direction, snapshot_data
from candle.utils.exceptions import FirestoreError, ValidationError, wraps_firestore_errors
from candle.utils.timeutils import to_iso, to_millis, utc_now

logger = logging.getLogger(__name__)

PROMPTS = [
    "Something that made you smile today",
    "Your view right now",
    "Something beautiful you noticed",
    "A moment of gratitude",
    "Something that reminded you of your partner",
    "A small joy from today",
    "Something that made you laugh",
    "A peaceful moment",
    "Something you're grateful for",
    "Your favorite thing about today",
    "A moment that made you happy",
    "Something that inspired you",
    "A beautiful detail you noticed",
    "Something that made your day better",
    "A memory you want to cherish",
]


def daily_prompt_text(day: date) -> str:
    """Prompt for a calendar day; January 1st is the first prompt."""
    return PROMPTS[(day.timetuple().tm_yday - 1) % len(PROMPTS)]


class PhotoPromptService:
    def __init__(
        self,
        db: Any,
        partnerships: Any,
        storage: Optional[Any] = None,
        notifications: Optional[Any] = None,
    ):
        self.db = db
        self.partnerships = partnerships
        self.storage = storage
        self.notifications = notifications

    def _collection(self):
        return self.db.collection(PHOTO_PROMPTS)

    @wraps_firestore_errors
    def create_daily_prompt(
        self, partnership_id: str, prompt_text: str, now: Optional[datetime] = None
    ) -> PhotoPrompt:
        now = now or utc_now()
        prompt = PhotoPrompt(
            id=generate_id(),
            partnership_id=partnership_id,
            prompt_text=prompt_text,
            prompt_date=now.date().isoformat(),
            created_at=to_iso(now),
        )
        self._collection().document(prompt.id).set(prompt.to_dict())
        return prompt

    @wraps_firestore_errors
    def get_daily_prompt(
        self,
        partnership_id: str,
        prompt_text: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> PhotoPrompt:
        """Today's prompt for the partnership, created on first request."""
        now = now or utc_now()
        docs = (
            self._collection()
            .where("partnershipId", "==", partnership_id)
            .where("promptDate", "==", now.date().isoformat())
            .limit(1)
            .get()
        )
        if docs:
            return PhotoPrompt.from_dict(snapshot_data(docs[0]))
        return self.create_daily_prompt(partnership_id, prompt_text or daily_prompt_text(now.date()), now)

    @wraps_firestore_errors
    def get(self, prompt_id: str) -> PhotoPrompt:
        data = snapshot_data(self._collection().document(prompt_id).get())
        if not data:
            raise FirestoreError("Photo prompt not found", "not-found")
        return PhotoPrompt.from_dict(data)

    @wraps_firestore_errors
    def history(self, partnership_id: str) -> List[PhotoPrompt]:
        """All prompts of the partnership, newest day first."""
        docs = (
            self._collection()
            .where("partnershipId", "==", partnership_id)
            .order_by("promptDate", direction=query_direction(descending=True))
            .get()
        )
        return [PhotoPrompt.from_dict(snapshot_data(doc)) for doc in docs]

    def upload_photo(
        self,
        prompt_id: str,
        user_id: str,
        data_base64: str,
        now: Optional[datetime] = None,
    ) -> PhotoPrompt:
        """Store the user's photo for a prompt and tell their partner."""
        now = now or utc_now()
        prompt = self.get(prompt_id)
        partnership = self.partnerships.get_or_raise(prompt.partnership_id)
        try:
            data = base64.b64decode(data_base64, validate=True)
        except (binascii.Error, ValueError):
            raise ValidationError("Photo must be base64 encoded")

        path = f"partnerships/{partnership.id}/photos/{prompt_id}/{user_id}/{to_millis(now)}.jpg"
        url = self.storage.upload(data, path, "image/jpeg")

        slot = "user1" if partnership.user_id1 == user_id else "user2"
        self._collection().document(prompt_id).update({
            f"{slot}PhotoUrl": url,
            f"{slot}UploadedAt": to_iso(now),
        })
        updated = self.get(prompt_id)
        logger.info(f"Photo for prompt {prompt_id} uploaded by {user_id}")

        partner_id = partnership.partner_of(user_id)
        if partner_id and self.notifications is not None:
            try:
                sender_name = self.notifications.user_name(user_id, "Your partner")
                self.notifications.send_photo_shared_notification(partner_id, sender_name, prompt_id, partnership.id)
            except Exception as e:
                # The upload already succeeded
                logger.error(f"Error sending photo shared notification: {e}")
        return updated
