"""Messaging between partners."""

import base64
import binascii
import logging
from datetime import datetime
from typing import Any, List, Optional

from candle.models.message import Message, MessageType
from candle.models.question import Reaction
from candle.services.firebase import MESSAGES, generate_id, query_direction, snapshot_data
from candle.utils.exceptions import FirestoreError, ValidationError, wraps_firestore_errors
from candle.utils.timeutils import to_iso, to_millis, utc_now

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 50

_MEDIA_FORMATS = {
    MessageType.PHOTO.value: ("jpg", "image/jpeg"),
    MessageType.VOICE.value: ("m4a", "audio/mp4"),
}


class MessageService:
    def __init__(self, db: Any, notifications: Optional[Any] = None, storage: Optional[Any] = None):
        self.db = db
        self.notifications = notifications
        self.storage = storage

    def _ref(self, message_id: str):
        return self.db.collection(MESSAGES).document(message_id)

    @wraps_firestore_errors
    def send(
        self,
        partnership_id: str,
        sender_id: str,
        content: str = "",
        message_type: MessageType = MessageType.TEXT,
        media_url: Optional[str] = None,
        question_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Message:
        """Store a message and notify the partner; a failed push never fails the send."""
        message_type = MessageType(message_type)
        if message_type == MessageType.TEXT and not content.strip():
            raise ValidationError("Message content cannot be empty")
        if message_type != MessageType.TEXT and not media_url:
            raise ValidationError(f"A {message_type.value} message needs a media URL")

        timestamp = to_iso(now or utc_now())
        message = Message(
            id=generate_id(),
            partnership_id=partnership_id,
            sender_id=sender_id,
            content=content,
            type=message_type,
            media_url=media_url,
            question_id=question_id,
            created_at=timestamp,
            updated_at=timestamp,
        )
        self._ref(message.id).set(message.to_dict())

        if self.notifications is not None:
            try:
                self.notifications.send_message_notification(
                    partnership_id, sender_id, message_type.value, message.id, content
                )
            except Exception as e:
                logger.error(f"Error sending message notification: {e}")

        return message

    @wraps_firestore_errors
    def list(
        self,
        partnership_id: str,
        limit: int = DEFAULT_PAGE_SIZE,
        after: Optional[str] = None,
    ) -> List[Message]:
        """Messages oldest first; ``after`` continues from a previously returned message id."""
        query = (
            self.db.collection(MESSAGES)
            .where("partnershipId", "==", partnership_id)
            .order_by("createdAt", direction=query_direction(descending=False))
        )
        if after:
            cursor = self._ref(after).get()
            if cursor.exists:
                query = query.start_after(cursor)
        return [Message.from_dict(snapshot_data(doc)) for doc in query.limit(limit).get()]

    @wraps_firestore_errors
    def list_by_question(self, partnership_id: str, question_id: str, limit: int = DEFAULT_PAGE_SIZE) -> List[Message]:
        docs = (
            self.db.collection(MESSAGES)
            .where("partnershipId", "==", partnership_id)
            .where("questionId", "==", question_id)
            .order_by("createdAt", direction=query_direction(descending=False))
            .limit(limit)
            .get()
        )
        return [Message.from_dict(snapshot_data(doc)) for doc in docs]

    @wraps_firestore_errors
    def get(self, message_id: str) -> Message:
        data = snapshot_data(self._ref(message_id).get())
        if not data:
            raise FirestoreError("Message not found", "not-found")
        return Message.from_dict(data)

    def upload_media(
        self,
        partnership_id: str,
        message_id: str,
        media_type: MessageType,
        data_base64: str,
        now: Optional[datetime] = None,
    ) -> str:
        """Upload a photo or voice note; returns its URL."""
        media_type = MessageType(media_type)
        if media_type.value not in _MEDIA_FORMATS:
            raise ValidationError("Only photo and voice media can be uploaded")
        try:
            data = base64.b64decode(data_base64, validate=True)
        except (binascii.Error, ValueError):
            raise ValidationError("Media must be base64 encoded")

        extension, content_type = _MEDIA_FORMATS[media_type.value]
        path = (
            f"partnerships/{partnership_id}/messages/{message_id}/"
            f"{to_millis(now or utc_now())}.{extension}"
        )
        return self.storage.upload(data, path, content_type)

    @wraps_firestore_errors
    def add_reaction(self, message_id: str, user_id: str, emoji: str, now: Optional[datetime] = None) -> Message:
        message = self.get(message_id)
        timestamp = to_iso(now or utc_now())
        reaction = Reaction(user_id=user_id, emoji=emoji, created_at=timestamp)
        self._ref(message_id).update({
            "reactions": [r.to_dict() for r in message.reactions] + [reaction.to_dict()],
            "updatedAt": timestamp,
        })
        return self.get(message_id)

    @wraps_firestore_errors
    def remove_reaction(self, message_id: str, user_id: str, now: Optional[datetime] = None) -> Message:
        """Drop every reaction the user left on the message."""
        message = self.get(message_id)
        self._ref(message_id).update({
            "reactions": [r.to_dict() for r in message.reactions if r.user_id != user_id],
            "updatedAt": to_iso(now or utc_now()),
        })
        return self.get(message_id)

    @wraps_firestore_errors
    def delete(self, message_id: str, now: Optional[datetime] = None) -> None:
        self._ref(message_id).update({"deleted": True, "updatedAt": to_iso(now or utc_now())})

    @wraps_firestore_errors
    def mark_read(self, message_id: str, user_id: str, now: Optional[datetime] = None) -> Message:
        message = self.get(message_id)
        timestamp = to_iso(now or utc_now())
        receipts = dict(message.read_receipts)
        receipts[user_id] = timestamp
        self._ref(message_id).update({"readReceipts": receipts, "updatedAt": timestamp})
        return self.get(message_id)
