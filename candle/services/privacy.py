"""
Privacy operations: data export and account deletion.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from candle.models.partnership import PartnershipStatus
from candle.services.firebase import (
    ANSWERS,
    CANVAS_DRAWINGS,
    COUNTDOWNS,
    GAME_SCORES,
    MESSAGES,
    PARTNERSHIPS,
    PHOTO_PROMPTS,
    SETTINGS,
    USERS,
    snapshot_data,
)
from candle.utils.exceptions import wraps_firestore_errors
from candle.utils.timeutils import to_iso, utc_now

logger = logging.getLogger(__name__)

# (collection, owner field or None for everything in the partnership)
_EXPORTED = (
    ("messages", MESSAGES, None),
    ("answers", ANSWERS, "userId"),
    ("canvasDrawings", CANVAS_DRAWINGS, "createdBy"),
    ("countdowns", COUNTDOWNS, "createdBy"),
    ("gameScores", GAME_SCORES, "userId"),
    ("photoPrompts", PHOTO_PROMPTS, None),
)

_DELETED = (
    (MESSAGES, "senderId"),
    (ANSWERS, "userId"),
    (CANVAS_DRAWINGS, "createdBy"),
    (COUNTDOWNS, "createdBy"),
    (GAME_SCORES, "userId"),
)


class PrivacyService:
    def __init__(self, db: Any, storage: Optional[Any] = None):
        self.db = db
        self.storage = storage

    def _partnership_docs(self, user_id: str) -> List[Any]:
        found = {}
        for field in ("userId1", "userId2"):
            for doc in self.db.collection(PARTNERSHIPS).where(field, "==", user_id).get():
                found[doc.id] = doc
        return list(found.values())

    def _query(self, collection: str, partnership_id: str, owner_field: Optional[str], user_id: str):
        query = self.db.collection(collection).where("partnershipId", "==", partnership_id)
        if owner_field:
            query = query.where(owner_field, "==", user_id)
        return query.get()

    @staticmethod
    def _with_id(doc: Any) -> Dict[str, Any]:
        data = snapshot_data(doc) or {}
        data["id"] = doc.id
        return data

    @wraps_firestore_errors
    def export_user_data(self, user_id: str, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Everything stored about the user, as one JSON-ready document."""
        export: Dict[str, Any] = {
            "userId": user_id,
            "exportedAt": to_iso(now or utc_now()),
            "user": snapshot_data(self.db.collection(USERS).document(user_id).get()),
            "notificationSettings": [
                self._with_id(doc)
                for doc in self.db.collection(USERS).document(user_id).collection(SETTINGS).get()
            ],
            "partnerships": [],
        }
        for key, _, _ in _EXPORTED:
            export[key] = []

        for partnership_doc in self._partnership_docs(user_id):
            export["partnerships"].append(self._with_id(partnership_doc))
            for key, collection, owner_field in _EXPORTED:
                export[key].extend(
                    self._with_id(doc)
                    for doc in self._query(collection, partnership_doc.id, owner_field, user_id)
                )

        logger.info(f"Exported data for {user_id}")
        return export

    @wraps_firestore_errors
    def delete_account(self, user_id: str, now: Optional[datetime] = None) -> None:
        """Delete the user's profile and content and leave their partnerships.

        Each partnership is paused with the user's slot emptied, so the
        partner keeps the shared history the user did not author.
        """
        timestamp = to_iso(now or utc_now())

        for partnership_doc in self._partnership_docs(user_id):
            batch = self.db.batch()
            for collection, owner_field in _DELETED:
                for doc in self._query(collection, partnership_doc.id, owner_field, user_id):
                    batch.delete(doc.reference)

            data = snapshot_data(partnership_doc) or {}
            slot, other = ("userId1", "userId2") if data.get("userId1") == user_id else ("userId2", "userId1")
            batch.update(partnership_doc.reference, {
                slot: "",
                "status": PartnershipStatus.PAUSED.value,
                "updatedAt": timestamp,
            })
            partner_id = data.get(other)
            if partner_id:
                partner_ref = self.db.collection(USERS).document(partner_id)
                if partner_ref.get().exists:
                    batch.update(partner_ref, {"partnerId": None, "updatedAt": timestamp})
            batch.commit()

        user_ref = self.db.collection(USERS).document(user_id)
        settings_docs = user_ref.collection(SETTINGS).get()
        if settings_docs:
            batch = self.db.batch()
            for doc in settings_docs:
                batch.delete(doc.reference)
            batch.commit()

        user_data = snapshot_data(user_ref.get()) or {}
        avatar = user_data.get("avatar")
        if avatar and self.storage is not None:
            try:
                self.storage.delete(avatar)
            except Exception as e:
                # The account still goes away without its picture
                logger.warning(f"Error deleting avatar of {user_id}: {e}")

        user_ref.delete()
        logger.info(f"Account data deleted for {user_id}")
