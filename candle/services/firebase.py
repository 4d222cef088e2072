"""
Firebase Admin wiring.
Only imports firebase_admin when actually needed (not in local dev mode).
"""

import os
import uuid
from typing import Any, Callable, Optional

from candle.services.local_store import LocalStore
from candle.utils.logger import get_logger

logger = get_logger(__name__)

# Collection names
USERS = "users"
PARTNERSHIPS = "partnerships"
QUESTIONS = "questions"
ANSWERS = "answers"
MESSAGES = "messages"
CANVAS_DRAWINGS = "canvasDrawings"
GAME_STATES = "gameStates"
GAME_SCORES = "gameScores"
COUNTDOWNS = "countdowns"
DATE_IDEAS = "dateIdeas"
DATE_SWIPES = "dateSwipes"
DATE_MATCHES = "dateMatches"
THUMB_KISSES = "thumbKisses"
REFERRALS = "referrals"
PHOTO_PROMPTS = "photoPrompts"

# Subcollection under users/{uid}
SETTINGS = "settings"

_app = None


def initialize_firebase(credentials_path: str, storage_bucket: str = "") -> Any:
    """Initialize the default Firebase app if not already initialized."""
    global _app
    if _app is not None:
        return _app

    import firebase_admin
    from firebase_admin import credentials

    options = {"storageBucket": storage_bucket} if storage_bucket else None

    if firebase_admin._apps:
        _app = firebase_admin.get_app()
    elif credentials_path and os.path.exists(credentials_path):
        cred = credentials.Certificate(credentials_path)
        _app = firebase_admin.initialize_app(cred, options)
        logger.info(f"Firebase initialized with credentials: {credentials_path}")
    else:
        # Use default application credentials
        _app = firebase_admin.initialize_app(options=options)
        logger.info("Firebase initialized with default credentials")

    return _app


def generate_id() -> str:
    """Random document ID."""
    return uuid.uuid4().hex


def run_transaction(db: Any, callback: Callable[[Any], Any]) -> Any:
    """
    Run callback(transaction) atomically against Firestore or LocalStore.

    The callback must read with ``ref.get(transaction=transaction)`` and
    write with ``transaction.set/update/delete`` so both backends behave
    the same. Firestore may retry the callback on contention.
    """
    if isinstance(db, LocalStore):
        return db.run_transaction(callback)

    from google.cloud import firestore

    @firestore.transactional
    def _run(transaction):
        return callback(transaction)

    return _run(db.transaction())


def query_direction(descending: bool) -> str:
    """Firestore order_by direction constant."""
    return "DESCENDING" if descending else "ASCENDING"


def snapshot_data(snapshot: Any) -> Optional[dict]:
    """Document dict with its id, or None for a missing document."""
    if not snapshot.exists:
        return None
    data = snapshot.to_dict() or {}
    data.setdefault("id", snapshot.id)
    return data


def field_of(snapshot: Any, field: str, default: Any = None) -> Any:
    """Read a field that may be absent; Firestore's own ``get`` raises KeyError."""
    if not snapshot.exists:
        return default
    return (snapshot.to_dict() or {}).get(field, default)
