"""
Shared application dependencies.
Supports both Firebase mode and local development mode.
"""

import hashlib
import os
import time
from typing import Dict, Optional

from fastapi import Depends, Header, HTTPException, status

from candle.config import Settings, get_settings
from candle.models.partnership import Partnership
from candle.services.canvas import CanvasService
from candle.services.countdowns import CountdownService
from candle.services.date_ideas import DateIdeaService
from candle.services.games import GameScoreService, GameStateService
from candle.services.messages import MessageService
from candle.services.notification_settings import NotificationSettingsService
from candle.services.notifications import NotificationService
from candle.services.partnerships import PartnershipService
from candle.services.photo_prompts import PhotoPromptService
from candle.services.privacy import PrivacyService
from candle.services.questions import QuestionService
from candle.services.referrals import ReferralService
from candle.services.storage import StorageService
from candle.services.streaks import StreakService
from candle.services.thumb_kisses import ThumbKissService
from candle.services.users import UserService
from candle.utils.logger import bind_request_context, get_logger

logger = get_logger(__name__)

# Global Instances
_db_client = None
_is_local_mode = None
_canvas_service = None
_game_state_service = None
_date_idea_service = None


def _check_local_mode() -> bool:
    """Determine if we should use local mode (no Firebase)."""
    global _is_local_mode
    if _is_local_mode is not None:
        return _is_local_mode

    settings = get_settings()
    cred_path = settings.firebase_credentials_path

    if not cred_path or not os.path.exists(cred_path):
        logger.info("Firebase credentials not found - running in LOCAL DEV mode")
        _is_local_mode = True
    else:
        _is_local_mode = False

    return _is_local_mode


def get_db_client(settings: Settings = Depends(get_settings)):
    """Get database client - Firestore in prod, LocalStore in dev."""
    global _db_client
    if _db_client is not None:
        return _db_client

    if _check_local_mode():
        from candle.services.local_store import get_local_store
        _db_client = get_local_store()
        logger.info("Using LocalStore (in-memory) database")
    else:
        from firebase_admin import firestore
        _db_client = firestore.client()
        logger.info("Using Firestore database")

    return _db_client


# Local Auth Store (for dev mode without Firebase)
_local_users: Dict[str, dict] = {}
_local_tokens: Dict[str, str] = {}  # token -> uid


def _hash_password(password: str) -> str:
    return hashlib.sha256(password.encode()).hexdigest()


def _issue_token(uid: str) -> str:
    token = hashlib.sha256(f"{uid}:{time.time_ns()}".encode()).hexdigest()
    _local_tokens[token] = uid
    return token


def local_create_user(email: str, password: str, name: str = "") -> Optional[dict]:
    """Register a dev account; None if the email is taken."""
    email = email.lower()
    uid = hashlib.sha256(email.encode()).hexdigest()[:28]
    if uid in _local_users:
        return None
    _local_users[uid] = {
        "uid": uid,
        "email": email,
        "name": name,
        "password": _hash_password(password),
    }
    return {"uid": uid, "token": _issue_token(uid), "email": email}


def local_login(email: str, password: str) -> Optional[dict]:
    email = email.lower()
    for uid, user in _local_users.items():
        if user["email"] == email and user["password"] == _hash_password(password):
            return {"uid": uid, "token": _issue_token(uid), "email": email}
    return None


def local_verify_token(token: str) -> Optional[dict]:
    uid = _local_tokens.get(token)
    if uid and uid in _local_users:
        return _local_users[uid]
    return None


def delete_auth_account(uid: str) -> None:
    """Remove the sign-in account itself, after its data is gone."""
    if _check_local_mode():
        _local_users.pop(uid, None)
        for token in [t for t, owner in _local_tokens.items() if owner == uid]:
            del _local_tokens[token]
        return
    from firebase_admin import auth as firebase_auth
    firebase_auth.delete_user(uid)


async def get_current_user(
    authorization: Optional[str] = Header(None),
    settings: Settings = Depends(get_settings),
) -> Dict[str, str]:
    """Get current user from auth token."""
    if not authorization:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header missing",
        )

    if not authorization.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authorization header format",
        )

    token = authorization.replace("Bearer ", "")

    if _check_local_mode():
        user = local_verify_token(token)
        if not user:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid or expired token",
            )
        bind_request_context(uid=user["uid"])
        return {"uid": user["uid"], "email": user.get("email", ""), "name": user.get("name", "")}
    else:
        try:
            from firebase_admin import auth as firebase_auth
            decoded = firebase_auth.verify_id_token(token)
            bind_request_context(uid=decoded["uid"])
            return {"uid": decoded["uid"], "email": decoded.get("email", ""), "name": decoded.get("name", "")}
        except Exception as e:
            logger.error(f"Firebase token verification failed: {e}")
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token")


# ── Services ──────────────────────────────────────────────────────────────

def get_notification_service(db_client=Depends(get_db_client)) -> NotificationService:
    if _check_local_mode():
        return NotificationService(db_client)
    from firebase_admin import messaging
    return NotificationService(db_client, messaging)


def get_storage_service(settings: Settings = Depends(get_settings)) -> StorageService:
    if _check_local_mode() or not settings.storage_bucket:
        return StorageService(local_dir=settings.local_media_dir)
    from firebase_admin import storage
    return StorageService(bucket=storage.bucket())


def get_referral_service(
    db_client=Depends(get_db_client),
    notifications: NotificationService = Depends(get_notification_service),
    settings: Settings = Depends(get_settings),
) -> ReferralService:
    return ReferralService(db_client, notifications, settings.referral_expiry_days)


def get_user_service(
    db_client=Depends(get_db_client),
    referrals: ReferralService = Depends(get_referral_service),
) -> UserService:
    return UserService(db_client, referrals)


def get_partnership_service(
    db_client=Depends(get_db_client),
    referrals: ReferralService = Depends(get_referral_service),
) -> PartnershipService:
    return PartnershipService(db_client, referrals)


def get_question_service(
    db_client=Depends(get_db_client),
    partnerships: PartnershipService = Depends(get_partnership_service),
) -> QuestionService:
    return QuestionService(db_client, partnerships)


def get_streak_service(
    db_client=Depends(get_db_client),
    partnerships: PartnershipService = Depends(get_partnership_service),
    questions: QuestionService = Depends(get_question_service),
    notifications: NotificationService = Depends(get_notification_service),
    settings: Settings = Depends(get_settings),
) -> StreakService:
    return StreakService(
        db_client,
        partnerships,
        questions,
        notifications,
        window_hours=settings.streak_window_hours,
        reminder_hours=settings.streak_reminder_hours,
        timezone=settings.streak_timezone,
    )


def get_thumb_kiss_service(
    db_client=Depends(get_db_client),
    settings: Settings = Depends(get_settings),
) -> ThumbKissService:
    return ThumbKissService(db_client, settings.tap_sync_window_ms, settings.tap_retention_minutes)


def get_message_service(
    db_client=Depends(get_db_client),
    notifications: NotificationService = Depends(get_notification_service),
    storage: StorageService = Depends(get_storage_service),
) -> MessageService:
    return MessageService(db_client, notifications, storage)


def get_notification_settings_service(db_client=Depends(get_db_client)) -> NotificationSettingsService:
    return NotificationSettingsService(db_client)


def get_privacy_service(
    db_client=Depends(get_db_client),
    storage: StorageService = Depends(get_storage_service),
) -> PrivacyService:
    return PrivacyService(db_client, storage)


def get_photo_prompt_service(
    db_client=Depends(get_db_client),
    partnerships: PartnershipService = Depends(get_partnership_service),
    storage: StorageService = Depends(get_storage_service),
    notifications: NotificationService = Depends(get_notification_service),
) -> PhotoPromptService:
    return PhotoPromptService(db_client, partnerships, storage, notifications)


def get_countdown_service(db_client=Depends(get_db_client)) -> CountdownService:
    return CountdownService(db_client)


def get_game_score_service(db_client=Depends(get_db_client)) -> GameScoreService:
    return GameScoreService(db_client)


# Debouncers and the catalogue cache live on these, so they outlive a request

def get_canvas_service(
    db_client=Depends(get_db_client),
    settings: Settings = Depends(get_settings),
) -> CanvasService:
    global _canvas_service
    if _canvas_service is None:
        _canvas_service = CanvasService(
            db_client, PartnershipService(db_client), settings.canvas_debounce_ms
        )
    return _canvas_service


def get_game_state_service(
    db_client=Depends(get_db_client),
    settings: Settings = Depends(get_settings),
) -> GameStateService:
    global _game_state_service
    if _game_state_service is None:
        _game_state_service = GameStateService(db_client, settings.game_state_debounce_ms)
    return _game_state_service


def get_date_idea_service(
    db_client=Depends(get_db_client),
    settings: Settings = Depends(get_settings),
) -> DateIdeaService:
    global _date_idea_service
    if _date_idea_service is None:
        _date_idea_service = DateIdeaService(
            db_client, PartnershipService(db_client), settings.date_ideas_cache_ttl
        )
    return _date_idea_service


async def get_user_partnership(
    user: Dict[str, str] = Depends(get_current_user),
    partnerships: PartnershipService = Depends(get_partnership_service),
) -> Partnership:
    """The caller's partnership; 404 when they have none."""
    partnership = partnerships.get_for_user(user["uid"])
    if partnership is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No partnership found")
    bind_request_context(partnershipId=partnership.id)
    return partnership


class RateLimiter:
    def __init__(self, max_requests: int = 100, window_seconds: int = 60):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.requests: Dict[str, list] = {}

    def is_allowed(self, key: str) -> bool:
        now = time.time()
        cutoff = now - self.window_seconds
        if key not in self.requests:
            self.requests[key] = []
        self.requests[key] = [t for t in self.requests[key] if t > cutoff]
        if len(self.requests[key]) < self.max_requests:
            self.requests[key].append(now)
            return True
        return False


# Taps arrive in bursts; this bounds them per user
_tap_rate_limiter = RateLimiter(max_requests=60, window_seconds=10)


def check_tap_rate_limit(user: Dict[str, str] = Depends(get_current_user)) -> Dict[str, str]:
    uid = user.get("uid", "anonymous")
    if not _tap_rate_limiter.is_allowed(uid):
        raise HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail="Rate limit exceeded")
    return user


def reset_state() -> None:
    """Drop cached clients, services and local accounts."""
    global _db_client, _is_local_mode, _canvas_service, _game_state_service, _date_idea_service
    _db_client = None
    _is_local_mode = None
    _canvas_service = None
    _game_state_service = None
    _date_idea_service = None
    _local_users.clear()
    _local_tokens.clear()
    _tap_rate_limiter.requests.clear()
