"""
Configuration module for the Candle backend.
Loads settings from .env file and environment variables.
"""

import os
from pathlib import Path
from typing import List

# Try to load .env file
_env_path = Path(__file__).parent.parent / ".env"
if _env_path.exists():
    with open(_env_path) as f:
        for line in f:
            line = line.strip()
            if line and not line.startswith("#") and "=" in line:
                key, _, value = line.partition("=")
                key = key.strip()
                value = value.strip().strip('"').strip("'")
                if key and key not in os.environ:
                    os.environ[key] = value


class Settings:
    """Application configuration loaded from environment variables."""

    def __init__(self):
        self.app_name: str = os.getenv("APP_NAME", "Candle")
        self.api_version: str = os.getenv("API_VERSION", "v1")
        self.debug: bool = os.getenv("DEBUG", "true").lower() in ("true", "1", "yes")
        self.environment: str = os.getenv("ENVIRONMENT", "development")

        # Firebase
        self.firebase_credentials_path: str = os.getenv("FIREBASE_CREDENTIALS_PATH", "")
        self.storage_bucket: str = os.getenv("STORAGE_BUCKET", "")

        # CORS
        cors_raw = os.getenv("CORS_ORIGINS", "*")
        self.cors_origins: List[str] = [s.strip() for s in cors_raw.split(",")]

        # Streaks
        self.streak_window_hours: int = int(os.getenv("STREAK_WINDOW_HOURS", "24"))
        self.streak_reminder_hours: int = int(os.getenv("STREAK_REMINDER_HOURS", "6"))
        self.streak_timezone: str = os.getenv("STREAK_TIMEZONE", "UTC")

        # Thumb kisses
        self.tap_sync_window_ms: int = int(os.getenv("TAP_SYNC_WINDOW_MS", "500"))
        self.tap_retention_minutes: int = int(os.getenv("TAP_RETENTION_MINUTES", "5"))

        # Debounce delays (milliseconds)
        self.canvas_debounce_ms: int = int(os.getenv("CANVAS_DEBOUNCE_MS", "500"))
        self.game_state_debounce_ms: int = int(os.getenv("GAME_STATE_DEBOUNCE_MS", "300"))

        # Referrals
        self.referral_expiry_days: int = int(os.getenv("REFERRAL_EXPIRY_DAYS", "30"))

        # Date ideas catalogue cache
        self.date_ideas_cache_ttl: int = int(os.getenv("DATE_IDEAS_CACHE_TTL", "900"))

        # Local dev mode storage
        self.local_data_dir: str = os.getenv("LOCAL_DATA_DIR", "")
        self.local_media_dir: str = os.getenv("LOCAL_MEDIA_DIR", "./cache/media")


_settings = None


def get_settings() -> Settings:
    """Get application settings singleton."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
