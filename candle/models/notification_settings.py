"""
Notification Settings Model
Per-user push preferences, stored at users/{uid}/settings/notifications.
"""

from typing import Optional

from pydantic import Field

from candle.models.base import FirestoreModel


class NotificationSettings(FirestoreModel):
    """Everything is off until the user opts in."""

    push_enabled: bool = False
    daily_prompt_reminder: bool = False
    daily_question_reminder: bool = False
    streak_reminder: bool = False
    partner_activity_notifications: bool = False
    preferred_notification_time: str = Field(default="09:00", pattern=r"^([01]\d|2[0-3]):[0-5]\d$")
    updated_at: Optional[str] = None
