"""Streak engine: 24-hour activity decay, milestones, and one-time restore.

A partnership's streak grows by one per calendar day on which both partners
answer the day's question. If no qualifying activity happens for a full
window (24 hours by default) the streak resets to zero. The first time that
happens the lost count is kept so the couple can restore it once.
"""

import logging
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from candle.services.firebase import field_of, run_transaction
from candle.utils.exceptions import FirestoreError, get_error_message, wraps_firestore_errors
from candle.utils.timeutils import (
    is_same_day,
    parse_iso,
    to_iso,
    utc_now,
    whole_hours_between,
    whole_minutes_between,
)

logger = logging.getLogger(__name__)


@dataclass
class StreakStatus:
    is_active: bool
    hours_remaining: int
    should_reset: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "isActive": self.is_active,
            "hoursRemaining": self.hours_remaining,
            "shouldReset": self.should_reset,
        }


@dataclass
class MilestoneInfo:
    is_milestone: bool
    type: str
    message: str

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["isMilestone"] = data.pop("is_milestone")
        return data


MILESTONES: List[Dict[str, Any]] = [
    {"days": 3, "type": "3-day", "message": "🔥 3-day streak! You're on fire!"},
    {"days": 7, "type": "7-day", "message": "🌟 7-day streak! Amazing week!"},
    {"days": 30, "type": "30-day", "message": "💫 30-day streak! A full month!"},
    {"days": 90, "type": "90-day", "message": "🎉 90-day streak! 3 months strong!"},
    {"days": 180, "type": "180-day", "message": "🏆 180-day streak! Half a year!"},
    {"days": 365, "type": "365-day", "message": "👑 365-day streak! A full year!"},
]

_INACTIVE = StreakStatus(is_active=False, hours_remaining=0, should_reset=False)


def check_milestone(streak_count: int) -> MilestoneInfo:
    """Look up the milestone reached at exactly this streak count."""
    for milestone in MILESTONES:
        if milestone["days"] == streak_count:
            return MilestoneInfo(True, milestone["type"], milestone["message"])
    return MilestoneInfo(False, "", "")


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}{'' if count == 1 else 's'}"


def get_time_remaining(last_activity_date: str, now: Optional[datetime] = None, window_hours: int = 24) -> str:
    """Human-readable time left before the streak expires, minute resolution."""
    try:
        last_activity = parse_iso(last_activity_date)
    except (TypeError, ValueError) as e:
        logger.error(f"Error calculating time remaining: {e}")
        return "Unknown"

    minutes_remaining = window_hours * 60 - whole_minutes_between(last_activity, now or utc_now())
    if minutes_remaining <= 0:
        return "Streak expired"

    hours, minutes = divmod(minutes_remaining, 60)
    if hours >= 1:
        if minutes > 0:
            return f"{_plural(hours, 'hour')} and {_plural(minutes, 'minute')} left"
        return f"{_plural(hours, 'hour')} left"
    return f"{_plural(minutes, 'minute')} left"


class StreakService:
    """Streak checks and updates against a partnership document."""

    def __init__(
        self,
        db: Any,
        partnerships: Any,
        questions: Any,
        notifications: Optional[Any] = None,
        window_hours: int = 24,
        reminder_hours: int = 6,
        timezone: str = "UTC",
    ):
        self.db = db
        self.partnerships = partnerships
        self.questions = questions
        self.notifications = notifications
        self.window_hours = window_hours
        self.reminder_hours = reminder_hours
        self.timezone = timezone

    def check_status(self, partnership_id: str, now: Optional[datetime] = None) -> StreakStatus:
        """Validate the streak, resetting it when the window has lapsed."""
        now = now or utc_now()
        partnership = self.partnerships.get(partnership_id)
        if partnership is None or not partnership.last_activity_date:
            return _INACTIVE

        # Treat streakCount 0 as inactive regardless of lastActivityDate
        if partnership.streak_count == 0:
            return _INACTIVE

        hours_since = whole_hours_between(parse_iso(partnership.last_activity_date), now)
        if hours_since >= self.window_hours:
            self._expire(partnership_id, now)
            return StreakStatus(is_active=False, hours_remaining=0, should_reset=True)

        hours_remaining = self.window_hours - hours_since
        if 0 < hours_remaining < self.reminder_hours:
            self._send_reminders(partnership, hours_remaining)

        return StreakStatus(is_active=True, hours_remaining=max(0, hours_remaining), should_reset=False)

    @wraps_firestore_errors
    def _expire(self, partnership_id: str, now: datetime) -> None:
        """Reset a lapsed streak, keeping the old count for a one-time restore."""
        ref = self.partnerships.document_ref(partnership_id)
        timestamp = to_iso(now)

        def _reset(transaction):
            snapshot = ref.get(transaction=transaction)
            if not snapshot.exists:
                return
            count = field_of(snapshot, "streakCount") or 0
            last_activity = field_of(snapshot, "lastActivityDate")
            # Another request already reset it
            if count == 0 or not last_activity:
                return
            if whole_hours_between(parse_iso(last_activity), now) < self.window_hours:
                return

            updates = {"streakCount": 0, "lastActivityDate": timestamp, "updatedAt": timestamp}
            if field_of(snapshot, "streakRestoreUsed") is not True:
                updates["previousStreakCount"] = count
                updates["streakRestoreAvailable"] = True
            transaction.update(ref, updates)

        run_transaction(self.db, _reset)
        logger.info(f"Streak reset for partnership {partnership_id}")

    def _send_reminders(self, partnership: Any, hours_remaining: int) -> None:
        if self.notifications is None:
            return
        try:
            for user_id in partnership.member_ids:
                partner_id = partnership.partner_of(user_id)
                partner_name = self.notifications.user_name(partner_id, "your partner") if partner_id else "your partner"
                self.notifications.send_streak_reminder(user_id, partner_name, hours_remaining)
        except Exception as e:
            # Don't fail the streak check if the reminder fails
            logger.error(f"Error sending streak reminder notification: {e}")

    def record_activity(
        self,
        partnership_id: str,
        question_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """Count today's activity toward the streak once both partners answered."""
        now = now or utc_now()
        try:
            self.partnerships.get_or_raise(partnership_id)

            if not question_id:
                self.partnerships.update(partnership_id, {"lastActivityDate": to_iso(now)}, now)
                return {"streakIncremented": False}

            if len(self.questions.get_answers(question_id, partnership_id)) < 2:
                return {"streakIncremented": False}

            incremented, new_count = self._increment_once_per_day(partnership_id, now)
        except FirestoreError:
            raise
        except Exception as e:
            raise FirestoreError(f"Failed to record activity: {get_error_message(e)}", "unknown", e) from e

        if not incremented:
            return {"streakIncremented": False}

        result: Dict[str, Any] = {"streakIncremented": True, "streakCount": new_count}
        milestone = check_milestone(new_count)
        if milestone.is_milestone:
            result["milestone"] = milestone.to_dict()
        logger.info(f"Streak for {partnership_id} is now {new_count}")
        return result

    def _increment_once_per_day(self, partnership_id: str, now: datetime):
        ref = self.partnerships.document_ref(partnership_id)
        timestamp = to_iso(now)

        def _increment(transaction):
            snapshot = ref.get(transaction=transaction)
            if not snapshot.exists:
                raise FirestoreError("Partnership not found", "not-found")
            count = field_of(snapshot, "streakCount") or 0
            last_activity = field_of(snapshot, "lastActivityDate")
            # New partnerships may increment even if lastActivityDate is today
            if last_activity and count > 0 and is_same_day(parse_iso(last_activity), now, self.timezone):
                return False, count
            transaction.update(ref, {
                "streakCount": count + 1,
                "lastActivityDate": timestamp,
                "updatedAt": timestamp,
            })
            return True, count + 1

        return run_transaction(self.db, _increment)

    def restore(self, partnership_id: str, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Use the one-time restore to bring back the streak lost on the last reset."""
        now = now or utc_now()
        try:
            partnership = self.partnerships.get_or_raise(partnership_id)

            if not partnership.streak_restore_available or partnership.streak_restore_used:
                return {"success": False, "message": "Streak restore is not available"}

            previous = partnership.previous_streak_count or 0
            if previous == 0:
                return {"success": False, "message": "No previous streak to restore"}

            self.partnerships.update(partnership_id, {
                "streakCount": previous,
                "streakRestoreUsed": True,
                "streakRestoreAvailable": False,
                "lastActivityDate": to_iso(now),
            }, now)
        except Exception as e:
            logger.error(f"Error restoring streak: {e}")
            return {"success": False, "message": f"Failed to restore streak: {get_error_message(e)}"}

        return {"success": True, "message": f"Streak restored to {previous} days!"}

    def time_remaining(self, partnership_id: str, now: Optional[datetime] = None) -> str:
        partnership = self.partnerships.get_or_raise(partnership_id)
        if not partnership.last_activity_date or partnership.streak_count == 0:
            return "Streak expired"
        return get_time_remaining(partnership.last_activity_date, now, self.window_hours)
