"""
Countdown Model
Countdowns to special dates.
"""

from typing import Optional

from candle.models.base import FirestoreModel


class Countdown(FirestoreModel):
    id: str
    partnership_id: str
    title: str
    target_date: str
    description: Optional[str] = None
    created_by: str
    created_at: str
    updated_at: str
