"""
Date Idea Models
Date ideas, per-partner swipes, and mutual matches.
"""

from enum import Enum
from typing import Optional

from pydantic import Field

from candle.models.base import FirestoreModel


class SwipeDirection(str, Enum):
    LEFT = "left"
    RIGHT = "right"


class MatchStatus(str, Enum):
    NEW = "new"
    VIEWED = "viewed"
    COMPLETED = "completed"


class GeoPoint(FirestoreModel):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)


class DateIdea(FirestoreModel):
    """Date idea catalogue entry."""

    id: str
    title: str
    description: str = ""
    category: str = ""
    location: GeoPoint
    image_url: Optional[str] = None
    price_level: Optional[int] = None


class DateSwipe(FirestoreModel):
    id: str
    partnership_id: str
    user_id: str
    date_idea_id: str
    direction: SwipeDirection
    created_at: str


class DateMatch(FirestoreModel):
    """Created once both partners swipe right on the same idea."""

    id: str
    partnership_id: str
    date_idea_id: str
    matched_at: str
    status: MatchStatus = MatchStatus.NEW
    notes: Optional[str] = None
    date_idea: Optional[DateIdea] = None
