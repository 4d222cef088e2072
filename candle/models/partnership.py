"""
Partnership Model
The pairing record binding two user accounts; root of all per-couple data.
"""

from enum import Enum
from typing import List, Optional

from pydantic import Field

from candle.models.base import FirestoreModel


class PartnershipStatus(str, Enum):
    """Lifecycle of a partnership."""
    PENDING = "pending"
    ACTIVE = "active"
    PAUSED = "paused"


class Partnership(FirestoreModel):
    """Partnership document."""

    id: str = Field(description="Partnership ID")
    user_id1: str = Field(description="User who created the invite")
    user_id2: str = Field(default="", description="User who accepted the invite")
    status: PartnershipStatus = Field(default=PartnershipStatus.PENDING)
    anniversary_date: Optional[str] = None
    streak_count: int = Field(default=0, ge=0)
    last_activity_date: str = Field(default="", description="Empty until first activity")
    previous_streak_count: Optional[int] = None
    streak_restore_available: bool = False
    streak_restore_used: bool = False
    last_canvas_activity_date: Optional[str] = None
    invite_code: Optional[str] = None
    skipped_question_ids: List[str] = Field(default_factory=list)
    typing_users: List[str] = Field(default_factory=list)
    created_at: str
    updated_at: str

    @property
    def member_ids(self) -> List[str]:
        return [uid for uid in (self.user_id1, self.user_id2) if uid]

    def has_member(self, user_id: str) -> bool:
        return user_id in self.member_ids

    def partner_of(self, user_id: str) -> Optional[str]:
        """The other member's ID, or None when the partnership is unpaired."""
        partner_id = self.user_id2 if self.user_id1 == user_id else self.user_id1
        return partner_id or None
