"""
User Model
Represents user data stored in Firestore.
"""

from typing import Optional

from pydantic import Field

from candle.models.base import FirestoreModel


class ReferralRewards(FirestoreModel):
    """Rewards earned through referrals."""

    free_months: int = Field(default=0, ge=0)
    streak_restores: int = Field(default=0, ge=0)


class UserModel(FirestoreModel):
    """User document."""

    id: str = Field(description="Unique user ID (from Firebase Auth)")
    email: str
    name: str = ""
    avatar: Optional[str] = None
    partner_id: Optional[str] = None
    anniversary_date: Optional[str] = None
    referral_code: Optional[str] = None
    referral_id: Optional[str] = None
    referral_rewards: Optional[ReferralRewards] = None
    fcm_token: Optional[str] = None
    created_at: str
    updated_at: str
