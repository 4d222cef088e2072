"""
Referral Models
Referral code ownership records and per-use completion records.
"""

from enum import Enum
from typing import Optional

from candle.models.base import FirestoreModel


class ReferralStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"


class Referral(FirestoreModel):
    id: str
    referrer_id: str
    referral_code: str
    referred_user_id: Optional[str] = None
    status: ReferralStatus = ReferralStatus.PENDING
    reward_granted: bool = False
    reward_type: Optional[str] = None
    created_at: str
    completed_at: Optional[str] = None
    expires_at: Optional[str] = None


class ReferralStats(FirestoreModel):
    total_referrals: int = 0
    completed_referrals: int = 0
    pending_referrals: int = 0
    total_rewards_earned: int = 0
    current_reward: Optional[str] = None
