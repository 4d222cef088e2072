"""
Candle Models
Firestore document representations and data models.
"""

from candle.models.base import FirestoreModel
from candle.models.canvas import CanvasDrawing
from candle.models.countdown import Countdown
from candle.models.date_idea import DateIdea, DateMatch, DateSwipe, GeoPoint, MatchStatus, SwipeDirection
from candle.models.game import GameScore, GameState, GameType, UserGameStats
from candle.models.message import Message, MessageType
from candle.models.notification_settings import NotificationSettings
from candle.models.partnership import Partnership, PartnershipStatus
from candle.models.photo_prompt import PhotoPrompt
from candle.models.question import Answer, AnswerType, Question, QuestionType, Reaction
from candle.models.referral import Referral, ReferralStats, ReferralStatus
from candle.models.thumb_kiss import ThumbKiss
from candle.models.user import ReferralRewards, UserModel

__all__ = [
    "FirestoreModel",
    "CanvasDrawing",
    "Countdown",
    "DateIdea",
    "DateMatch",
    "DateSwipe",
    "GeoPoint",
    "MatchStatus",
    "SwipeDirection",
    "GameScore",
    "GameState",
    "GameType",
    "UserGameStats",
    "Message",
    "MessageType",
    "NotificationSettings",
    "Partnership",
    "PartnershipStatus",
    "PhotoPrompt",
    "Answer",
    "AnswerType",
    "Question",
    "QuestionType",
    "Reaction",
    "Referral",
    "ReferralStats",
    "ReferralStatus",
    "ThumbKiss",
    "ReferralRewards",
    "UserModel",
]
