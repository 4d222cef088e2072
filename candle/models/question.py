"""
Question and Answer Models
Daily questions and each partner's answers.
"""

from enum import Enum
from typing import List, Optional

from pydantic import Field

from candle.models.base import FirestoreModel


class QuestionType(str, Enum):
    TEXT = "text"
    VOICE = "voice"
    PHOTO = "photo"
    MULTIPLE_CHOICE = "multiple_choice"
    THIS_OR_THAT = "this_or_that"


class AnswerType(str, Enum):
    TEXT = "text"
    VOICE = "voice"
    PHOTO = "photo"


class Reaction(FirestoreModel):
    """Emoji reaction left by a user."""

    user_id: str
    emoji: str
    created_at: str


class Question(FirestoreModel):
    """Question document."""

    id: str
    text: str
    category: str = ""
    type: QuestionType = QuestionType.TEXT
    deck_id: str = ""
    media_url: Optional[str] = None
    options: Optional[List[str]] = None
    created_at: str = ""


class Answer(FirestoreModel):
    """Answer document; hidden from the partner until both have answered."""

    id: str
    question_id: str
    user_id: str
    partnership_id: str
    text: str = ""
    type: AnswerType = AnswerType.TEXT
    media_url: Optional[str] = None
    is_revealed: bool = False
    reactions: List[Reaction] = Field(default_factory=list)
    created_at: str
    updated_at: str
