"""
Message Model
Chat messages between partners.
"""

from enum import Enum
from typing import Dict, List, Optional

from pydantic import Field

from candle.models.base import FirestoreModel
from candle.models.question import Reaction


class MessageType(str, Enum):
    TEXT = "text"
    PHOTO = "photo"
    VOICE = "voice"


class Message(FirestoreModel):
    """Message document. Deletion is soft."""

    id: str
    partnership_id: str
    sender_id: str
    content: str = ""
    type: MessageType = MessageType.TEXT
    media_url: Optional[str] = None
    reactions: List[Reaction] = Field(default_factory=list)
    question_id: Optional[str] = None
    deleted: bool = False
    read_receipts: Dict[str, str] = Field(default_factory=dict)
    created_at: str
    updated_at: str
