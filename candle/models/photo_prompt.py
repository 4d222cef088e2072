"""
Photo Prompt Model
A partnership's prompt for the day and the photo each partner shared for it.
"""

from typing import Optional

from pydantic import Field

from candle.models.base import FirestoreModel


class PhotoPrompt(FirestoreModel):
    id: str
    partnership_id: str
    prompt_text: str
    prompt_date: str = Field(description="YYYY-MM-DD")
    user1_photo_url: Optional[str] = None
    user1_uploaded_at: Optional[str] = None
    user2_photo_url: Optional[str] = None
    user2_uploaded_at: Optional[str] = None
    created_at: str

    @property
    def both_uploaded(self) -> bool:
        return bool(self.user1_photo_url and self.user2_photo_url)
