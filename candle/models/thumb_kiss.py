"""
Thumb Kiss Model
One partner's tap event; two taps inside the sync window form a thumb kiss.
"""

from typing import Optional

from candle.models.base import FirestoreModel


class ThumbKiss(FirestoreModel):
    id: str
    partnership_id: str
    user_id: str
    timestamp: str
    created_at: str
    client_timestamp: Optional[str] = None
    consumed: bool = False
    # Set on both taps once they pair
    paired_with: Optional[str] = None
    kissed_at: Optional[str] = None
