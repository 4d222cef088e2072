"""
Canvas Model
Collaborative drawings; one current drawing per partnership.
"""

from typing import Optional

from candle.models.base import FirestoreModel


class CanvasDrawing(FirestoreModel):
    """Canvas drawing document."""

    id: str
    partnership_id: str
    drawing_data: str
    thumbnail: Optional[str] = None
    background_color: Optional[str] = None
    canvas_width: Optional[float] = None
    canvas_height: Optional[float] = None
    created_by: str
    created_at: str
    is_current: bool = True
