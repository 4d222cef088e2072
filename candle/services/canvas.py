"""Collaborative canvas: drawings, debounced sync, and thumbnails."""

import base64
import json
import logging
import re
from datetime import datetime
from io import BytesIO
from typing import Any, Dict, List, Optional, Tuple

from PIL import Image, ImageColor, ImageDraw

from candle.models.canvas import CanvasDrawing
from candle.services.debounce import KeyedDebouncer
from candle.services.firebase import CANVAS_DRAWINGS, generate_id, query_direction, snapshot_data
from candle.utils.exceptions import FirestoreError, wraps_firestore_errors
from candle.utils.timeutils import to_iso, utc_now

logger = logging.getLogger(__name__)

THUMBNAIL_SIZE = 200
CURVE_STEPS = 8

BACKGROUNDS = {
    "black": "#000000",
    "white": "#FFFFFF",
    "beige": "#FFF8F0",
}

Point = Tuple[float, float]

_PATH_TOKEN = re.compile(r"[MmLlHhVvQqCcZz]|-?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?")


def parse_svg_path(path: str) -> List[List[Point]]:
    """Flatten an SVG path (M, L, H, V, Q, C, Z; absolute or relative) into polylines."""
    tokens = _PATH_TOKEN.findall(path or "")
    polylines: List[List[Point]] = []
    current: List[Point] = []
    x = y = 0.0
    start = (0.0, 0.0)
    command = None
    i = 0

    def take(n: int) -> List[float]:
        nonlocal i
        values = [float(v) for v in tokens[i:i + n]]
        if len(values) < n:
            raise ValueError(f"Truncated path data near token {i}")
        i += n
        return values

    while i < len(tokens):
        if tokens[i].isalpha():
            command = tokens[i]
            i += 1
            if command in "Zz":
                if current:
                    current.append(start)
                    x, y = start
                continue
        elif command is None:
            raise ValueError("Path data must start with a command")

        relative = command.islower()
        op = command.upper()
        ox, oy = (x, y) if relative else (0.0, 0.0)

        if op == "M":
            px, py = take(2)
            x, y = ox + px, oy + py
            if current:
                polylines.append(current)
            current = [(x, y)]
            start = (x, y)
            # Subsequent pairs after a moveto are linetos
            command = "l" if relative else "L"
        elif op == "L":
            px, py = take(2)
            x, y = ox + px, oy + py
            current.append((x, y))
        elif op == "H":
            (px,) = take(1)
            x = ox + px
            current.append((x, y))
        elif op == "V":
            (py,) = take(1)
            y = oy + py
            current.append((x, y))
        elif op == "Q":
            cx, cy, px, py = take(4)
            p0, p1, p2 = (x, y), (ox + cx, oy + cy), (ox + px, oy + py)
            for step in range(1, CURVE_STEPS + 1):
                t = step / CURVE_STEPS
                current.append((
                    (1 - t) ** 2 * p0[0] + 2 * (1 - t) * t * p1[0] + t ** 2 * p2[0],
                    (1 - t) ** 2 * p0[1] + 2 * (1 - t) * t * p1[1] + t ** 2 * p2[1],
                ))
            x, y = p2
        elif op == "C":
            c1x, c1y, c2x, c2y, px, py = take(6)
            p0, p1, p2, p3 = (x, y), (ox + c1x, oy + c1y), (ox + c2x, oy + c2y), (ox + px, oy + py)
            for step in range(1, CURVE_STEPS + 1):
                t = step / CURVE_STEPS
                u = 1 - t
                current.append((
                    u ** 3 * p0[0] + 3 * u ** 2 * t * p1[0] + 3 * u * t ** 2 * p2[0] + t ** 3 * p3[0],
                    u ** 3 * p0[1] + 3 * u ** 2 * t * p1[1] + 3 * u * t ** 2 * p2[1] + t ** 3 * p3[1],
                ))
            x, y = p3
        else:
            raise ValueError(f"Unsupported path command: {command}")

    if current:
        polylines.append(current)
    return polylines


def _parse_color(value: Optional[str], default: str) -> Tuple[int, ...]:
    try:
        return ImageColor.getrgb(value or default)
    except ValueError:
        return ImageColor.getrgb(default)


def generate_thumbnail(
    drawing_data: str,
    background_color: Optional[str] = None,
    canvas_width: Optional[float] = None,
    canvas_height: Optional[float] = None,
    size: int = THUMBNAIL_SIZE,
) -> str:
    """Render drawing data into a PNG data URI; returns "" if the data is unusable.

    Drawing data is a JSON list of ``{"path", "color", "strokeWidth"}``
    strokes in canvas coordinates. Malformed strokes are left out of the
    picture.
    """
    try:
        strokes = json.loads(drawing_data)
        if not isinstance(strokes, list):
            raise ValueError("Drawing data must be a list of strokes")

        parsed = []
        for index, stroke in enumerate(strokes):
            try:
                lines = [line for line in parse_svg_path(stroke.get("path", "")) if line]
                parsed.append((lines, _parse_color(stroke.get("color"), "#FFFFFF"),
                               float(stroke.get("strokeWidth") or 5)))
            except (ValueError, TypeError, AttributeError) as e:
                logger.debug(f"Skipping stroke {index}: {e}")

        extent = max(canvas_width or 0, canvas_height or 0)
        if not extent:
            points = [p for lines, _, _ in parsed for line in lines for p in line]
            extent = max([max(px, py) for px, py in points] + [size])
        scale = size / extent

        image = Image.new("RGB", (size, size), BACKGROUNDS.get(background_color or "", BACKGROUNDS["black"]))
        draw = ImageDraw.Draw(image)

        for lines, color, stroke_width in parsed:
            width = max(1, round(stroke_width * scale))
            for line in lines:
                scaled = [(px * scale, py * scale) for px, py in line]
                if len(scaled) > 1:
                    draw.line(scaled, fill=color, width=width, joint="curve")
                # Round caps
                radius = width / 2
                for cx, cy in (scaled[0], scaled[-1]):
                    draw.ellipse((cx - radius, cy - radius, cx + radius, cy + radius), fill=color)

        buffer = BytesIO()
        image.save(buffer, format="PNG")
        return "data:image/png;base64," + base64.b64encode(buffer.getvalue()).decode("ascii")
    except (ValueError, TypeError, AttributeError) as e:
        logger.error(f"Error generating thumbnail: {e}")
        return ""


class CanvasChangeFilter:
    """Pass a drawing through only when its drawing data changed since the last one seen."""

    def __init__(self):
        self._last: Optional[str] = None

    def __call__(self, drawing: Optional[CanvasDrawing]) -> bool:
        if drawing is None:
            changed = self._last is not None
            self._last = None
            return changed
        if drawing.drawing_data == self._last:
            return False
        self._last = drawing.drawing_data
        return True


class CanvasService:
    """Canvas drawing documents; one current drawing per partnership."""

    def __init__(self, db: Any, partnerships: Optional[Any] = None, debounce_ms: int = 500):
        self.db = db
        self.partnerships = partnerships
        self._debouncer = KeyedDebouncer(debounce_ms, self._flush)

    def _collection(self):
        return self.db.collection(CANVAS_DRAWINGS)

    @wraps_firestore_errors
    def save(
        self,
        partnership_id: str,
        drawing_data: str,
        user_id: str,
        thumbnail: Optional[str] = None,
        background_color: Optional[str] = None,
        canvas_width: Optional[float] = None,
        canvas_height: Optional[float] = None,
        now: Optional[datetime] = None,
    ) -> CanvasDrawing:
        """Write a new current drawing, demoting the previous one in the same batch."""
        now = now or utc_now()
        drawing = CanvasDrawing(
            id=generate_id(),
            partnership_id=partnership_id,
            drawing_data=drawing_data,
            thumbnail=thumbnail,
            background_color=background_color,
            canvas_width=canvas_width,
            canvas_height=canvas_height,
            created_by=user_id,
            created_at=to_iso(now),
            is_current=True,
        )

        previous = (
            self._collection()
            .where("partnershipId", "==", partnership_id)
            .where("isCurrent", "==", True)
            .get()
        )
        batch = self.db.batch()
        for doc in previous:
            batch.update(doc.reference, {"isCurrent": False})
        batch.set(self._collection().document(drawing.id), drawing.to_dict())
        batch.commit()

        if self.partnerships is not None:
            self.partnerships.record_canvas_activity(partnership_id, now)
        return drawing

    async def sync(
        self,
        partnership_id: str,
        drawing_data: str,
        user_id: str,
        background_color: Optional[str] = None,
        canvas_width: Optional[float] = None,
        canvas_height: Optional[float] = None,
    ) -> Optional[CanvasDrawing]:
        """Debounced save; a burst of updates ends in one write of the latest drawing.

        Returns None if the pending write was cancelled.
        """
        return await self._debouncer.submit(partnership_id, {
            "drawing_data": drawing_data,
            "user_id": user_id,
            "background_color": background_color,
            "canvas_width": canvas_width,
            "canvas_height": canvas_height,
        })

    def _flush(self, partnership_id: str, payload: Dict[str, Any]) -> CanvasDrawing:
        thumbnail = generate_thumbnail(
            payload["drawing_data"],
            payload["background_color"],
            payload["canvas_width"],
            payload["canvas_height"],
        )
        return self.save(partnership_id, thumbnail=thumbnail, **payload)

    def cancel_pending_sync(self, partnership_id: str) -> bool:
        return self._debouncer.cancel(partnership_id)

    @wraps_firestore_errors
    def get_current(self, partnership_id: str) -> Optional[CanvasDrawing]:
        docs = (
            self._collection()
            .where("partnershipId", "==", partnership_id)
            .where("isCurrent", "==", True)
            .limit(1)
            .get()
        )
        return CanvasDrawing.from_dict(snapshot_data(docs[0])) if docs else None

    @wraps_firestore_errors
    def get_history(self, partnership_id: str) -> List[CanvasDrawing]:
        docs = (
            self._collection()
            .where("partnershipId", "==", partnership_id)
            .order_by("createdAt", direction=query_direction(descending=True))
            .get()
        )
        return [CanvasDrawing.from_dict(snapshot_data(doc)) for doc in docs]

    @wraps_firestore_errors
    def get(self, canvas_id: str) -> CanvasDrawing:
        data = snapshot_data(self._collection().document(canvas_id).get())
        if not data:
            raise FirestoreError("Canvas not found", "not-found")
        return CanvasDrawing.from_dict(data)

    @wraps_firestore_errors
    def delete(self, canvas_id: str) -> None:
        self._collection().document(canvas_id).delete()

    def download(self, canvas_id: str) -> str:
        return self.get(canvas_id).drawing_data
