"""Canvas endpoints: live sync, save, history."""

from typing import Optional

from fastapi import APIRouter, Depends, status
from fastapi.responses import PlainTextResponse
from pydantic import Field

from candle.dependencies import get_canvas_service, get_current_user, get_user_partnership
from candle.models.canvas import CanvasDrawing
from candle.models.partnership import Partnership
from candle.schemas.requests import RequestModel
from candle.schemas.responses import ApiResponse
from candle.services.canvas import CanvasService, generate_thumbnail
from candle.utils.exceptions import AuthorizationError

router = APIRouter()


class CanvasRequest(RequestModel):
    drawing_data: str = Field(..., min_length=2)
    background_color: Optional[str] = Field(default=None, pattern=r"^(black|white|beige)$")
    canvas_width: Optional[float] = Field(default=None, gt=0)
    canvas_height: Optional[float] = Field(default=None, gt=0)


def _owned(canvas: CanvasService, canvas_id: str, partnership: Partnership) -> CanvasDrawing:
    drawing = canvas.get(canvas_id)
    if drawing.partnership_id != partnership.id:
        raise AuthorizationError("This drawing belongs to another partnership")
    return drawing


@router.post("/sync", response_model=ApiResponse)
async def sync_canvas(
    request: CanvasRequest,
    current_user: dict = Depends(get_current_user),
    partnership: Partnership = Depends(get_user_partnership),
    canvas: CanvasService = Depends(get_canvas_service),
) -> ApiResponse:
    """Debounced save. Rapid calls resolve together with the single write they collapse into."""
    drawing = await canvas.sync(
        partnership.id,
        request.drawing_data,
        current_user["uid"],
        request.background_color,
        request.canvas_width,
        request.canvas_height,
    )
    if drawing is None:
        return ApiResponse.success_response(None, "Sync cancelled")
    return ApiResponse.success_response(drawing, "Canvas synced")


@router.delete("/sync", response_model=ApiResponse)
async def cancel_sync(
    partnership: Partnership = Depends(get_user_partnership),
    canvas: CanvasService = Depends(get_canvas_service),
) -> ApiResponse:
    cancelled = canvas.cancel_pending_sync(partnership.id)
    return ApiResponse.success_response({"cancelled": cancelled})


@router.post("", response_model=ApiResponse, status_code=status.HTTP_201_CREATED)
async def save_canvas(
    request: CanvasRequest,
    current_user: dict = Depends(get_current_user),
    partnership: Partnership = Depends(get_user_partnership),
    canvas: CanvasService = Depends(get_canvas_service),
) -> ApiResponse:
    """Save immediately, bypassing the debounce."""
    thumbnail = generate_thumbnail(
        request.drawing_data, request.background_color, request.canvas_width, request.canvas_height
    )
    drawing = canvas.save(
        partnership.id,
        request.drawing_data,
        current_user["uid"],
        thumbnail=thumbnail,
        background_color=request.background_color,
        canvas_width=request.canvas_width,
        canvas_height=request.canvas_height,
    )
    return ApiResponse.success_response(drawing, "Canvas saved")


@router.get("/current", response_model=ApiResponse)
async def get_current_canvas(
    partnership: Partnership = Depends(get_user_partnership),
    canvas: CanvasService = Depends(get_canvas_service),
) -> ApiResponse:
    return ApiResponse.success_response(canvas.get_current(partnership.id))


@router.get("/history", response_model=ApiResponse)
async def get_canvas_history(
    partnership: Partnership = Depends(get_user_partnership),
    canvas: CanvasService = Depends(get_canvas_service),
) -> ApiResponse:
    return ApiResponse.success_response(canvas.get_history(partnership.id))


@router.get("/{canvas_id}", response_model=ApiResponse)
async def get_canvas(
    canvas_id: str,
    partnership: Partnership = Depends(get_user_partnership),
    canvas: CanvasService = Depends(get_canvas_service),
) -> ApiResponse:
    return ApiResponse.success_response(_owned(canvas, canvas_id, partnership))


@router.get("/{canvas_id}/download", response_class=PlainTextResponse)
async def download_canvas(
    canvas_id: str,
    partnership: Partnership = Depends(get_user_partnership),
    canvas: CanvasService = Depends(get_canvas_service),
) -> PlainTextResponse:
    """Raw drawing data as a JSON attachment."""
    _owned(canvas, canvas_id, partnership)
    return PlainTextResponse(
        canvas.download(canvas_id),
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="canvas-{canvas_id}.json"'},
    )


@router.delete("/{canvas_id}", response_model=ApiResponse)
async def delete_canvas(
    canvas_id: str,
    partnership: Partnership = Depends(get_user_partnership),
    canvas: CanvasService = Depends(get_canvas_service),
) -> ApiResponse:
    _owned(canvas, canvas_id, partnership)
    canvas.delete(canvas_id)
    return ApiResponse.success_response(None, "Drawing deleted")
