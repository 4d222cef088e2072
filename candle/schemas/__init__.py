"""API request and response schemas."""

from candle.schemas.requests import RequestModel
from candle.schemas.responses import ApiResponse

__all__ = ["ApiResponse", "RequestModel"]
