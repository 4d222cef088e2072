"""
Standard API Response Wrapper
Every successful endpoint answers with ``{success, data, message}``.
"""

from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, Field

from candle.models.base import FirestoreModel

T = TypeVar("T")


def _jsonable(value: Any) -> Any:
    """Documents go out with the same camelCase keys they are stored with."""
    if isinstance(value, FirestoreModel):
        return value.to_dict()
    if isinstance(value, list):
        return [_jsonable(v) for v in value]
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    return value


class ApiResponse(BaseModel, Generic[T]):
    """Standard API response wrapper."""

    success: bool = Field(description="Whether the operation was successful")
    data: Optional[T] = Field(default=None, description="Response data")
    message: str = Field(default="", description="Response message")

    @classmethod
    def success_response(cls, data: Any = None, message: str = "Success") -> "ApiResponse":
        """Create a successful response."""
        return cls(success=True, data=_jsonable(data), message=message)
