"""Messaging endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import Field

from candle.dependencies import get_current_user, get_message_service, get_user_partnership
from candle.models.message import Message, MessageType
from candle.models.partnership import Partnership
from candle.schemas.requests import RequestModel
from candle.schemas.responses import ApiResponse
from candle.services.firebase import generate_id
from candle.services.messages import DEFAULT_PAGE_SIZE, MessageService
from candle.utils.exceptions import AuthorizationError

router = APIRouter()


class SendMessageRequest(RequestModel):
    content: str = Field(default="", max_length=4000)
    type: MessageType = MessageType.TEXT
    media_url: Optional[str] = None
    question_id: Optional[str] = None


class UploadMediaRequest(RequestModel):
    type: MessageType
    data: str = Field(..., min_length=1, description="Base64-encoded file")
    message_id: Optional[str] = None


class ReactionRequest(RequestModel):
    emoji: str = Field(..., min_length=1, max_length=16)


def _owned(messages: MessageService, message_id: str, partnership: Partnership) -> Message:
    message = messages.get(message_id)
    if message.partnership_id != partnership.id:
        raise AuthorizationError("This message belongs to another partnership")
    return message


@router.post("", response_model=ApiResponse, status_code=status.HTTP_201_CREATED)
async def send_message(
    request: SendMessageRequest,
    current_user: dict = Depends(get_current_user),
    partnership: Partnership = Depends(get_user_partnership),
    messages: MessageService = Depends(get_message_service),
) -> ApiResponse:
    message = messages.send(
        partnership.id,
        current_user["uid"],
        request.content,
        request.type,
        request.media_url,
        request.question_id,
    )
    return ApiResponse.success_response(message, "Message sent")


@router.get("", response_model=ApiResponse)
async def list_messages(
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=200),
    after: Optional[str] = None,
    question_id: Optional[str] = Query(default=None, alias="questionId"),
    partnership: Partnership = Depends(get_user_partnership),
    messages: MessageService = Depends(get_message_service),
) -> ApiResponse:
    """Oldest first. Pass the last message id as ``after`` for the next page."""
    if question_id:
        return ApiResponse.success_response(messages.list_by_question(partnership.id, question_id, limit))
    return ApiResponse.success_response(messages.list(partnership.id, limit, after))


@router.post("/media", response_model=ApiResponse, status_code=status.HTTP_201_CREATED)
async def upload_media(
    request: UploadMediaRequest,
    partnership: Partnership = Depends(get_user_partnership),
    messages: MessageService = Depends(get_message_service),
) -> ApiResponse:
    """Upload a photo or voice note ahead of sending the message that carries it."""
    message_id = request.message_id or generate_id()
    url = messages.upload_media(partnership.id, message_id, request.type, request.data)
    return ApiResponse.success_response({"messageId": message_id, "mediaUrl": url}, "Media uploaded")


@router.post("/{message_id}/reactions", response_model=ApiResponse)
async def add_reaction(
    message_id: str,
    request: ReactionRequest,
    current_user: dict = Depends(get_current_user),
    partnership: Partnership = Depends(get_user_partnership),
    messages: MessageService = Depends(get_message_service),
) -> ApiResponse:
    _owned(messages, message_id, partnership)
    return ApiResponse.success_response(messages.add_reaction(message_id, current_user["uid"], request.emoji))


@router.delete("/{message_id}/reactions", response_model=ApiResponse)
async def remove_reaction(
    message_id: str,
    current_user: dict = Depends(get_current_user),
    partnership: Partnership = Depends(get_user_partnership),
    messages: MessageService = Depends(get_message_service),
) -> ApiResponse:
    _owned(messages, message_id, partnership)
    return ApiResponse.success_response(messages.remove_reaction(message_id, current_user["uid"]))


@router.post("/{message_id}/read", response_model=ApiResponse)
async def mark_read(
    message_id: str,
    current_user: dict = Depends(get_current_user),
    partnership: Partnership = Depends(get_user_partnership),
    messages: MessageService = Depends(get_message_service),
) -> ApiResponse:
    _owned(messages, message_id, partnership)
    return ApiResponse.success_response(messages.mark_read(message_id, current_user["uid"]))


@router.delete("/{message_id}", response_model=ApiResponse)
async def delete_message(
    message_id: str,
    current_user: dict = Depends(get_current_user),
    partnership: Partnership = Depends(get_user_partnership),
    messages: MessageService = Depends(get_message_service),
) -> ApiResponse:
    """Soft delete; only the sender may delete a message."""
    message = _owned(messages, message_id, partnership)
    if message.sender_id != current_user["uid"]:
        raise AuthorizationError("You can only delete your own messages")
    messages.delete(message_id)
    return ApiResponse.success_response(None, "Message deleted")
