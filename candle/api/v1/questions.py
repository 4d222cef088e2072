"""Question and answer endpoints."""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import Field

from candle.dependencies import get_current_user, get_question_service, get_streak_service, get_user_partnership
from candle.models.partnership import Partnership
from candle.models.question import AnswerType
from candle.schemas.requests import RequestModel
from candle.schemas.responses import ApiResponse
from candle.services.questions import QuestionService
from candle.services.streaks import StreakService
from candle.utils.exceptions import AuthorizationError

router = APIRouter()


class SubmitAnswerRequest(RequestModel):
    text: str = ""
    type: AnswerType = AnswerType.TEXT
    media_url: Optional[str] = None


class ReactionRequest(RequestModel):
    emoji: str = Field(..., min_length=1, max_length=16)


@router.get("", response_model=ApiResponse)
async def list_questions(
    deck_id: Optional[str] = Query(default=None, alias="deckId"),
    category: Optional[str] = None,
    current_user: dict = Depends(get_current_user),
    questions: QuestionService = Depends(get_question_service),
) -> ApiResponse:
    return ApiResponse.success_response(questions.get_questions(deck_id, category))


@router.get("/daily", response_model=ApiResponse)
async def daily_question(
    current_user: dict = Depends(get_current_user),
    questions: QuestionService = Depends(get_question_service),
) -> ApiResponse:
    """Today's question, the same for every couple."""
    question = questions.get_daily_question()
    if question is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No questions available")
    return ApiResponse.success_response(question)


@router.get("/random", response_model=ApiResponse)
async def random_question(
    exclude: List[str] = Query(default=[]),
    partnership: Partnership = Depends(get_user_partnership),
    questions: QuestionService = Depends(get_question_service),
) -> ApiResponse:
    question = questions.get_random_question(partnership.id, exclude)
    if question is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No questions available")
    return ApiResponse.success_response(question)


@router.get("/{question_id}", response_model=ApiResponse)
async def get_question(
    question_id: str,
    current_user: dict = Depends(get_current_user),
    questions: QuestionService = Depends(get_question_service),
) -> ApiResponse:
    question = questions.get_question(question_id)
    if question is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Question not found")
    return ApiResponse.success_response(question)


@router.post("/{question_id}/answers", response_model=ApiResponse, status_code=status.HTTP_201_CREATED)
async def submit_answer(
    question_id: str,
    request: SubmitAnswerRequest,
    current_user: dict = Depends(get_current_user),
    partnership: Partnership = Depends(get_user_partnership),
    questions: QuestionService = Depends(get_question_service),
    streaks: StreakService = Depends(get_streak_service),
) -> ApiResponse:
    """Answer a question and count it toward the streak."""
    if questions.get_question(question_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Question not found")

    answer = questions.submit_answer(
        question_id,
        partnership.id,
        current_user["uid"],
        request.text,
        request.type,
        request.media_url,
    )
    streak = streaks.record_activity(partnership.id, question_id)
    return ApiResponse.success_response({"answer": answer, "streak": streak}, "Answer submitted")


@router.get("/{question_id}/answers", response_model=ApiResponse)
async def get_answers(
    question_id: str,
    current_user: dict = Depends(get_current_user),
    partnership: Partnership = Depends(get_user_partnership),
    questions: QuestionService = Depends(get_question_service),
) -> ApiResponse:
    """Both answers; the partner's stays hidden until both have answered."""
    return ApiResponse.success_response(
        questions.visible_answers(question_id, partnership.id, current_user["uid"])
    )


@router.post("/answers/{answer_id}/reactions", response_model=ApiResponse)
async def react_to_answer(
    answer_id: str,
    request: ReactionRequest,
    current_user: dict = Depends(get_current_user),
    partnership: Partnership = Depends(get_user_partnership),
    questions: QuestionService = Depends(get_question_service),
) -> ApiResponse:
    if questions.get_answer(answer_id).partnership_id != partnership.id:
        raise AuthorizationError("This answer belongs to another partnership")
    answer = questions.add_reaction(answer_id, current_user["uid"], request.emoji)
    return ApiResponse.success_response(answer)
