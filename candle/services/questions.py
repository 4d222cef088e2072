"""Questions, answers, and answer reveal."""

import logging
import random
from datetime import datetime
from typing import Any, Dict, List, Optional

from candle.models.question import Answer, AnswerType, Question, Reaction
from candle.services.firebase import ANSWERS, QUESTIONS, generate_id, snapshot_data
from candle.utils.exceptions import FirestoreError, wraps_firestore_errors
from candle.utils.timeutils import to_iso, utc_now

logger = logging.getLogger(__name__)


def daily_question_index(day: datetime, question_count: int) -> int:
    """Deterministic index for a calendar day: YYYYMMDD modulo the pool size."""
    seed = int(day.strftime("%Y%m%d"))
    return seed % question_count


class QuestionService:
    """Question pool and per-partnership answers."""

    def __init__(self, db: Any, partnerships: Any):
        self.db = db
        self.partnerships = partnerships

    @wraps_firestore_errors
    def get_questions(self, deck_id: Optional[str] = None, category: Optional[str] = None) -> List[Question]:
        query = self.db.collection(QUESTIONS)
        if deck_id:
            query = query.where("deckId", "==", deck_id)
        if category:
            query = query.where("category", "==", category)
        questions = [Question.from_dict(snapshot_data(doc)) for doc in query.get()]
        # Stable order so the daily pick does not depend on backend iteration order
        return sorted(questions, key=lambda q: q.id)

    @wraps_firestore_errors
    def get_question(self, question_id: str) -> Optional[Question]:
        data = snapshot_data(self.db.collection(QUESTIONS).document(question_id).get())
        return Question.from_dict(data) if data else None

    def get_random_question(self, partnership_id: str, exclude_ids: Optional[List[str]] = None) -> Optional[Question]:
        """Random question the partnership has not skipped."""
        partnership = self.partnerships.get(partnership_id)
        skipped = set(partnership.skipped_question_ids if partnership else [])
        skipped.update(exclude_ids or [])

        available = [q for q in self.get_questions() if q.id not in skipped]
        if not available:
            return None
        return random.choice(available)

    def get_daily_question(self, now: Optional[datetime] = None) -> Optional[Question]:
        """Same question for everyone on a given UTC day."""
        questions = self.get_questions()
        if not questions:
            return None
        return questions[daily_question_index(now or utc_now(), len(questions))]

    @wraps_firestore_errors
    def submit_answer(
        self,
        question_id: str,
        partnership_id: str,
        user_id: str,
        text: str = "",
        answer_type: AnswerType = AnswerType.TEXT,
        media_url: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Answer:
        """Store an answer; once both partners have answered, reveal both."""
        existing = [a for a in self.get_answers(question_id, partnership_id) if a.user_id == user_id]
        if existing:
            raise FirestoreError("You already answered this question", "already-exists")

        timestamp = to_iso(now or utc_now())
        answer = Answer(
            id=generate_id(),
            question_id=question_id,
            user_id=user_id,
            partnership_id=partnership_id,
            text=text,
            type=answer_type,
            media_url=media_url,
            is_revealed=False,
            created_at=timestamp,
            updated_at=timestamp,
        )
        self.db.collection(ANSWERS).document(answer.id).set(answer.to_dict())

        if len(self.get_answers(question_id, partnership_id)) >= 2:
            self.reveal_answers(question_id, partnership_id, now)
            answer.is_revealed = True
        return answer

    @wraps_firestore_errors
    def get_answers(self, question_id: str, partnership_id: str) -> List[Answer]:
        docs = (
            self.db.collection(ANSWERS)
            .where("questionId", "==", question_id)
            .where("partnershipId", "==", partnership_id)
            .get()
        )
        return [Answer.from_dict(snapshot_data(doc)) for doc in docs]

    def visible_answers(self, question_id: str, partnership_id: str, viewer_id: str) -> List[Dict[str, Any]]:
        """Answers as the viewer may see them: a partner's text stays hidden until reveal."""
        visible = []
        for answer in self.get_answers(question_id, partnership_id):
            data = answer.to_dict()
            if answer.user_id != viewer_id and not answer.is_revealed:
                data.pop("text", None)
                data.pop("mediaUrl", None)
            visible.append(data)
        return visible

    @wraps_firestore_errors
    def get_answer(self, answer_id: str) -> Answer:
        data = snapshot_data(self.db.collection(ANSWERS).document(answer_id).get())
        if not data:
            raise FirestoreError("Answer not found", "not-found")
        return Answer.from_dict(data)

    @wraps_firestore_errors
    def update_answer(self, answer_id: str, updates: Dict[str, Any], now: Optional[datetime] = None) -> Answer:
        data = dict(updates)
        data["updatedAt"] = to_iso(now or utc_now())
        self.db.collection(ANSWERS).document(answer_id).update(data)
        return self.get_answer(answer_id)

    def add_reaction(self, answer_id: str, user_id: str, emoji: str, now: Optional[datetime] = None) -> Answer:
        answer = self.get_answer(answer_id)
        reaction = Reaction(user_id=user_id, emoji=emoji, created_at=to_iso(now or utc_now()))
        reactions = [r.to_dict() for r in answer.reactions] + [reaction.to_dict()]
        return self.update_answer(answer_id, {"reactions": reactions}, now)

    @wraps_firestore_errors
    def reveal_answers(self, question_id: str, partnership_id: str, now: Optional[datetime] = None) -> None:
        timestamp = to_iso(now or utc_now())
        batch = self.db.batch()
        for answer in self.get_answers(question_id, partnership_id):
            batch.update(
                self.db.collection(ANSWERS).document(answer.id),
                {"isRevealed": True, "updatedAt": timestamp},
            )
        batch.commit()
        logger.info(f"Answers revealed for question {question_id} in {partnership_id}")
