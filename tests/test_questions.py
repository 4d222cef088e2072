"""Tests for questions, answers, and answer reveal."""

from datetime import datetime, timezone

import pytest

from candle.models.question import Question
from candle.services.questions import QuestionService, daily_question_index
from candle.utils.exceptions import FirestoreError

from tests.conftest import NOW


@pytest.fixture
def questions(store, partnerships, make_partnership):
    make_partnership()
    for i in range(4):
        question = Question(id=f"q{i}", text=f"Question {i}", category="fun" if i % 2 else "deep")
        store.collection("questions").document(question.id).set(question.to_dict())
    return QuestionService(store, partnerships)


def test_daily_index_uses_calendar_day():
    day = datetime(2025, 6, 15, 23, 59, tzinfo=timezone.utc)
    assert daily_question_index(day, 4) == 20250615 % 4
    assert daily_question_index(day, 1) == 0


def test_daily_question_is_stable_for_the_day(questions):
    assert questions.get_daily_question(NOW).id == "q3"
    assert questions.get_daily_question(NOW.replace(hour=1)).id == "q3"


def test_daily_question_without_pool(store, partnerships):
    assert QuestionService(store, partnerships).get_daily_question(NOW) is None


def test_filter_by_category(questions):
    assert [q.id for q in questions.get_questions(category="fun")] == ["q1", "q3"]


def test_random_question_skips_excluded(questions, partnerships):
    partnerships.skip_question("p1", "q0")
    partnerships.skip_question("p1", "q1")

    for _ in range(10):
        assert questions.get_random_question("p1", ["q2"]).id == "q3"

    assert questions.get_random_question("p1", ["q2", "q3"]) is None


def test_first_answer_stays_hidden(questions):
    answer = questions.submit_answer("q0", "p1", "alice", "Tacos", now=NOW)
    assert not answer.is_revealed

    seen_by_bob = questions.visible_answers("q0", "p1", "bob")
    assert len(seen_by_bob) == 1
    assert "text" not in seen_by_bob[0]

    seen_by_alice = questions.visible_answers("q0", "p1", "alice")
    assert seen_by_alice[0]["text"] == "Tacos"


def test_second_answer_reveals_both(questions):
    questions.submit_answer("q0", "p1", "alice", "Tacos", now=NOW)
    second = questions.submit_answer("q0", "p1", "bob", "Sushi", now=NOW)

    assert second.is_revealed
    assert all(a.is_revealed for a in questions.get_answers("q0", "p1"))
    texts = {a["text"] for a in questions.visible_answers("q0", "p1", "bob")}
    assert texts == {"Tacos", "Sushi"}


def test_cannot_answer_twice(questions):
    questions.submit_answer("q0", "p1", "alice", "Tacos", now=NOW)
    with pytest.raises(FirestoreError) as excinfo:
        questions.submit_answer("q0", "p1", "alice", "Pizza", now=NOW)
    assert excinfo.value.status_code == 409


def test_answers_are_scoped_to_partnership(questions):
    questions.submit_answer("q0", "p1", "alice", "Tacos", now=NOW)
    questions.submit_answer("q0", "p2", "carol", "Curry", now=NOW)
    assert [a.user_id for a in questions.get_answers("q0", "p1")] == ["alice"]


def test_reaction_on_answer(questions):
    answer = questions.submit_answer("q0", "p1", "alice", "Tacos", now=NOW)

    updated = questions.add_reaction(answer.id, "bob", "❤️", NOW)

    assert [(r.user_id, r.emoji) for r in updated.reactions] == [("bob", "❤️")]


def test_missing_answer(questions):
    with pytest.raises(FirestoreError):
        questions.get_answer("nope")
