from types import SimpleNamespace

import pytest

from exam_portal.schemas.exams import AnswerIn
from exam_portal.services.exams.service import score_answers


def _question(qid, points=1, negative_points=0.25):
    return SimpleNamespace(id=qid, points=points, negative_points=negative_points)


def _option(oid, correct=False):
    return SimpleNamespace(id=oid, is_correct=correct)


QUESTIONS = [_question("q1"), _question("q2", points=2), _question("q3")]
OPTIONS = {
    "q1": [_option("q1a", correct=True), _option("q1b")],
    "q2": [_option("q2a"), _option("q2b", correct=True)],
    "q3": [_option("q3a", correct=True), _option("q3b")],
}


def test_correct_answers_score_points():
    total, rows = score_answers(
        QUESTIONS,
        OPTIONS,
        [AnswerIn(question_id="q1", chosen_option_id="q1a"), AnswerIn(question_id="q2", chosen_option_id="q2b")],
        negative_marking=False,
    )
    assert total == 3
    assert {r["question_id"]: r["is_correct"] for r in rows} == {"q1": True, "q2": True}


def test_wrong_answer_zero_without_negative_marking():
    total, rows = score_answers(
        QUESTIONS, OPTIONS, [AnswerIn(question_id="q1", chosen_option_id="q1b")], negative_marking=False
    )
    assert total == 0
    assert rows[0]["score"] == 0
    assert rows[0]["is_correct"] is False


def test_wrong_answer_penalised_with_negative_marking():
    total, _ = score_answers(
        QUESTIONS,
        OPTIONS,
        [AnswerIn(question_id="q1", chosen_option_id="q1b"), AnswerIn(question_id="q2", chosen_option_id="q2b")],
        negative_marking=True,
    )
    assert total == pytest.approx(1.75)


def test_unanswered_and_unknown_questions_skipped():
    total, rows = score_answers(
        QUESTIONS,
        OPTIONS,
        [AnswerIn(question_id="q3", chosen_option_id=None), AnswerIn(question_id="nope", chosen_option_id="x")],
        negative_marking=True,
    )
    assert total == 0
    assert rows == []


def test_option_from_another_question_is_wrong():
    total, rows = score_answers(
        QUESTIONS, OPTIONS, [AnswerIn(question_id="q1", chosen_option_id="q3a")], negative_marking=False
    )
    assert total == 0
    assert rows[0]["is_correct"] is False


def test_last_answer_wins():
    total, rows = score_answers(
        QUESTIONS,
        OPTIONS,
        [AnswerIn(question_id="q1", chosen_option_id="q1b"), AnswerIn(question_id="q1", chosen_option_id="q1a")],
        negative_marking=True,
    )
    assert total == 1
    assert len(rows) == 1


def test_missing_points_default_to_one():
    total, _ = score_answers(
        [_question("q1", points=None)], OPTIONS, [AnswerIn(question_id="q1", chosen_option_id="q1a")], False
    )
    assert total == 1
