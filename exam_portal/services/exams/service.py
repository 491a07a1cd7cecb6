"""
Test authoring (admin) and test taking (students): attempts, scoring, review.
"""
import logging
import random
from datetime import datetime, timezone

from sqlalchemy import func
from sqlalchemy.orm import Session

from exam_portal.models.attempt import Answer, Attempt
from exam_portal.models.category import TestCategory, TestTopic
from exam_portal.models.test import Option, Question, Test
from exam_portal.schemas.exams import AnswerIn, QuestionIn, TestIn, TestUpdate

logger = logging.getLogger(__name__)

DEFAULT_NEGATIVE_POINTS = 0.25


class ExamError(Exception):
    pass


class TestNotFound(ExamError):
    __test__ = False  # not a pytest test class


class TestNotAvailable(ExamError):
    __test__ = False  # not a pytest test class


class AttemptNotFound(ExamError):
    pass


class AttemptAlreadySubmitted(ExamError):
    pass


def score_answers(
    questions: list[Question],
    options_by_question: dict[str, list[Option]],
    answers: list[AnswerIn],
    negative_marking: bool,
) -> tuple[float, list[dict]]:
    """
    Score chosen options. Correct -> question points (1 if unset); wrong -> 0,
    or -negative_points with negative marking. Unanswered questions and answers
    to unknown questions are skipped. Returns (total_score, rows to store).
    """
    by_id = {q.id: q for q in questions}
    scored: dict[str, dict] = {}
    for answer in answers:
        question = by_id.get(answer.question_id)
        if question is None or not answer.chosen_option_id:
            continue
        chosen = next(
            (o for o in options_by_question.get(question.id, []) if o.id == answer.chosen_option_id),
            None,
        )
        is_correct = bool(chosen and chosen.is_correct)
        if is_correct:
            score = question.points or 1
        elif negative_marking:
            score = -(question.negative_points or 0)
        else:
            score = 0
        # Last answer for a question wins
        scored[question.id] = {
            "question_id": question.id,
            "chosen_option_id": answer.chosen_option_id,
            "is_correct": is_correct,
            "score": score,
        }
    rows = list(scored.values())
    return sum(r["score"] for r in rows), rows


class ExamService:
    def __init__(self, db: Session, rng: random.Random | None = None):
        self.db = db
        self.rng = rng or random.Random()

    # ---------- Lookups ----------

    def get_test(self, test_id: str) -> Test | None:
        return self.db.query(Test).filter(Test.id == test_id).one_or_none()

    def category_name(self, test: Test) -> str | None:
        if not test.category_id:
            return None
        return self.db.query(TestCategory.name).filter(TestCategory.id == test.category_id).scalar()

    def _questions(self, test_id: str) -> list[Question]:
        return self.db.query(Question).filter(Question.test_id == test_id).order_by(Question.order_index).all()

    def _options_by_question(self, question_ids: list[str]) -> dict[str, list[Option]]:
        if not question_ids:
            return {}
        options = (
            self.db.query(Option)
            .filter(Option.question_id.in_(question_ids))
            .order_by(Option.order_index)
            .all()
        )
        grouped: dict[str, list[Option]] = {}
        for option in options:
            grouped.setdefault(option.question_id, []).append(option)
        return grouped

    # ---------- Admin ----------

    def list_admin_tests(self) -> list[dict]:
        tests = self.db.query(Test).order_by(Test.created_at.desc()).all()
        category_names = dict(self.db.query(TestCategory.id, TestCategory.name).all())
        topic_names = dict(self.db.query(TestTopic.id, TestTopic.name).all())
        counts = dict(self.db.query(Question.test_id, func.count(Question.id)).group_by(Question.test_id).all())
        return [
            {
                **self._test_dict(t),
                "category_name": category_names.get(t.category_id),
                "topic_name": topic_names.get(t.topic_id),
                "question_count": counts.get(t.id, 0),
            }
            for t in tests
        ]

    def create_test(self, payload: TestIn) -> Test:
        category_id = payload.category_id
        if payload.topic_id:
            topic = self.db.query(TestTopic).filter(TestTopic.id == payload.topic_id).one_or_none()
            if topic is None:
                raise ExamError("Invalid topic_id")
            category_id = topic.category_id

        test = Test(
            title=payload.title,
            description=payload.description,
            duration_minutes=payload.duration_minutes,
            status=payload.status,
            shuffle_questions=payload.shuffle_questions,
            shuffle_options=payload.shuffle_options,
            negative_marking=payload.negative_marking,
            difficulty=payload.difficulty,
            topic_id=payload.topic_id,
            category_id=category_id,
        )
        self.db.add(test)
        self.db.flush()
        self._add_questions(test, payload.questions)
        self.db.commit()
        self.db.refresh(test)
        logger.info("test_created", extra={"test_id": test.id})
        return test

    def update_test(self, test: Test, payload: TestUpdate) -> Test:
        data = payload.model_dump(exclude_unset=True, exclude={"questions"})
        if data.get("topic_id"):
            topic = self.db.query(TestTopic).filter(TestTopic.id == data["topic_id"]).one_or_none()
            if topic is None:
                raise ExamError("Invalid topic_id")
            data["category_id"] = topic.category_id
        for field, value in data.items():
            setattr(test, field, value)
        if payload.questions is not None:
            self._delete_questions(test.id)
            self._add_questions(test, payload.questions)
        self.db.add(test)
        self.db.commit()
        self.db.refresh(test)
        return test

    def delete_test(self, test: Test) -> None:
        attempt_ids = [row.id for row in self.db.query(Attempt.id).filter(Attempt.test_id == test.id)]
        if attempt_ids:
            self.db.query(Answer).filter(Answer.attempt_id.in_(attempt_ids)).delete(synchronize_session=False)
            self.db.query(Attempt).filter(Attempt.id.in_(attempt_ids)).delete(synchronize_session=False)
        self._delete_questions(test.id)
        self.db.delete(test)
        self.db.commit()
        logger.info("test_deleted", extra={"test_id": test.id})

    def test_detail(self, test: Test, include_answers: bool = True) -> dict:
        questions = self._questions(test.id)
        options = self._options_by_question([q.id for q in questions])
        return {
            **self._test_dict(test),
            "questions": [self._question_dict(q, options.get(q.id, []), include_answers) for q in questions],
        }

    def _add_questions(self, test: Test, questions: list[QuestionIn]) -> None:
        for q_index, q in enumerate(questions):
            negative = q.negative_points
            if negative is None:
                negative = DEFAULT_NEGATIVE_POINTS if test.negative_marking else 0
            question = Question(
                test_id=test.id,
                text=q.text,
                points=q.points,
                negative_points=negative,
                order_index=q_index,
            )
            self.db.add(question)
            self.db.flush()
            for o_index, o in enumerate(q.options):
                self.db.add(Option(question_id=question.id, label=o.label, is_correct=o.is_correct, order_index=o_index))

    def _delete_questions(self, test_id: str) -> None:
        question_ids = [row.id for row in self.db.query(Question.id).filter(Question.test_id == test_id)]
        if question_ids:
            self.db.query(Option).filter(Option.question_id.in_(question_ids)).delete(synchronize_session=False)
            self.db.query(Question).filter(Question.id.in_(question_ids)).delete(synchronize_session=False)

    # ---------- Taking a test ----------

    def submitted_attempt(self, user_id: str, test_id: str) -> Attempt | None:
        return (
            self.db.query(Attempt)
            .filter(Attempt.user_id == user_id, Attempt.test_id == test_id, Attempt.status == "submitted")
            .first()
        )

    def start_attempt(self, user_id: str, test: Test) -> dict:
        """Resume the active attempt or open a new one; questions come without answers."""
        if test.status != "published":
            raise TestNotAvailable(test.id)

        submitted = self.submitted_attempt(user_id, test.id)
        if submitted:
            raise AttemptAlreadySubmitted(submitted.id)

        attempt = (
            self.db.query(Attempt)
            .filter(Attempt.user_id == user_id, Attempt.test_id == test.id, Attempt.status == "active")
            .first()
        )
        resumed = attempt is not None
        if attempt is None:
            attempt = Attempt(
                user_id=user_id,
                test_id=test.id,
                status="active",
                time_remaining=test.duration_minutes * 60,
            )
            self.db.add(attempt)
            self.db.commit()
            self.db.refresh(attempt)
            logger.info("attempt_started", extra={"user_id": user_id, "test_id": test.id, "attempt_id": attempt.id})

        questions = self._questions(test.id)
        options = self._options_by_question([q.id for q in questions])
        question_dicts = [self._question_dict(q, options.get(q.id, []), include_answers=False) for q in questions]
        if test.shuffle_questions:
            self.rng.shuffle(question_dicts)
        if test.shuffle_options:
            for q in question_dicts:
                self.rng.shuffle(q["options"])

        return {
            "attempt_id": attempt.id,
            "resumed": resumed,
            "time_remaining": attempt.time_remaining,
            "test": self._test_dict(test),
            "questions": question_dicts,
        }

    def get_attempt(self, user_id: str, attempt_id: str) -> Attempt:
        attempt = self.db.query(Attempt).filter(Attempt.id == attempt_id).one_or_none()
        if attempt is None or attempt.user_id != user_id:
            raise AttemptNotFound(attempt_id)
        return attempt

    def submit_attempt(
        self,
        user_id: str,
        attempt_id: str,
        answers: list[AnswerIn],
        time_remaining: int | None = None,
    ) -> Attempt:
        attempt = self.get_attempt(user_id, attempt_id)
        if attempt.status == "submitted":
            raise AttemptAlreadySubmitted(attempt.id)
        test = self.get_test(attempt.test_id)
        if test is None:
            raise TestNotFound(attempt.test_id)

        questions = self._questions(test.id)
        options = self._options_by_question([q.id for q in questions])
        total, rows = score_answers(questions, options, answers, test.negative_marking)

        existing = {
            a.question_id: a
            for a in self.db.query(Answer).filter(Answer.attempt_id == attempt.id).all()
        }
        for row in rows:
            answer = existing.get(row["question_id"]) or Answer(attempt_id=attempt.id, question_id=row["question_id"])
            answer.chosen_option_id = row["chosen_option_id"]
            answer.is_correct = row["is_correct"]
            answer.score = row["score"]
            self.db.add(answer)

        attempt.status = "submitted"
        attempt.submitted_at = datetime.now(timezone.utc)
        attempt.total_score = total
        if time_remaining is not None:
            attempt.time_remaining = time_remaining
        self.db.add(attempt)
        self.db.commit()
        self.db.refresh(attempt)
        logger.info(
            "attempt_submitted",
            extra={"user_id": user_id, "test_id": test.id, "attempt_id": attempt.id},
        )
        return attempt

    def review(self, attempt: Attempt, mistakes_only: bool = False) -> dict:
        """Per-question outcome of a submitted attempt (revision and mistakes views)."""
        if attempt.status != "submitted":
            raise TestNotAvailable(attempt.test_id)
        test = self.get_test(attempt.test_id)
        questions = self._questions(attempt.test_id)
        options = self._options_by_question([q.id for q in questions])
        answers = {a.question_id: a for a in self.db.query(Answer).filter(Answer.attempt_id == attempt.id).all()}

        items = []
        for q in questions:
            answer = answers.get(q.id)
            q_options = options.get(q.id, [])
            correct = next((o for o in q_options if o.is_correct), None)
            is_correct = bool(answer and answer.is_correct)
            if mistakes_only and is_correct:
                continue
            items.append({
                "question_id": q.id,
                "text": q.text,
                "options": [{"id": o.id, "label": o.label} for o in q_options],
                "chosen_option_id": answer.chosen_option_id if answer else None,
                "correct_option_id": correct.id if correct else None,
                "is_correct": is_correct,
                "score": answer.score if answer else 0,
            })
        return {
            "attempt_id": attempt.id,
            "test": self._test_dict(test) if test else None,
            "total_score": attempt.total_score,
            "submitted_at": attempt.submitted_at.isoformat() if attempt.submitted_at else None,
            "questions": items,
        }

    def list_user_attempts(self, user_id: str) -> list[dict]:
        attempts = self.db.query(Attempt).filter(Attempt.user_id == user_id).order_by(Attempt.created_at.desc()).all()
        return [
            {
                "id": a.id,
                "test_id": a.test_id,
                "status": a.status,
                "total_score": a.total_score,
                "created_at": a.created_at.isoformat() if a.created_at else None,
            }
            for a in attempts
        ]

    # ---------- Serialization ----------

    @staticmethod
    def _test_dict(test: Test) -> dict:
        return {
            "id": test.id,
            "title": test.title,
            "description": test.description,
            "duration_minutes": test.duration_minutes,
            "status": test.status,
            "shuffle_questions": test.shuffle_questions,
            "shuffle_options": test.shuffle_options,
            "negative_marking": test.negative_marking,
            "difficulty": test.difficulty,
            "topic_id": test.topic_id,
            "category_id": test.category_id,
            "created_at": test.created_at.isoformat() if test.created_at else None,
        }

    @staticmethod
    def _question_dict(question: Question, options: list[Option], include_answers: bool) -> dict:
        return {
            "id": question.id,
            "text": question.text,
            "points": question.points,
            "negative_points": question.negative_points,
            "order_index": question.order_index,
            "options": [
                {"id": o.id, "label": o.label, **({"is_correct": o.is_correct} if include_answers else {})}
                for o in options
            ],
        }
