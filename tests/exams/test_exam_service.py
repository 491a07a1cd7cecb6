"""ExamService attempt lifecycle over a mocked session."""
import random
from unittest.mock import MagicMock

import pytest

from exam_portal.services.exams.service import (
    AttemptAlreadySubmitted,
    AttemptNotFound,
    ExamService,
    TestNotAvailable,
)


def _test(**kwargs):
    test = MagicMock()
    test.id = kwargs.get("id", "t1")
    test.status = kwargs.get("status", "published")
    test.duration_minutes = kwargs.get("duration_minutes", 30)
    test.shuffle_questions = kwargs.get("shuffle_questions", False)
    test.shuffle_options = kwargs.get("shuffle_options", False)
    return test


class TestStartAttempt:
    def test_unpublished_test_rejected(self):
        db = MagicMock()
        with pytest.raises(TestNotAvailable):
            ExamService(db).start_attempt("u1", _test(status="draft"))
        db.add.assert_not_called()

    def test_already_submitted(self):
        db = MagicMock()
        db.query.return_value.filter.return_value.first.return_value = MagicMock(id="a1")
        with pytest.raises(AttemptAlreadySubmitted):
            ExamService(db).start_attempt("u1", _test())

    def test_new_attempt_gets_full_time(self):
        db = MagicMock()
        db.query.return_value.filter.return_value.first.return_value = None
        svc = ExamService(db, rng=random.Random(0))
        svc._questions = MagicMock(return_value=[])
        svc._options_by_question = MagicMock(return_value={})

        result = svc.start_attempt("u1", _test(duration_minutes=45))

        attempt = db.add.call_args[0][0]
        assert attempt.user_id == "u1"
        assert attempt.status == "active"
        assert attempt.time_remaining == 45 * 60
        assert result["resumed"] is False
        db.commit.assert_called_once()

    def test_active_attempt_resumed(self):
        db = MagicMock()
        active = MagicMock(id="a1", time_remaining=100)
        db.query.return_value.filter.return_value.first.side_effect = [None, active]
        svc = ExamService(db)
        svc._questions = MagicMock(return_value=[])
        svc._options_by_question = MagicMock(return_value={})

        result = svc.start_attempt("u1", _test())

        assert result["attempt_id"] == "a1"
        assert result["time_remaining"] == 100
        assert result["resumed"] is True
        db.add.assert_not_called()


class TestSubmitAttempt:
    def test_other_users_attempt_not_found(self):
        db = MagicMock()
        db.query.return_value.filter.return_value.one_or_none.return_value = MagicMock(user_id="someone-else")
        with pytest.raises(AttemptNotFound):
            ExamService(db).submit_attempt("u1", "a1", [])

    def test_submitted_attempt_rejected(self):
        db = MagicMock()
        db.query.return_value.filter.return_value.one_or_none.return_value = MagicMock(
            user_id="u1", status="submitted"
        )
        with pytest.raises(AttemptAlreadySubmitted):
            ExamService(db).submit_attempt("u1", "a1", [])

    def test_review_requires_submitted(self):
        attempt = MagicMock(status="active", test_id="t1")
        with pytest.raises(TestNotAvailable):
            ExamService(MagicMock()).review(attempt)
