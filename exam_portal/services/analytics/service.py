"""
Read-only aggregates: admin dashboard and analytics, result listings,
leaderboard and per-student analytics.
"""
from sqlalchemy import func
from sqlalchemy.orm import Session

from exam_portal.models.attempt import Answer, Attempt
from exam_portal.models.category import TestCategory
from exam_portal.models.plan import UserSubscription
from exam_portal.models.test import Question, Test
from exam_portal.models.user import User


def build_leaderboard(rows: list[tuple[str, str | None, float]]) -> list[dict]:
    """
    rows: (user_id, full_name, total_score) per submitted attempt.
    Per user: best score, tests completed, average score; best first, then average.
    """
    board: dict[str, dict] = {}
    for user_id, full_name, score in rows:
        score = score or 0
        entry = board.get(user_id)
        if entry is None:
            board[user_id] = {
                "user_id": user_id,
                "full_name": full_name or "Unknown User",
                "best_score": score,
                "tests_completed": 1,
                "average_score": score,
            }
            continue
        entry["tests_completed"] += 1
        n = entry["tests_completed"]
        entry["average_score"] = (entry["average_score"] * (n - 1) + score) / n
        entry["best_score"] = max(entry["best_score"], score)
    ranked = sorted(board.values(), key=lambda e: (e["best_score"], e["average_score"]), reverse=True)
    for rank, entry in enumerate(ranked, start=1):
        entry["rank"] = rank
        entry["average_score"] = round(entry["average_score"], 2)
    return ranked


def build_category_stats(rows: list[tuple[str | None, float, int, int]]) -> list[dict]:
    """
    rows: (category_name, total_score, question_count, answer_count) per submitted attempt.
    Percentages use the question count, falling back to the number of answers.
    """
    grouped: dict[str, list[float]] = {}
    for category_name, total_score, question_count, answer_count in rows:
        total = question_count or answer_count
        percentage = (total_score / total) * 100 if total > 0 else 0
        grouped.setdefault(category_name or "Uncategorized", []).append(percentage)

    stats = [
        {
            "category": name,
            "total_tests": len(percentages),
            "average_score": round(sum(percentages) / len(percentages)),
            "best_score": round(max(percentages)),
        }
        for name, percentages in grouped.items()
    ]
    stats.sort(key=lambda s: s["total_tests"], reverse=True)
    return stats


class AnalyticsService:
    def __init__(self, db: Session):
        self.db = db

    def dashboard(self) -> dict:
        return {
            "total_users": self.db.query(User).count(),
            "total_tests": self.db.query(Test).count(),
            "total_attempts": self.db.query(Attempt).count(),
            "total_students": self.db.query(User).filter(User.role == "student").count(),
            "total_subscriptions": self.db.query(UserSubscription).count(),
        }

    def overview(self, recent_limit: int = 10) -> dict:
        recent = (
            self.db.query(Attempt, User.full_name, Test.title)
            .outerjoin(User, User.id == Attempt.user_id)
            .outerjoin(Test, Test.id == Attempt.test_id)
            .filter(Attempt.status == "submitted")
            .order_by(Attempt.submitted_at.desc())
            .limit(recent_limit)
            .all()
        )
        per_test = (
            self.db.query(
                Test.id,
                Test.title,
                func.count(Attempt.id).label("attempts"),
                func.avg(Attempt.total_score).label("average_score"),
            )
            .join(Attempt, Attempt.test_id == Test.id)
            .filter(Attempt.status == "submitted")
            .group_by(Test.id, Test.title)
            .all()
        )
        return {
            "total_attempts": self.db.query(Attempt).count(),
            "submitted_attempts": self.db.query(Attempt).filter(Attempt.status == "submitted").count(),
            "active_attempts": self.db.query(Attempt).filter(Attempt.status == "active").count(),
            "total_students": self.db.query(User).filter(User.role == "student").count(),
            "total_tests": self.db.query(Test).count(),
            "recent_attempts": [
                {
                    "id": attempt.id,
                    "user_name": full_name,
                    "test_title": title,
                    "total_score": attempt.total_score,
                    "submitted_at": attempt.submitted_at.isoformat() if attempt.submitted_at else None,
                }
                for attempt, full_name, title in recent
            ],
            "tests": [
                {
                    "test_id": row.id,
                    "title": row.title,
                    "attempts": row.attempts,
                    "average_score": round(float(row.average_score or 0), 2),
                }
                for row in per_test
            ],
        }

    def test_results(self, test_id: str) -> list[dict]:
        rows = (
            self.db.query(Attempt, User.email, User.full_name)
            .outerjoin(User, User.id == Attempt.user_id)
            .filter(Attempt.test_id == test_id)
            .order_by(Attempt.created_at.desc())
            .all()
        )
        return [
            {
                "id": attempt.id,
                "user_id": attempt.user_id,
                "user": {"email": email, "full_name": full_name},
                "status": attempt.status,
                "total_score": attempt.total_score,
                "started_at": attempt.started_at.isoformat() if attempt.started_at else None,
                "submitted_at": attempt.submitted_at.isoformat() if attempt.submitted_at else None,
            }
            for attempt, email, full_name in rows
        ]

    def get_attempt(self, attempt_id: str) -> Attempt | None:
        return self.db.query(Attempt).filter(Attempt.id == attempt_id).one_or_none()

    def delete_attempt(self, attempt: Attempt) -> None:
        self.db.query(Answer).filter(Answer.attempt_id == attempt.id).delete(synchronize_session=False)
        self.db.delete(attempt)
        self.db.commit()

    def leaderboard(self) -> list[dict]:
        rows = (
            self.db.query(Attempt.user_id, User.full_name, Attempt.total_score)
            .outerjoin(User, User.id == Attempt.user_id)
            .filter(Attempt.status == "submitted")
            .all()
        )
        return build_leaderboard([(r.user_id, r.full_name, r.total_score) for r in rows])

    def student_analytics(self, user_id: str) -> list[dict]:
        question_counts = (
            self.db.query(Question.test_id, func.count(Question.id).label("n"))
            .group_by(Question.test_id)
            .subquery()
        )
        answer_counts = (
            self.db.query(Answer.attempt_id, func.count(Answer.id).label("n"))
            .group_by(Answer.attempt_id)
            .subquery()
        )
        rows = (
            self.db.query(
                TestCategory.name,
                Attempt.total_score,
                func.coalesce(question_counts.c.n, 0),
                func.coalesce(answer_counts.c.n, 0),
            )
            .join(Test, Test.id == Attempt.test_id)
            .outerjoin(TestCategory, TestCategory.id == Test.category_id)
            .outerjoin(question_counts, question_counts.c.test_id == Test.id)
            .outerjoin(answer_counts, answer_counts.c.attempt_id == Attempt.id)
            .filter(Attempt.user_id == user_id, Attempt.status == "submitted")
            .all()
        )
        return build_category_stats([(r[0], r[1] or 0, r[2], r[3]) for r in rows])
