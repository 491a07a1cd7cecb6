from exam_portal.services.analytics.service import build_category_stats, build_leaderboard


class TestLeaderboard:
    def test_best_then_average(self):
        board = build_leaderboard([
            ("u1", "Asha", 8),
            ("u1", "Asha", 4),
            ("u2", "Ravi", 8),
            ("u2", "Ravi", 8),
            ("u3", None, 5),
        ])
        assert [e["user_id"] for e in board] == ["u2", "u1", "u3"]
        assert [e["rank"] for e in board] == [1, 2, 3]
        assert board[1]["average_score"] == 6
        assert board[1]["tests_completed"] == 2
        assert board[2]["full_name"] == "Unknown User"

    def test_null_scores_count_as_zero(self):
        board = build_leaderboard([("u1", "Asha", None), ("u1", "Asha", 3)])
        assert board[0]["best_score"] == 3
        assert board[0]["average_score"] == 1.5

    def test_empty(self):
        assert build_leaderboard([]) == []


class TestCategoryStats:
    def test_grouped_percentages(self):
        stats = build_category_stats([
            ("General Knowledge", 5, 10, 8),
            ("General Knowledge", 10, 10, 10),
            (None, 3, 4, 4),
        ])
        assert stats[0] == {
            "category": "General Knowledge",
            "total_tests": 2,
            "average_score": 75,
            "best_score": 100,
        }
        assert stats[1]["category"] == "Uncategorized"
        assert stats[1]["best_score"] == 75

    def test_falls_back_to_answer_count(self):
        stats = build_category_stats([("Hindi", 2, 0, 4)])
        assert stats[0]["average_score"] == 50

    def test_no_questions_no_answers(self):
        stats = build_category_stats([("Hindi", 0, 0, 0)])
        assert stats[0]["average_score"] == 0
