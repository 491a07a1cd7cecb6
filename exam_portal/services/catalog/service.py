from sqlalchemy import func
from sqlalchemy.orm import Session

from exam_portal.models.category import TestCategory, TestTopic
from exam_portal.models.test import Question, Test


class CategoryHasTests(Exception):
    def __init__(self, category_ids: list[str]):
        super().__init__("Cannot delete categories that contain tests")
        self.category_ids = category_ids


class CatalogService:
    def __init__(self, db: Session):
        self.db = db

    # ---------- Categories ----------

    def list_categories(self) -> list[TestCategory]:
        return self.db.query(TestCategory).order_by(TestCategory.display_order.asc()).all()

    def get_category(self, category_id: str) -> TestCategory | None:
        return self.db.query(TestCategory).filter(TestCategory.id == category_id).one_or_none()

    def category_names(self, category_ids: set[str]) -> dict[str, str]:
        if not category_ids:
            return {}
        rows = self.db.query(TestCategory.id, TestCategory.name).filter(TestCategory.id.in_(category_ids))
        return {row.id: row.name for row in rows}

    def create_category(self, name: str, description: str | None = None) -> TestCategory:
        max_order = self.db.query(func.max(TestCategory.display_order)).scalar() or 0
        category = TestCategory(name=name, description=description, display_order=max_order + 1)
        self.db.add(category)
        self.db.commit()
        self.db.refresh(category)
        return category

    def update_category(self, category: TestCategory, payload: dict) -> TestCategory:
        for field in ("name", "description", "display_order"):
            if field in payload and payload[field] is not None:
                setattr(category, field, payload[field])
        self.db.add(category)
        self.db.commit()
        self.db.refresh(category)
        return category

    def category_tree(self) -> list[dict]:
        """Categories -> topics -> non-draft tests, with question and test counts."""
        categories = self.list_categories()
        topics = self.db.query(TestTopic).order_by(TestTopic.display_order.asc()).all()
        tests = self.db.query(Test).filter(Test.status != "draft").all()
        question_counts = self._question_counts([t.id for t in tests])

        tests_by_topic: dict[str, list[dict]] = {}
        for test in tests:
            if not test.topic_id:
                continue
            tests_by_topic.setdefault(test.topic_id, []).append({
                "id": test.id,
                "title": test.title,
                "status": test.status,
                "duration_minutes": test.duration_minutes,
                "description": test.description,
                "created_at": test.created_at.isoformat() if test.created_at else None,
                "question_count": question_counts.get(test.id, 0),
            })

        topics_by_category: dict[str, list[dict]] = {}
        for topic in topics:
            topic_tests = tests_by_topic.get(topic.id, [])
            topics_by_category.setdefault(topic.category_id, []).append({
                "id": topic.id,
                "name": topic.name,
                "description": topic.description,
                "display_order": topic.display_order,
                "category_id": topic.category_id,
                "tests": topic_tests,
                "test_count": len(topic_tests),
            })

        tree = []
        for category in categories:
            category_topics = topics_by_category.get(category.id, [])
            tree.append({
                "id": category.id,
                "name": category.name,
                "description": category.description,
                "display_order": category.display_order,
                "topics": category_topics,
                "test_count": sum(t["test_count"] for t in category_topics),
            })
        return tree

    # ---------- Topics ----------

    def get_topic(self, topic_id: str) -> TestTopic | None:
        return self.db.query(TestTopic).filter(TestTopic.id == topic_id).one_or_none()

    def list_topics(self, category_id: str | None = None) -> list[dict]:
        q = self.db.query(TestTopic)
        if category_id:
            q = q.filter(TestTopic.category_id == category_id)
        topics = q.order_by(TestTopic.display_order.asc()).all()
        names = self.category_names({t.category_id for t in topics})
        counts = dict(
            self.db.query(Test.topic_id, func.count(Test.id))
            .filter(Test.topic_id.in_([t.id for t in topics]))
            .group_by(Test.topic_id)
            .all()
        ) if topics else {}
        return [
            {
                "id": t.id,
                "name": t.name,
                "description": t.description,
                "display_order": t.display_order,
                "category_id": t.category_id,
                "category": {"id": t.category_id, "name": names[t.category_id]} if t.category_id in names else None,
                "test_count": counts.get(t.id, 0),
            }
            for t in topics
        ]

    def create_topic(self, name: str, category_id: str, description: str | None = None) -> TestTopic:
        max_order = (
            self.db.query(func.max(TestTopic.display_order))
            .filter(TestTopic.category_id == category_id)
            .scalar()
            or 0
        )
        topic = TestTopic(name=name, description=description, category_id=category_id, display_order=max_order + 1)
        self.db.add(topic)
        self.db.commit()
        self.db.refresh(topic)
        return topic

    def update_topic(self, topic: TestTopic, payload: dict) -> TestTopic:
        for field in ("name", "description", "display_order", "category_id"):
            if field in payload and payload[field] is not None:
                setattr(topic, field, payload[field])
        self.db.add(topic)
        self.db.commit()
        self.db.refresh(topic)
        return topic

    def delete_topic(self, topic: TestTopic) -> None:
        self.db.delete(topic)
        self.db.commit()

    # ---------- Tests (student listing) ----------

    def list_tests(self, topic_id: str | None = None, category_id: str | None = None) -> list[dict]:
        q = self.db.query(Test).filter(Test.status != "draft")
        if topic_id:
            q = q.filter(Test.topic_id == topic_id)
        elif category_id:
            q = q.filter(Test.category_id == category_id)
        tests = q.order_by(Test.created_at.desc()).all()

        topic_names = {}
        topic_ids = {t.topic_id for t in tests if t.topic_id}
        if topic_ids:
            topic_names = {
                row.id: row.name
                for row in self.db.query(TestTopic.id, TestTopic.name).filter(TestTopic.id.in_(topic_ids))
            }
        category_names = self.category_names({t.category_id for t in tests if t.category_id})
        return [
            {
                "id": t.id,
                "title": t.title,
                "description": t.description,
                "duration_minutes": t.duration_minutes,
                "status": t.status,
                "created_at": t.created_at.isoformat() if t.created_at else None,
                "topic_id": t.topic_id,
                "category_id": t.category_id,
                "topic": {"id": t.topic_id, "name": topic_names[t.topic_id]} if t.topic_id in topic_names else None,
                "category": (
                    {"id": t.category_id, "name": category_names[t.category_id]}
                    if t.category_id in category_names
                    else None
                ),
            }
            for t in tests
        ]

    # ---------- Cleanup ----------

    def categories_with_counts(self) -> list[dict]:
        categories = self.list_categories()
        topics = self.db.query(TestTopic.id, TestTopic.category_id).all()
        test_counts = dict(
            self.db.query(Test.topic_id, func.count(Test.id)).filter(Test.topic_id.isnot(None)).group_by(Test.topic_id).all()
        )
        items = []
        for category in categories:
            category_topic_ids = [t.id for t in topics if t.category_id == category.id]
            test_count = sum(test_counts.get(tid, 0) for tid in category_topic_ids)
            items.append({
                "id": category.id,
                "name": category.name,
                "description": category.description,
                "display_order": category.display_order,
                "test_count": test_count,
                "topic_count": len(category_topic_ids),
                "is_empty": test_count == 0,
            })
        return items

    def delete_categories(self, category_ids: list[str]) -> int:
        """Delete empty categories and their topics. Raises CategoryHasTests if any still holds tests."""
        topic_rows = self.db.query(TestTopic.id, TestTopic.category_id).filter(TestTopic.category_id.in_(category_ids)).all()
        topic_ids = [row.id for row in topic_rows]
        topics_with_tests = set()
        if topic_ids:
            topics_with_tests = {
                row.topic_id
                for row in self.db.query(Test.topic_id).filter(Test.topic_id.in_(topic_ids)).distinct()
            }
        offenders = sorted({row.category_id for row in topic_rows if row.id in topics_with_tests})
        if offenders:
            raise CategoryHasTests(offenders)

        self.db.query(TestTopic).filter(TestTopic.category_id.in_(category_ids)).delete(synchronize_session=False)
        self.db.query(TestCategory).filter(TestCategory.id.in_(category_ids)).delete(synchronize_session=False)
        self.db.commit()
        return len(category_ids)

    def _question_counts(self, test_ids: list[str]) -> dict[str, int]:
        if not test_ids:
            return {}
        return dict(
            self.db.query(Question.test_id, func.count(Question.id))
            .filter(Question.test_id.in_(test_ids))
            .group_by(Question.test_id)
            .all()
        )
