from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, Float, Integer, String, Text

from exam_portal.db.base import Base


class Test(Base):
    __tablename__ = "tests"
    __test__ = False  # not a pytest test class

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    duration_minutes = Column(Integer, nullable=False, default=30)
    status = Column(String, nullable=False, default="draft")  # draft, published, coming_soon
    shuffle_questions = Column(Boolean, nullable=False, default=True)
    shuffle_options = Column(Boolean, nullable=False, default=True)
    negative_marking = Column(Boolean, nullable=False, default=False)
    difficulty = Column(String, nullable=False, default="medium")
    topic_id = Column(String, nullable=True, index=True)
    category_id = Column(String, nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))


class Question(Base):
    __tablename__ = "questions"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    test_id = Column(String, nullable=False, index=True)
    text = Column(Text, nullable=False)
    points = Column(Float, nullable=False, default=1)
    negative_points = Column(Float, nullable=False, default=0)
    order_index = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))


class Option(Base):
    __tablename__ = "options"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    question_id = Column(String, nullable=False, index=True)
    label = Column(Text, nullable=False)
    is_correct = Column(Boolean, nullable=False, default=False)
    order_index = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
