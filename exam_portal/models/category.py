from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Column, DateTime, Integer, String, Text

from exam_portal.db.base import Base


class TestCategory(Base):
    __tablename__ = "test_categories"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    # Access tier is inferred from this name (see exam_portal.access.policy.classify)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    display_order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))


class TestTopic(Base):
    __tablename__ = "test_topics"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    category_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    display_order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
