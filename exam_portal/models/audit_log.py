from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Column, DateTime, String
from sqlalchemy.dialects.postgresql import JSONB

from exam_portal.db.base import Base


class AdminActivityLog(Base):
    __tablename__ = "admin_activity_log"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    action = Column(String, nullable=False)
    details = Column(JSONB, nullable=False, default=dict)
    performed_by = Column(String, nullable=False)  # admin email or "system"
    performed_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
