from typing import Any

from sqlalchemy.orm import Session

from exam_portal.models.audit_log import AdminActivityLog


class AuditService:
    """Append-only admin activity log. performed_by is an admin email or "system"."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def log(
        self,
        action: str,
        performed_by: str,
        details: dict[str, Any] | None = None,
    ) -> AdminActivityLog:
        entry = AdminActivityLog(
            action=action,
            performed_by=performed_by,
            details=details or {},
        )
        self.db.add(entry)
        self.db.commit()
        self.db.refresh(entry)
        return entry

    def page(self, page: int, page_size: int, action: str | None = None) -> dict:
        q = self.db.query(AdminActivityLog)
        if action:
            q = q.filter(AdminActivityLog.action == action)
        total = q.count()
        rows = (
            q.order_by(AdminActivityLog.performed_at.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return {
            "items": [
                {
                    "id": r.id,
                    "action": r.action,
                    "details": r.details or {},
                    "performed_by": r.performed_by,
                    "performed_at": r.performed_at.isoformat() if r.performed_at else None,
                }
                for r in rows
            ],
            "total": total,
            "page": page,
            "pages": (total + page_size - 1) // page_size,
        }
