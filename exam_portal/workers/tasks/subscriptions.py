"""
Celery periodic task: expire overdue subscriptions and deactivate those of
students who have not logged in for inactive_user_days.
"""
import logging
from datetime import datetime, timezone

from exam_portal.core.celery_app import celery_app
from exam_portal.core.config import settings
from exam_portal.db.session import SessionLocal
from exam_portal.services.audit.service import AuditService
from exam_portal.services.subscriptions.service import SubscriptionService
from exam_portal.utils.metrics import subscriptions_deactivated_total

logger = logging.getLogger(__name__)


@celery_app.task(name="exam_portal.workers.tasks.subscriptions.deactivate_expired_subscriptions")
def deactivate_expired_subscriptions() -> dict:
    db = SessionLocal()
    try:
        now = datetime.now(timezone.utc)
        svc = SubscriptionService(db)
        expired = svc.expire_overdue(now)
        inactive = svc.deactivate_inactive_users(settings.inactive_user_days, now)
        db.commit()

        AuditService(db).log(
            "auto_deactivate_users",
            "system",
            {
                "expired_count": expired,
                "inactive_count": inactive,
                "inactive_days": settings.inactive_user_days,
                "run_at": now.isoformat(),
            },
        )
        subscriptions_deactivated_total.labels(reason="expired").inc(expired)
        subscriptions_deactivated_total.labels(reason="inactive").inc(inactive)

        logger.info(
            "deactivate_expired_subscriptions_done",
            extra={"expired_count": expired, "inactive_count": inactive},
        )
        return {"expired": expired, "inactive": inactive}
    except Exception:
        db.rollback()
        logger.exception("deactivate_expired_subscriptions_error")
        return {"expired": 0, "inactive": 0, "error": "exception"}
    finally:
        db.close()
