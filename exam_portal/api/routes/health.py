"""
Liveness and readiness probes.
/ready reports each dependency separately and answers 503 if any is down.
"""
import logging

import redis
from fastapi import APIRouter, Depends, Response, status
from sqlalchemy import text
from sqlalchemy.orm import Session

from exam_portal.core.config import settings
from exam_portal.db.session import get_db

logger = logging.getLogger(__name__)

router = APIRouter()


def _check_database(db: Session) -> None:
    db.execute(text("SELECT 1"))


def _check_redis() -> None:
    redis.Redis.from_url(settings.redis_url, socket_timeout=2).ping()


@router.get("/health")
def health() -> dict:
    return {"status": "ok"}


@router.get("/ready")
def readiness(response: Response, db: Session = Depends(get_db)) -> dict:
    checks = {}
    for name, probe in (("database", lambda: _check_database(db)), ("redis", _check_redis)):
        try:
            probe()
            checks[name] = "ok"
        except Exception as e:
            logger.warning("readiness_check_failed", extra={"category": name, "error": str(e)})
            checks[name] = "error"

    ready = all(state == "ok" for state in checks.values())
    if not ready:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return {
        "status": "ready" if ready else "not_ready",
        "checks": checks,
        "otp_backend": settings.otp_backend,
    }
