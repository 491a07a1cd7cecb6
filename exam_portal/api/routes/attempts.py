"""
Taking a test: start or resume an attempt, submit answers, review the result.
"""
import logging

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from exam_portal.access import ContentTier, can_access_test, classify, get_upgrade_message
from exam_portal.api.deps import access_for
from exam_portal.db.session import get_db
from exam_portal.models.user import User
from exam_portal.schemas.exams import SubmitIn
from exam_portal.services.auth.tokens import get_current_student
from exam_portal.services.exams.service import (
    AttemptAlreadySubmitted,
    AttemptNotFound,
    ExamService,
    TestNotAvailable,
)
from exam_portal.utils.metrics import access_denied_total, attempts_started_total, attempts_submitted_total

logger = logging.getLogger(__name__)

router = APIRouter(tags=["attempts"])


@router.post("/tests/{test_id}/attempts")
def start_attempt(
    test_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_student),
):
    svc = ExamService(db)
    test = svc.get_test(test_id)
    if test is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Test not found")
    if test.status != "published":
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Test is not available")

    if svc.submitted_attempt(user.id, test.id):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Test already submitted")

    category_name = svc.category_name(test)
    sample = bool(category_name) and classify(category_name) is ContentTier.SAMPLE
    if not sample and not can_access_test(access_for(db, user), test.id, category_name):
        access_denied_total.labels(kind="test").inc()
        logger.info("test_access_denied", extra={"user_id": user.id, "test_id": test.id})
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=get_upgrade_message(category_name or ""),
        )

    try:
        started = svc.start_attempt(user.id, test)
    except AttemptAlreadySubmitted:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Test already submitted")
    except TestNotAvailable:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Test is not available")

    attempts_started_total.labels(outcome="resumed" if started["resumed"] else "created").inc()
    return started


@router.post("/attempts/{attempt_id}/submit")
def submit_attempt(
    attempt_id: str,
    body: SubmitIn = Body(...),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_student),
):
    try:
        attempt = ExamService(db).submit_attempt(user.id, attempt_id, body.answers, body.time_remaining)
    except AttemptNotFound:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Attempt not found")
    except AttemptAlreadySubmitted:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Attempt already submitted")
    attempts_submitted_total.inc()
    return {
        "success": True,
        "attempt_id": attempt.id,
        "status": attempt.status,
        "total_score": attempt.total_score,
        "submitted_at": attempt.submitted_at.isoformat() if attempt.submitted_at else None,
    }


@router.get("/attempts/{attempt_id}/review")
def review_attempt(
    attempt_id: str,
    mistakes_only: bool = Query(False),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_student),
):
    svc = ExamService(db)
    try:
        attempt = svc.get_attempt(user.id, attempt_id)
        return svc.review(attempt, mistakes_only=mistakes_only)
    except AttemptNotFound:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Attempt not found")
    except TestNotAvailable:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Attempt has not been submitted")
