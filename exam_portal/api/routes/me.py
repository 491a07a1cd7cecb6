from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from exam_portal.db.session import get_db
from exam_portal.models.user import User
from exam_portal.services.analytics.service import AnalyticsService
from exam_portal.services.auth.tokens import get_current_student
from exam_portal.services.exams.service import ExamService

router = APIRouter(tags=["me"])


@router.get("/me/attempts")
def my_attempts(db: Session = Depends(get_db), user: User = Depends(get_current_student)):
    return {"success": True, "attempts": ExamService(db).list_user_attempts(user.id)}


@router.get("/me/analytics")
def my_analytics(db: Session = Depends(get_db), user: User = Depends(get_current_student)):
    return {"success": True, "categories": AnalyticsService(db).student_analytics(user.id)}


@router.get("/leaderboard")
def leaderboard(db: Session = Depends(get_db)):
    return {"success": True, "leaderboard": AnalyticsService(db).leaderboard()}
