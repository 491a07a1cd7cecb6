"""
Student authentication: email OTP (send / verify), email check and current user.
"""
import logging

from fastapi import APIRouter, Body, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from exam_portal.api.deps import get_otp_service
from exam_portal.core.config import settings
from exam_portal.db.session import get_db
from exam_portal.models.user import User
from exam_portal.schemas.auth import (
    AuthResult,
    SendOtpRequest,
    StudentLoginRequest,
    StudentOut,
    TokenOut,
    VerifyOtpRequest,
)
from exam_portal.services.auth.rate_limit import check_otp_send_rate_limit
from exam_portal.services.auth.tokens import create_student_token, get_current_student
from exam_portal.services.email.service import EmailError, EmailService
from exam_portal.services.otp.service import OtpService
from exam_portal.services.users.service import UserService
from exam_portal.utils.metrics import otp_sent_total, otp_verify_total

logger = logging.getLogger("auth")

router = APIRouter(prefix="/auth", tags=["auth"])

LOOPBACK = {"127.0.0.1", "::1", "localhost", "unknown"}

_VERIFY_RESULTS = {
    "OTP not found. Please request a new one.": "not_found",
    "OTP has expired. Please request a new one.": "expired",
    "Too many failed attempts. Please request a new OTP.": "too_many_attempts",
}


def request_ip(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()
    return request.client.host if request.client else "unknown"


def login_location(ip: str) -> str:
    return "Local Development" if ip in LOOPBACK else settings.default_login_location


def _student_out(user: User) -> StudentOut:
    return StudentOut(id=user.id, email=user.email, full_name=user.full_name or "", role=user.role)


@router.post("/send-otp", response_model=AuthResult)
def send_otp(
    body: SendOtpRequest = Body(...),
    db: Session = Depends(get_db),
    otp_service: OtpService = Depends(get_otp_service),
):
    if not body.email or not body.email.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email is required")

    # Counted before the lookup so unknown addresses are limited too
    if not check_otp_send_rate_limit(body.email):
        otp_sent_total.labels(status="rate_limited").inc()
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many OTP requests. Please try again later.",
        )

    user = UserService(db).get_by_email(body.email)
    if user is None:
        # Same answer as for registered emails
        return AuthResult(success=True, message="If your email is registered, you will receive an OTP")

    otp = otp_service.issue(user.email)
    try:
        EmailService().send_otp(user.email, otp)
    except EmailError as e:
        otp_service.clear(user.email)
        otp_sent_total.labels(status="email_failed").inc()
        logger.error("otp_email_failed", extra={"email": user.email, "error": str(e)})
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to send OTP email. Please try again later.",
        )
    otp_sent_total.labels(status="sent").inc()
    return AuthResult(success=True, message="OTP sent to your email")


@router.post("/verify-otp", response_model=TokenOut)
def verify_otp(
    request: Request,
    body: VerifyOtpRequest = Body(...),
    db: Session = Depends(get_db),
    otp_service: OtpService = Depends(get_otp_service),
):
    if not body.email or not body.otp:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email and OTP are required")

    result = otp_service.verify(body.email, body.otp)
    if not result.valid:
        otp_verify_total.labels(result=_VERIFY_RESULTS.get(result.message, "invalid")).inc()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=result.message)

    users = UserService(db)
    user = users.get_by_email(body.email)
    if user is None:
        otp_verify_total.labels(result="not_found").inc()
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    otp_verify_total.labels(result="success").inc()
    users.touch_login(user)

    ip = request_ip(request)
    try:
        EmailService().send_login_notification(
            user.email,
            user.full_name or user.email,
            ip,
            request.headers.get("User-Agent", "Unknown Device"),
            login_location(ip),
        )
    except EmailError as e:
        logger.warning("login_notification_failed", extra={"email": user.email, "error": str(e)})

    logger.info("student_logged_in", extra={"user_id": user.id, "ip": ip})
    return TokenOut(
        message="Login successful",
        access_token=create_student_token(user.id),
        user=_student_out(user),
    )


@router.post("/login", response_model=StudentOut)
def login(body: StudentLoginRequest = Body(...), db: Session = Depends(get_db)):
    """Step 1 of student login: the email must belong to a registered student."""
    user = UserService(db).validate_student_login(body.email)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Email not found in our system",
        )
    return _student_out(user)


@router.get("/me", response_model=StudentOut)
def me(user: User = Depends(get_current_student)):
    return _student_out(user)
