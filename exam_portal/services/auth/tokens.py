"""
Student bearer tokens: itsdangerous signed, timed payload {"uid": user_id}.
Issued after OTP verification.
"""
from fastapi import Depends, HTTPException, Request, status
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from sqlalchemy.orm import Session

from exam_portal.core.config import settings
from exam_portal.db.session import get_db
from exam_portal.models.user import User
from exam_portal.services.users.service import UserService

_serializer = URLSafeTimedSerializer(settings.secret_key, salt="student-token")


def create_student_token(user_id: str) -> str:
    return _serializer.dumps({"uid": user_id})


def read_student_token(token: str) -> str | None:
    """User id from a valid token, None if tampered or expired."""
    try:
        data = _serializer.loads(token, max_age=settings.student_token_ttl)
    except (BadSignature, SignatureExpired):
        return None
    return data.get("uid") if isinstance(data, dict) else None


def _bearer(request: Request) -> str | None:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    return token.strip()


def get_optional_student(request: Request, db: Session = Depends(get_db)) -> User | None:
    """Current student, or None for anonymous/demo sessions."""
    token = _bearer(request)
    if not token:
        return None
    user_id = read_student_token(token)
    if not user_id:
        return None
    return UserService(db).get(user_id)


def get_current_student(user: User | None = Depends(get_optional_student)) -> User:
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user
