from fastapi import Request
from sqlalchemy.orm import Session

from exam_portal.access import UserAccess, resolve_access
from exam_portal.models.user import User
from exam_portal.services.otp.service import OtpService
from exam_portal.services.subscriptions.service import SubscriptionService


def get_otp_service(request: Request) -> OtpService:
    return OtpService(request.app.state.otp_store)


def access_for(db: Session, user: User | None) -> UserAccess:
    """Entitlements of the caller; anonymous callers get closed access."""
    return resolve_access(SubscriptionService(db), user.id if user else None)
