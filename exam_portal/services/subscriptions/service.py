"""
Plans and user subscriptions.

SubscriptionService is also the data source of exam_portal.access.resolve_access:
active_subscriptions() and all_plans() are plain reads, joined by the caller.
"""
import logging
import re
from datetime import datetime, timedelta, timezone

from sqlalchemy.orm import Session

from exam_portal.access.models import PlanRow, SubscriptionRow
from exam_portal.core.config import settings
from exam_portal.models.plan import Plan, UserSubscription
from exam_portal.models.user import User
from exam_portal.services.users.service import UserService, normalize_email

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class PlanNotFound(Exception):
    pass


class InvalidEmail(Exception):
    pass


class UserNotFound(Exception):
    pass


def _derive_name(email: str) -> str:
    local = email.split("@")[0]
    name = re.sub(r"[0-9]", "", local).replace(".", " ")
    return name[:1].upper() + name[1:]


class SubscriptionService:
    def __init__(self, db: Session):
        self.db = db

    # ---------- Access resolution source ----------
    # Reads run in a savepoint so a failed lookup leaves the request session usable.

    def active_subscriptions(self, user_id: str) -> list[SubscriptionRow]:
        with self.db.begin_nested():
            rows = (
                self.db.query(UserSubscription)
                .filter(UserSubscription.user_id == user_id, UserSubscription.status == "active")
                .all()
            )
        return [SubscriptionRow(plan_id=s.plan_id, status=s.status, expires_at=s.expires_at) for s in rows]

    def all_plans(self) -> list[PlanRow]:
        with self.db.begin_nested():
            plans = self.db.query(Plan).all()
        return [PlanRow(id=p.id, name=p.name) for p in plans]

    # ---------- Admin ----------

    def list_plans(self) -> list[Plan]:
        return self.db.query(Plan).order_by(Plan.name).all()

    def get(self, subscription_id: str) -> UserSubscription | None:
        return self.db.query(UserSubscription).filter(UserSubscription.id == subscription_id).one_or_none()

    def list_combined(self) -> list[dict]:
        """Subscriptions with plan and user, joined here rather than in SQL."""
        subs = self.db.query(UserSubscription).order_by(UserSubscription.created_at.desc()).all()
        plans = {p.id: p for p in self.db.query(Plan).all()}
        users = {u.id: u for u in self.db.query(User).all()}
        items = []
        for sub in subs:
            plan = plans.get(sub.plan_id)
            user = users.get(sub.user_id)
            email = user.email if user and user.email else f"user-{sub.user_id[:8]}@example.com"
            full_name = ((user.full_name if user else "") or "").strip() or _derive_name(email)
            items.append({
                "id": sub.id,
                "user_id": sub.user_id,
                "plan_id": sub.plan_id,
                "status": sub.status,
                "is_active": sub.is_active,
                "expires_at": sub.expires_at.isoformat() if sub.expires_at else None,
                "deactivated_at": sub.deactivated_at.isoformat() if sub.deactivated_at else None,
                "deactivation_reason": sub.deactivation_reason,
                "created_at": sub.created_at.isoformat() if sub.created_at else None,
                "plan": {
                    "id": plan.id if plan else sub.plan_id,
                    "name": plan.name if plan else "unknown",
                    "display_name": plan.display_name if plan else "Unknown Plan",
                },
                "user": {"id": sub.user_id, "email": email, "full_name": full_name},
            })
        return items

    def grant_plan(
        self,
        email: str,
        plan_name: str,
        create_user_if_missing: bool = False,
        full_name: str | None = None,
    ) -> tuple[UserSubscription, bool]:
        """
        Activate plan_name for the user with this email for subscription_days.
        Renews an existing subscription to the same plan. Returns (subscription, created).
        """
        if not EMAIL_RE.match(email.strip()):
            raise InvalidEmail(email)

        users = UserService(self.db)
        user = users.get_by_email(email)
        if user is None and not create_user_if_missing:
            raise UserNotFound(email)
        if user is None:
            name = full_name or re.sub(r"[^a-zA-Z\s]", "", normalize_email(email).split("@")[0])
        else:
            name = None
        user, _ = users.ensure_student(email, name)

        plan = self.db.query(Plan).filter(Plan.name == plan_name).one_or_none()
        if plan is None:
            raise PlanNotFound(plan_name)

        expires_at = datetime.now(timezone.utc) + timedelta(days=settings.subscription_days)
        sub = (
            self.db.query(UserSubscription)
            .filter(UserSubscription.user_id == user.id, UserSubscription.plan_id == plan.id)
            .first()
        )
        created = sub is None
        if created:
            sub = UserSubscription(user_id=user.id, plan_id=plan.id)
        sub.status = "active"
        sub.is_active = True
        sub.expires_at = expires_at
        sub.deactivated_at = None
        sub.deactivation_reason = None
        self.db.add(sub)
        self.db.commit()
        self.db.refresh(sub)
        logger.info("subscription_granted", extra={"user_id": user.id, "plan_names": [plan.name]})
        return sub, created

    def set_active(self, sub: UserSubscription, active: bool, reason: str | None = None) -> UserSubscription:
        sub.is_active = active
        sub.status = "active" if active else "inactive"
        if active:
            sub.deactivated_at = None
            sub.deactivation_reason = None
        else:
            sub.deactivated_at = datetime.now(timezone.utc)
            sub.deactivation_reason = reason or "Manual deactivation by admin"
        self.db.add(sub)
        self.db.commit()
        self.db.refresh(sub)
        return sub

    def update(self, sub: UserSubscription, status: str | None = None, expires_at: datetime | None = None) -> UserSubscription:
        if status is not None:
            sub.status = status
            sub.is_active = status == "active"
        if expires_at is not None:
            sub.expires_at = expires_at
        self.db.add(sub)
        self.db.commit()
        self.db.refresh(sub)
        return sub

    def delete_with_user(self, sub: UserSubscription) -> None:
        user = self.db.query(User).filter(User.id == sub.user_id).one_or_none()
        self.db.delete(sub)
        if user is not None:
            self.db.delete(user)
        self.db.commit()

    def fix_access(self, email: str) -> User:
        """Ensure the user exists as a student and its active subscriptions read as active."""
        user, _ = UserService(self.db).ensure_student(email)
        (
            self.db.query(UserSubscription)
            .filter(UserSubscription.user_id == user.id, UserSubscription.is_active.is_(True))
            .update({UserSubscription.status: "active"}, synchronize_session=False)
        )
        self.db.commit()
        return user

    # ---------- Maintenance ----------

    def expire_overdue(self, now: datetime | None = None) -> int:
        now = now or datetime.now(timezone.utc)
        overdue = (
            self.db.query(UserSubscription)
            .filter(
                UserSubscription.status == "active",
                UserSubscription.expires_at.isnot(None),
                UserSubscription.expires_at < now,
            )
            .all()
        )
        for sub in overdue:
            sub.status = "expired"
            sub.is_active = False
            sub.deactivated_at = now
            sub.deactivation_reason = "Subscription expired"
            self.db.add(sub)
        return len(overdue)

    def deactivate_inactive_users(self, days: int, now: datetime | None = None) -> int:
        now = now or datetime.now(timezone.utc)
        cutoff = now - timedelta(days=days)
        stale_user_ids = [
            row.id
            for row in self.db.query(User.id).filter(User.last_login_at.isnot(None), User.last_login_at < cutoff)
        ]
        if not stale_user_ids:
            return 0
        subs = (
            self.db.query(UserSubscription)
            .filter(UserSubscription.user_id.in_(stale_user_ids), UserSubscription.status == "active")
            .all()
        )
        for sub in subs:
            sub.status = "inactive"
            sub.is_active = False
            sub.deactivated_at = now
            sub.deactivation_reason = f"Inactive for {days} days"
            self.db.add(sub)
        return len(subs)
