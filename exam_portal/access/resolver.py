"""
resolve_access(source, user_id) -> UserAccess.

One read-only round trip (active subscriptions + all plans), joined here rather
than in SQL. Fail-closed: any lookup failure is logged and collapses to
UserAccess.closed(); callers see a plain denial, never an error.
"""
from __future__ import annotations

import logging
from typing import Protocol

from exam_portal.access.config import get_premium_plan_name, get_standard_plan_name
from exam_portal.access.models import PlanRow, SubscriptionRow, UserAccess

logger = logging.getLogger(__name__)


class SubscriptionSource(Protocol):
    """Read-only data access used by resolve_access. Empty lists on no match."""

    def active_subscriptions(self, user_id: str) -> list[SubscriptionRow]:
        ...

    def all_plans(self) -> list[PlanRow]:
        ...


def resolve_access(source: SubscriptionSource, user_id: str | None) -> UserAccess:
    if not user_id:
        return UserAccess.closed()

    try:
        subscriptions = source.active_subscriptions(user_id)
        plans = source.all_plans()
    except Exception as e:
        logger.exception("access_resolve_failed", extra={"user_id": user_id, "error": str(e)})
        return UserAccess.closed()

    plan_names_by_id = {plan.id: plan.name for plan in plans}
    plan_names = sorted(
        {
            plan_names_by_id[sub.plan_id]
            for sub in subscriptions
            # Sources are expected to return active rows only; re-checked for ones that do not
            if sub.status == "active" and sub.plan_id in plan_names_by_id
        }
    )

    access = UserAccess(
        has_premium_plan=get_premium_plan_name() in plan_names,
        has_standard_plan=get_standard_plan_name() in plan_names,
        # Per-item grants are not stored anywhere yet, so resolution never yields any.
        specific_grants=(),
    )
    logger.info(
        "access_resolved",
        extra={
            "user_id": user_id,
            "plan_names": plan_names,
            "subscriptions": len(subscriptions),
            "plans": len(plans),
        },
    )
    return access
