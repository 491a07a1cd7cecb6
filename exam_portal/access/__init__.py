"""
Content access control (internal library).
Resolution (resolve_access, does I/O) and decision (can_access_*, pure) are split;
the contract between them is UserAccess.
"""
from exam_portal.access.models import (
    CategoryGrant,
    ContentTier,
    MaterialGrant,
    PlanRow,
    SubscriptionRow,
    TestGrant,
    UserAccess,
    parse_grant,
)
from exam_portal.access.policy import (
    can_access_category,
    can_access_material,
    can_access_test,
    classify,
    get_upgrade_message,
    is_premium_content,
)
from exam_portal.access.resolver import SubscriptionSource, resolve_access

__all__ = [
    "CategoryGrant",
    "ContentTier",
    "MaterialGrant",
    "PlanRow",
    "SubscriptionRow",
    "SubscriptionSource",
    "TestGrant",
    "UserAccess",
    "can_access_category",
    "can_access_material",
    "can_access_test",
    "classify",
    "get_upgrade_message",
    "is_premium_content",
    "parse_grant",
    "resolve_access",
]
