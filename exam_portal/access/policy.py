"""
Decision only: can_access_category / can_access_material / can_access_test.
Pure functions over an already resolved UserAccess, no I/O.

Content tier is inferred from the category display name (substring match), so
renaming a category changes who can see it.
"""
from __future__ import annotations

from exam_portal.access.config import get_premium_keywords, get_sample_keywords
from exam_portal.access.models import ContentTier, UserAccess


def classify(category_name: str) -> ContentTier:
    """
    Bucket a category by name. Sample/demo is checked before the premium
    keywords, so "AHC Sample Papers" is open sample content.
    """
    lower = category_name.lower()
    if any(keyword in lower for keyword in get_sample_keywords()):
        return ContentTier.SAMPLE
    if any(keyword in lower for keyword in get_premium_keywords()):
        return ContentTier.PREMIUM
    return ContentTier.STANDARD


def is_premium_content(category_name: str) -> bool:
    return classify(category_name) is ContentTier.PREMIUM


def can_access_category(access: UserAccess, category_name: str) -> bool:
    """
    Decision order (first match wins):
    - sample/demo category -> open to everyone, including anonymous sessions
    - premium plan -> everything
    - standard plan + non-premium category -> allowed
    - standard plan + premium category -> only with a matching category grant
    """
    tier = classify(category_name)
    if tier is ContentTier.SAMPLE:
        return True

    if access.has_premium_plan:
        return True

    if access.has_standard_plan and tier is not ContentTier.PREMIUM:
        return True

    if access.has_standard_plan and tier is ContentTier.PREMIUM:
        wanted = category_name.lower()
        return any(wanted in grant.name for grant in access.category_grants())

    return False


def can_access_material(access: UserAccess, material_id: str, category_name: str) -> bool:
    """Non-premium materials follow category access; premium ones also need a material grant."""
    if access.has_premium_plan:
        return True

    if not can_access_category(access, category_name):
        return False

    return access.has_material_grant(material_id) or not is_premium_content(category_name)


def can_access_test(access: UserAccess, test_id: str, category_name: str | None = None) -> bool:
    """
    Same tiers as category access, keyed on a test grant.
    A test without a category name counts as non-premium.
    """
    if access.has_premium_plan:
        return True

    # TODO: confirm with product whether uncategorised tests may ever be premium
    premium = is_premium_content(category_name) if category_name else False

    if access.has_standard_plan and not premium:
        return True

    if access.has_standard_plan and premium:
        return access.has_test_grant(test_id)

    return False


def get_upgrade_message(category_name: str) -> str:
    if is_premium_content(category_name):
        return (
            "This content is part of the Allahabad High Court (AHC) Plan. "
            f"Upgrade to AHC Plan to access all {category_name} materials and tests, "
            "or contact admin for specific access."
        )
    return "Upgrade to Gold Plan or AHC Plan to access this content."
