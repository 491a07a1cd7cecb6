"""
Access config: typed wrappers over exam_portal.core.config for plan names and content keywords.
"""
from __future__ import annotations

from exam_portal.core.config import settings


def get_premium_plan_name() -> str:
    return settings.premium_plan_name


def get_standard_plan_name() -> str:
    return settings.standard_plan_name


def get_premium_keywords() -> list[str]:
    return settings.premium_keywords_list


def get_sample_keywords() -> list[str]:
    return settings.sample_keywords_list
