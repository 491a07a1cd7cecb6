#!/usr/bin/env python3
"""
Create tables and seed the subscription plans.
Run from the project root: python -m scripts.init_db
"""
from exam_portal.core.config import settings
from exam_portal.db.base import Base
from exam_portal.db.session import engine, session_scope
from exam_portal.models import attempt, audit_log, category, material, plan, test, user  # noqa: F401
from exam_portal.models.plan import Plan

PLANS = (
    (settings.standard_plan_name, "Gold Plan", {"tier": "standard"}),
    (settings.premium_plan_name, "Allahabad High Court (AHC) Plan", {"tier": "premium"}),
)


def main():
    Base.metadata.create_all(bind=engine)
    with session_scope() as db:
        for name, display_name, features in PLANS:
            if db.query(Plan).filter(Plan.name == name).one_or_none():
                print(f"  plan {name}: exists")
                continue
            db.add(Plan(name=name, display_name=display_name, features=features))
            print(f"  plan {name}: created")


if __name__ == "__main__":
    main()
