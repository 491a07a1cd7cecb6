"""
Public catalog: categories (with per-caller lock state), topics and tests.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from exam_portal.access import can_access_category, get_upgrade_message
from exam_portal.api.deps import access_for
from exam_portal.db.session import get_db
from exam_portal.models.user import User
from exam_portal.services.auth.tokens import get_optional_student
from exam_portal.services.catalog.service import CatalogService

router = APIRouter(tags=["catalog"])


@router.get("/categories")
def list_categories(
    db: Session = Depends(get_db),
    user: User | None = Depends(get_optional_student),
):
    access = access_for(db, user)
    categories = CatalogService(db).category_tree()
    for category in categories:
        locked = not can_access_category(access, category["name"])
        category["locked"] = locked
        if locked:
            category["upgrade_message"] = get_upgrade_message(category["name"])
    return {"success": True, "categories": categories}


@router.get("/topics")
def list_topics(category_id: str | None = Query(None), db: Session = Depends(get_db)):
    return {"success": True, "topics": CatalogService(db).list_topics(category_id)}


@router.get("/tests")
def list_tests(
    topic_id: str | None = Query(None),
    category_id: str | None = Query(None),
    db: Session = Depends(get_db),
):
    return {"success": True, "tests": CatalogService(db).list_tests(topic_id, category_id)}
