"""
Admin API: dashboard and analytics, categories/topics (with cleanup), tests,
results, students, plans and subscriptions, materials, activity log.
Every mutation is recorded in admin_activity_log.
"""
from fastapi import APIRouter, Body, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from exam_portal.admin.session import AdminSessionData, require_admin
from exam_portal.db.session import get_db
from exam_portal.models.category import TestCategory, TestTopic
from exam_portal.models.material import MaterialCategory
from exam_portal.schemas.admin import (
    FixAccessRequest,
    GrantPlanRequest,
    StudentIn,
    StudentUpdate,
    SubscriptionUpdate,
)
from exam_portal.schemas.catalog import (
    CategoryIn,
    CategoryUpdate,
    TopicIn,
    TopicUpdate,
)
from exam_portal.schemas.exams import TestIn, TestUpdate
from exam_portal.schemas.materials import MaterialCategoryIn, MaterialIn, MaterialUpdate
from exam_portal.services.analytics.service import AnalyticsService
from exam_portal.services.audit.service import AuditService
from exam_portal.services.catalog.service import CatalogService, CategoryHasTests
from exam_portal.services.exams.service import ExamError, ExamService, TestNotAvailable
from exam_portal.services.materials.service import MaterialService
from exam_portal.services.subscriptions.service import (
    InvalidEmail,
    PlanNotFound,
    SubscriptionService,
    UserNotFound,
)
from exam_portal.services.users.service import UserService

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


def _category_dict(c: TestCategory) -> dict:
    return {
        "id": c.id,
        "name": c.name,
        "description": c.description,
        "display_order": c.display_order,
        "created_at": c.created_at.isoformat() if c.created_at else None,
    }


def _topic_dict(t: TestTopic) -> dict:
    return {
        "id": t.id,
        "name": t.name,
        "description": t.description,
        "display_order": t.display_order,
        "category_id": t.category_id,
    }


def _material_category_dict(c: MaterialCategory) -> dict:
    return {"id": c.id, "name": c.name, "description": c.description}


# ---------- Dashboard / analytics ----------
@router.get("/dashboard")
def dashboard(db: Session = Depends(get_db)):
    return AnalyticsService(db).dashboard()


@router.get("/analytics")
def analytics(db: Session = Depends(get_db)):
    return AnalyticsService(db).overview()


# ---------- Categories ----------
# /categories/cleanup is declared before /categories/{category_id}
@router.get("/categories/cleanup")
def categories_cleanup_list(db: Session = Depends(get_db)):
    categories = CatalogService(db).categories_with_counts()
    return {
        "success": True,
        "categories": categories,
        "empty_categories": [c for c in categories if c["is_empty"]],
    }


@router.delete("/categories/cleanup")
def categories_cleanup_delete(
    payload: dict = Body(...),
    db: Session = Depends(get_db),
    admin: AdminSessionData = Depends(require_admin),
):
    category_ids = payload.get("category_ids")
    if not isinstance(category_ids, list) or not all(isinstance(i, str) for i in category_ids):
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "category_ids must be a list")
    try:
        deleted = CatalogService(db).delete_categories(category_ids)
    except CategoryHasTests as e:
        raise HTTPException(
            status.HTTP_400_BAD_REQUEST,
            {"error": "Cannot delete categories that contain tests", "category_ids": e.category_ids},
        )
    AuditService(db).log("cleanup_categories", admin.email, {"category_ids": category_ids})
    return {"success": True, "deleted_count": deleted}


@router.get("/categories")
def categories_list(db: Session = Depends(get_db)):
    return {"success": True, "categories": [_category_dict(c) for c in CatalogService(db).list_categories()]}


@router.post("/categories", status_code=status.HTTP_201_CREATED)
def categories_create(
    payload: CategoryIn = Body(...),
    db: Session = Depends(get_db),
    admin: AdminSessionData = Depends(require_admin),
):
    if not payload.name or not payload.name.strip():
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Category name is required")
    category = CatalogService(db).create_category(payload.name.strip(), payload.description)
    AuditService(db).log("create_category", admin.email, {"category_id": category.id, "name": category.name})
    return {"success": True, "category": _category_dict(category)}


@router.put("/categories/{category_id}")
def categories_update(
    category_id: str,
    payload: CategoryUpdate = Body(...),
    db: Session = Depends(get_db),
    admin: AdminSessionData = Depends(require_admin),
):
    svc = CatalogService(db)
    category = svc.get_category(category_id)
    if not category:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Category not found")
    changes = payload.model_dump(exclude_unset=True)
    category = svc.update_category(category, changes)
    AuditService(db).log("update_category", admin.email, {"category_id": category.id, "changes": changes})
    return {"success": True, "category": _category_dict(category)}


@router.delete("/categories/{category_id}")
def categories_delete(
    category_id: str,
    db: Session = Depends(get_db),
    admin: AdminSessionData = Depends(require_admin),
):
    svc = CatalogService(db)
    category = svc.get_category(category_id)
    if not category:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Category not found")
    try:
        svc.delete_categories([category_id])
    except CategoryHasTests:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Cannot delete a category that contains tests")
    AuditService(db).log("delete_category", admin.email, {"category_id": category_id, "name": category.name})
    return {"success": True}


# ---------- Topics ----------
@router.get("/topics")
def topics_list(category_id: str | None = Query(None), db: Session = Depends(get_db)):
    return {"success": True, "topics": CatalogService(db).list_topics(category_id)}


@router.post("/topics", status_code=status.HTTP_201_CREATED)
def topics_create(
    payload: TopicIn = Body(...),
    db: Session = Depends(get_db),
    admin: AdminSessionData = Depends(require_admin),
):
    if not payload.name or not payload.name.strip() or not payload.category_id:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Topic name and category_id are required")
    svc = CatalogService(db)
    if not svc.get_category(payload.category_id):
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Invalid category_id")
    topic = svc.create_topic(payload.name.strip(), payload.category_id, payload.description)
    AuditService(db).log("create_topic", admin.email, {"topic_id": topic.id, "category_id": topic.category_id})
    return {"success": True, "topic": _topic_dict(topic)}


@router.put("/topics/{topic_id}")
def topics_update(
    topic_id: str,
    payload: TopicUpdate = Body(...),
    db: Session = Depends(get_db),
    admin: AdminSessionData = Depends(require_admin),
):
    svc = CatalogService(db)
    topic = svc.get_topic(topic_id)
    if not topic:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Topic not found")
    changes = payload.model_dump(exclude_unset=True)
    topic = svc.update_topic(topic, changes)
    AuditService(db).log("update_topic", admin.email, {"topic_id": topic.id, "changes": changes})
    return {"success": True, "topic": _topic_dict(topic)}


@router.delete("/topics/{topic_id}")
def topics_delete(
    topic_id: str,
    db: Session = Depends(get_db),
    admin: AdminSessionData = Depends(require_admin),
):
    svc = CatalogService(db)
    topic = svc.get_topic(topic_id)
    if not topic:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Topic not found")
    svc.delete_topic(topic)
    AuditService(db).log("delete_topic", admin.email, {"topic_id": topic_id})
    return {"success": True}


# ---------- Tests ----------
@router.get("/tests")
def tests_list(db: Session = Depends(get_db)):
    return {"success": True, "tests": ExamService(db).list_admin_tests()}


@router.post("/tests", status_code=status.HTTP_201_CREATED)
def tests_create(
    payload: TestIn = Body(...),
    db: Session = Depends(get_db),
    admin: AdminSessionData = Depends(require_admin),
):
    svc = ExamService(db)
    try:
        test = svc.create_test(payload)
    except ExamError as e:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, str(e))
    AuditService(db).log(
        "create_test",
        admin.email,
        {"test_id": test.id, "title": test.title, "questions": len(payload.questions)},
    )
    return {"success": True, "test": svc.test_detail(test)}


@router.get("/tests/{test_id}")
def tests_get(test_id: str, db: Session = Depends(get_db)):
    svc = ExamService(db)
    test = svc.get_test(test_id)
    if not test:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Test not found")
    return svc.test_detail(test, include_answers=True)


@router.put("/tests/{test_id}")
def tests_update(
    test_id: str,
    payload: TestUpdate = Body(...),
    db: Session = Depends(get_db),
    admin: AdminSessionData = Depends(require_admin),
):
    svc = ExamService(db)
    test = svc.get_test(test_id)
    if not test:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Test not found")
    try:
        test = svc.update_test(test, payload)
    except ExamError as e:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, str(e))
    AuditService(db).log(
        "update_test",
        admin.email,
        {"test_id": test.id, "fields": sorted(payload.model_dump(exclude_unset=True).keys())},
    )
    return {"success": True, "test": svc.test_detail(test)}


@router.delete("/tests/{test_id}")
def tests_delete(
    test_id: str,
    db: Session = Depends(get_db),
    admin: AdminSessionData = Depends(require_admin),
):
    svc = ExamService(db)
    test = svc.get_test(test_id)
    if not test:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Test not found")
    title = test.title
    svc.delete_test(test)
    AuditService(db).log("delete_test", admin.email, {"test_id": test_id, "title": title})
    return {"success": True}


# ---------- Results ----------
@router.get("/tests/{test_id}/results")
def results_list(test_id: str, db: Session = Depends(get_db)):
    return {"success": True, "attempts": AnalyticsService(db).test_results(test_id)}


@router.get("/attempts/{attempt_id}")
def results_detail(attempt_id: str, db: Session = Depends(get_db)):
    attempt = AnalyticsService(db).get_attempt(attempt_id)
    if not attempt:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Attempt not found")
    user = UserService(db).get(attempt.user_id)
    try:
        review = ExamService(db).review(attempt)
    except TestNotAvailable:
        raise HTTPException(status.HTTP_409_CONFLICT, "Attempt has not been submitted")
    review["user"] = user.to_dict() if user else None
    return review


@router.delete("/attempts/{attempt_id}")
def results_delete(
    attempt_id: str,
    db: Session = Depends(get_db),
    admin: AdminSessionData = Depends(require_admin),
):
    svc = AnalyticsService(db)
    attempt = svc.get_attempt(attempt_id)
    if not attempt:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Attempt not found")
    details = {"attempt_id": attempt.id, "user_id": attempt.user_id, "test_id": attempt.test_id}
    svc.delete_attempt(attempt)
    AuditService(db).log("delete_attempt", admin.email, details)
    return {"success": True}


# ---------- Students ----------
@router.get("/students")
def students_list(db: Session = Depends(get_db)):
    return {"success": True, "students": [u.to_dict() for u in UserService(db).list_students()]}


@router.post("/students", status_code=status.HTTP_201_CREATED)
def students_create(
    payload: StudentIn = Body(...),
    db: Session = Depends(get_db),
    admin: AdminSessionData = Depends(require_admin),
):
    svc = UserService(db)
    if svc.get_by_email(payload.email):
        raise HTTPException(status.HTTP_409_CONFLICT, "A user with this email already exists")
    user = svc.create(payload.email, payload.full_name.strip())
    AuditService(db).log("create_student", admin.email, {"user_id": user.id, "email": user.email})
    return {"success": True, "student": user.to_dict()}


@router.put("/students/{user_id}")
def students_update(
    user_id: str,
    payload: StudentUpdate = Body(...),
    db: Session = Depends(get_db),
    admin: AdminSessionData = Depends(require_admin),
):
    svc = UserService(db)
    user = svc.get(user_id)
    if not user:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Student not found")
    if payload.email:
        other = svc.get_by_email(payload.email)
        if other and other.id != user.id:
            raise HTTPException(status.HTTP_409_CONFLICT, "A user with this email already exists")
    user = svc.update(user, full_name=payload.full_name, email=payload.email)
    AuditService(db).log(
        "update_student",
        admin.email,
        {"user_id": user.id, "changes": payload.model_dump(exclude_unset=True)},
    )
    return {"success": True, "student": user.to_dict()}


@router.delete("/students/{user_id}")
def students_delete(
    user_id: str,
    db: Session = Depends(get_db),
    admin: AdminSessionData = Depends(require_admin),
):
    svc = UserService(db)
    user = svc.get(user_id)
    if not user:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Student not found")
    email = user.email
    svc.delete(user)
    AuditService(db).log("delete_student", admin.email, {"user_id": user_id, "email": email})
    return {"success": True}


# ---------- Plans / subscriptions ----------
@router.get("/plans")
def plans_list(db: Session = Depends(get_db)):
    plans = SubscriptionService(db).list_plans()
    return {
        "success": True,
        "plans": [{"id": p.id, "name": p.name, "display_name": p.display_name, "features": p.features or {}} for p in plans],
    }


@router.get("/subscriptions")
def subscriptions_list(db: Session = Depends(get_db)):
    return {"success": True, "subscriptions": SubscriptionService(db).list_combined()}


@router.post("/subscriptions", status_code=status.HTTP_201_CREATED)
def subscriptions_grant(
    payload: GrantPlanRequest = Body(...),
    db: Session = Depends(get_db),
    admin: AdminSessionData = Depends(require_admin),
):
    try:
        sub, created = SubscriptionService(db).grant_plan(
            payload.email,
            payload.plan_name,
            create_user_if_missing=payload.create_user_if_missing,
            full_name=payload.full_name,
        )
    except InvalidEmail:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Invalid email format")
    except UserNotFound:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "User not found")
    except PlanNotFound:
        raise HTTPException(status.HTTP_404_NOT_FOUND, f"Plan '{payload.plan_name}' not found")
    AuditService(db).log(
        "grant_plan",
        admin.email,
        {"email": payload.email, "plan_name": payload.plan_name, "subscription_id": sub.id, "renewed": not created},
    )
    return {
        "success": True,
        "subscription_id": sub.id,
        "renewed": not created,
        "expires_at": sub.expires_at.isoformat() if sub.expires_at else None,
    }


@router.post("/subscriptions/{subscription_id}/toggle")
def subscriptions_toggle(
    subscription_id: str,
    payload: dict | None = None,
    db: Session = Depends(get_db),
    admin: AdminSessionData = Depends(require_admin),
):
    svc = SubscriptionService(db)
    sub = svc.get(subscription_id)
    if not sub:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Subscription not found")
    active = not sub.is_active
    sub = svc.set_active(sub, active, reason=(payload or {}).get("reason"))
    AuditService(db).log(
        "activate_subscription" if active else "deactivate_subscription",
        admin.email,
        {"subscription_id": sub.id, "user_id": sub.user_id},
    )
    return {"success": True, "is_active": sub.is_active, "status": sub.status}


@router.put("/subscriptions/{subscription_id}")
def subscriptions_update(
    subscription_id: str,
    payload: SubscriptionUpdate = Body(...),
    db: Session = Depends(get_db),
    admin: AdminSessionData = Depends(require_admin),
):
    svc = SubscriptionService(db)
    sub = svc.get(subscription_id)
    if not sub:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Subscription not found")
    sub = svc.update(sub, status=payload.status, expires_at=payload.expires_at)
    AuditService(db).log(
        "update_subscription",
        admin.email,
        {"subscription_id": sub.id, "changes": payload.model_dump(exclude_unset=True, mode="json")},
    )
    return {"success": True, "status": sub.status, "expires_at": sub.expires_at.isoformat() if sub.expires_at else None}


@router.delete("/subscriptions/{subscription_id}")
def subscriptions_delete(
    subscription_id: str,
    db: Session = Depends(get_db),
    admin: AdminSessionData = Depends(require_admin),
):
    svc = SubscriptionService(db)
    sub = svc.get(subscription_id)
    if not sub:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Subscription not found")
    details = {"subscription_id": sub.id, "user_id": sub.user_id}
    svc.delete_with_user(sub)
    AuditService(db).log("delete_subscription", admin.email, details)
    return {"success": True}


@router.post("/subscriptions/fix-access")
def subscriptions_fix_access(
    payload: FixAccessRequest = Body(...),
    db: Session = Depends(get_db),
    admin: AdminSessionData = Depends(require_admin),
):
    user = SubscriptionService(db).fix_access(payload.email)
    AuditService(db).log("fix_access", admin.email, {"user_id": user.id, "email": user.email})
    return {"success": True, "user": user.to_dict()}


# ---------- Materials ----------
@router.get("/material-categories")
def material_categories_list(db: Session = Depends(get_db)):
    return {
        "success": True,
        "categories": [_material_category_dict(c) for c in MaterialService(db).list_categories()],
    }


@router.post("/material-categories", status_code=status.HTTP_201_CREATED)
def material_categories_create(
    payload: MaterialCategoryIn = Body(...),
    db: Session = Depends(get_db),
    admin: AdminSessionData = Depends(require_admin),
):
    if not payload.name.strip():
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Category name is required")
    category = MaterialService(db).create_category(payload.name.strip(), payload.description)
    AuditService(db).log("create_material_category", admin.email, {"category_id": category.id, "name": category.name})
    return {"success": True, "category": _material_category_dict(category)}


@router.delete("/material-categories/{category_id}")
def material_categories_delete(
    category_id: str,
    db: Session = Depends(get_db),
    admin: AdminSessionData = Depends(require_admin),
):
    svc = MaterialService(db)
    category = svc.get_category(category_id)
    if not category:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Category not found")
    svc.delete_category(category)
    AuditService(db).log("delete_material_category", admin.email, {"category_id": category_id})
    return {"success": True}


@router.get("/materials")
def materials_list(db: Session = Depends(get_db)):
    return {
        "success": True,
        "materials": [MaterialService.to_dict(m, c) for m, c in MaterialService(db).list_all()],
    }


@router.post("/materials", status_code=status.HTTP_201_CREATED)
def materials_create(
    payload: MaterialIn = Body(...),
    db: Session = Depends(get_db),
    admin: AdminSessionData = Depends(require_admin),
):
    svc = MaterialService(db)
    if payload.category_id and not svc.get_category(payload.category_id):
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Invalid category_id")
    material = svc.create(payload)
    AuditService(db).log("create_material", admin.email, {"material_id": material.id, "title": material.title})
    return {"success": True, "material": MaterialService.to_dict(material, svc.get_category(material.category_id) if material.category_id else None)}


@router.put("/materials/{material_id}")
def materials_update(
    material_id: str,
    payload: MaterialUpdate = Body(...),
    db: Session = Depends(get_db),
    admin: AdminSessionData = Depends(require_admin),
):
    svc = MaterialService(db)
    material = svc.get(material_id)
    if not material:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Material not found")
    material = svc.update(material, payload)
    AuditService(db).log(
        "update_material",
        admin.email,
        {"material_id": material.id, "fields": sorted(payload.model_dump(exclude_unset=True).keys())},
    )
    category = svc.get_category(material.category_id) if material.category_id else None
    return {"success": True, "material": MaterialService.to_dict(material, category)}


@router.delete("/materials/{material_id}")
def materials_delete(
    material_id: str,
    db: Session = Depends(get_db),
    admin: AdminSessionData = Depends(require_admin),
):
    svc = MaterialService(db)
    material = svc.get(material_id)
    if not material:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Material not found")
    svc.delete(material)
    AuditService(db).log("delete_material", admin.email, {"material_id": material_id})
    return {"success": True}


# ---------- Activity log ----------
@router.get("/activity-log")
def activity_log(
    db: Session = Depends(get_db),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
    action: str | None = None,
):
    return AuditService(db).page(page, page_size, action)
