from unittest.mock import MagicMock, patch

from exam_portal.services.catalog.service import CategoryHasTests
from exam_portal.services.subscriptions.service import PlanNotFound


class TestAdminCategories:
    def test_create_requires_name(self, client, as_admin):
        assert client.post("/admin/categories", json={"name": "  "}).status_code == 400

    def test_create_is_audited(self, client, as_admin):
        category = MagicMock(id="c9", description=None, display_order=4, created_at=None)
        category.name = "Hindi Typing"
        with patch("exam_portal.api.routes.admin.CatalogService") as svc, \
                patch("exam_portal.api.routes.admin.AuditService") as audit:
            svc.return_value.create_category.return_value = category
            resp = client.post("/admin/categories", json={"name": " Hindi Typing ", "description": None})

        assert resp.status_code == 201
        svc.return_value.create_category.assert_called_once_with("Hindi Typing", None)
        action, performed_by, details = audit.return_value.log.call_args[0]
        assert action == "create_category"
        assert performed_by == "admin@example.com"
        assert details["category_id"] == "c9"

    def test_topic_requires_category(self, client, as_admin):
        assert client.post("/admin/topics", json={"name": "Dictation"}).status_code == 400

    def test_cleanup_rejects_non_list(self, client, as_admin):
        resp = client.request("DELETE", "/admin/categories/cleanup", json={"category_ids": "c1"})
        assert resp.status_code == 400

    def test_cleanup_refuses_categories_with_tests(self, client, as_admin):
        with patch("exam_portal.api.routes.admin.CatalogService") as svc:
            svc.return_value.delete_categories.side_effect = CategoryHasTests(["c2"])
            resp = client.request("DELETE", "/admin/categories/cleanup", json={"category_ids": ["c1", "c2"]})

        assert resp.status_code == 400
        assert resp.json()["detail"]["category_ids"] == ["c2"]

    def test_cleanup_deletes(self, client, as_admin):
        with patch("exam_portal.api.routes.admin.CatalogService") as svc, \
                patch("exam_portal.api.routes.admin.AuditService"):
            svc.return_value.delete_categories.return_value = 2
            resp = client.request("DELETE", "/admin/categories/cleanup", json={"category_ids": ["c1", "c2"]})

        assert resp.json() == {"success": True, "deleted_count": 2}

    def test_cleanup_listing(self, client, as_admin):
        with patch("exam_portal.api.routes.admin.CatalogService") as svc:
            svc.return_value.categories_with_counts.return_value = [
                {"id": "c1", "is_empty": True},
                {"id": "c2", "is_empty": False},
            ]
            resp = client.get("/admin/categories/cleanup")

        assert [c["id"] for c in resp.json()["empty_categories"]] == ["c1"]


class TestAdminSubscriptions:
    def test_grant_unknown_plan(self, client, as_admin):
        with patch("exam_portal.api.routes.admin.SubscriptionService") as svc:
            svc.return_value.grant_plan.side_effect = PlanNotFound("platinum")
            resp = client.post("/admin/subscriptions", json={"email": "a@example.com", "plan_name": "platinum"})
        assert resp.status_code == 404

    def test_grant_is_audited(self, client, as_admin):
        sub = MagicMock(id="s1", expires_at=None)
        with patch("exam_portal.api.routes.admin.SubscriptionService") as svc, \
                patch("exam_portal.api.routes.admin.AuditService") as audit:
            svc.return_value.grant_plan.return_value = (sub, True)
            resp = client.post(
                "/admin/subscriptions",
                json={"email": "a@example.com", "plan_name": "ahc", "create_user_if_missing": True},
            )

        assert resp.status_code == 201
        assert resp.json()["renewed"] is False
        assert audit.return_value.log.call_args[0][0] == "grant_plan"

    def test_toggle_deactivates(self, client, as_admin):
        sub = MagicMock(id="s1", user_id="u1", is_active=True)
        updated = MagicMock(id="s1", user_id="u1", is_active=False, status="inactive")
        with patch("exam_portal.api.routes.admin.SubscriptionService") as svc, \
                patch("exam_portal.api.routes.admin.AuditService") as audit:
            svc.return_value.get.return_value = sub
            svc.return_value.set_active.return_value = updated
            resp = client.post("/admin/subscriptions/s1/toggle")

        assert resp.json() == {"success": True, "is_active": False, "status": "inactive"}
        svc.return_value.set_active.assert_called_once_with(sub, False, reason=None)
        assert audit.return_value.log.call_args[0][0] == "deactivate_subscription"


class TestAdminTests:
    def test_missing_test(self, client, as_admin):
        with patch("exam_portal.api.routes.admin.ExamService") as svc:
            svc.return_value.get_test.return_value = None
            assert client.get("/admin/tests/nope").status_code == 404

    def test_delete_is_audited(self, client, as_admin):
        test = MagicMock(id="t1", title="Mock 1")
        with patch("exam_portal.api.routes.admin.ExamService") as svc, \
                patch("exam_portal.api.routes.admin.AuditService") as audit:
            svc.return_value.get_test.return_value = test
            resp = client.delete("/admin/tests/t1")

        assert resp.status_code == 200
        svc.return_value.delete_test.assert_called_once_with(test)
        assert audit.return_value.log.call_args[0][2] == {"test_id": "t1", "title": "Mock 1"}


class TestActivityLog:
    def test_filters_and_paginates(self, client, as_admin, db):
        entry = MagicMock(id="l1", action="grant_plan", details={"plan": "gold"}, performed_by="admin@example.com")
        entry.performed_at = None
        q = db.query.return_value.filter.return_value
        q.count.return_value = 51
        q.order_by.return_value.offset.return_value.limit.return_value.all.return_value = [entry]

        resp = client.get("/admin/activity-log?action=grant_plan&page=2&page_size=50")

        body = resp.json()
        assert body["total"] == 51
        assert body["pages"] == 2
        assert body["items"][0]["action"] == "grant_plan"
        q.order_by.return_value.offset.assert_called_once_with(50)
