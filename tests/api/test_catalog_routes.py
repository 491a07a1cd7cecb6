from types import SimpleNamespace
from unittest.mock import MagicMock, patch

from exam_portal.access import UserAccess

TREE = [
    {"id": "c1", "name": "Sample Papers", "topics": [], "test_count": 0},
    {"id": "c2", "name": "General Knowledge", "topics": [], "test_count": 0},
    {"id": "c3", "name": "Allahabad High Court Mains", "topics": [], "test_count": 0},
]


def _tree():
    return [dict(c) for c in TREE]


class TestCategories:
    def test_anonymous_sees_only_sample_unlocked(self, client):
        with patch("exam_portal.api.routes.catalog.CatalogService") as svc:
            svc.return_value.category_tree.return_value = _tree()
            resp = client.get("/categories")

        assert resp.status_code == 200
        by_name = {c["name"]: c for c in resp.json()["categories"]}
        assert by_name["Sample Papers"]["locked"] is False
        assert "upgrade_message" not in by_name["Sample Papers"]
        assert by_name["General Knowledge"]["locked"] is True
        assert by_name["General Knowledge"]["upgrade_message"] == (
            "Upgrade to Gold Plan or AHC Plan to access this content."
        )
        assert "Allahabad High Court (AHC) Plan" in by_name["Allahabad High Court Mains"]["upgrade_message"]

    def test_standard_plan(self, client, as_student):
        with patch("exam_portal.api.routes.catalog.CatalogService") as svc, \
                patch("exam_portal.api.routes.catalog.access_for", return_value=UserAccess(has_standard_plan=True)):
            svc.return_value.category_tree.return_value = _tree()
            resp = client.get("/categories")

        locked = {c["name"]: c["locked"] for c in resp.json()["categories"]}
        assert locked == {
            "Sample Papers": False,
            "General Knowledge": False,
            "Allahabad High Court Mains": True,
        }

    def test_resolution_failure_looks_like_denial(self, client, as_student, db):
        db.query.side_effect = RuntimeError("db unavailable")
        with patch("exam_portal.api.routes.catalog.CatalogService") as svc:
            svc.return_value.category_tree.return_value = _tree()
            resp = client.get("/categories")

        assert resp.status_code == 200
        locked = {c["name"]: c["locked"] for c in resp.json()["categories"]}
        assert locked["General Knowledge"] is True
        assert locked["Sample Papers"] is False

    def test_failed_subscription_lookup_keeps_request_working(self, client, as_student, db):
        from exam_portal.models.plan import UserSubscription

        def query(model):
            if model is UserSubscription:
                raise RuntimeError("permission denied for table user_subscriptions")
            return MagicMock()

        db.query.side_effect = query
        with patch("exam_portal.api.routes.catalog.CatalogService") as svc:
            svc.return_value.category_tree.return_value = _tree()
            resp = client.get("/categories")

        assert resp.status_code == 200
        locked = {c["name"]: c["locked"] for c in resp.json()["categories"]}
        assert locked["General Knowledge"] is True
        assert locked["Allahabad High Court Mains"] is True
        assert db.begin_nested.return_value.__exit__.call_args[0][0] is RuntimeError


class TestMaterials:
    def _rows(self):
        category = SimpleNamespace(id="mc1", name="AHC Notes", description=None)
        material = SimpleNamespace(
            id="m1",
            title="Shorthand outlines",
            description=None,
            tags=["hindi"],
            pdf_url="https://cdn.example.com/m1.pdf",
            category_id="mc1",
            associated_test_id=None,
            status="published",
            created_at=None,
        )
        return [(material, category)]

    def test_locked_material_hides_pdf(self, client):
        from exam_portal.services.materials.service import MaterialService

        with patch.object(MaterialService, "list_published", return_value=self._rows()):
            resp = client.get("/materials")

        item = resp.json()["materials"][0]
        assert item["locked"] is True
        assert "pdf_url" not in item
        assert "AHC Notes" in item["upgrade_message"]

    def test_premium_plan_gets_pdf(self, client, as_student):
        from exam_portal.services.materials.service import MaterialService

        with patch.object(MaterialService, "list_published", return_value=self._rows()), \
                patch("exam_portal.api.routes.materials.access_for", return_value=UserAccess(has_premium_plan=True)):
            resp = client.get("/materials")

        item = resp.json()["materials"][0]
        assert item["locked"] is False
        assert item["pdf_url"] == "https://cdn.example.com/m1.pdf"


def test_metrics(client):
    resp = client.get("/metrics")
    assert resp.status_code == 200
    assert "otp_verify" in resp.text
