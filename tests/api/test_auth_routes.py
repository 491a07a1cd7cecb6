from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest

from exam_portal.services.email.service import EmailError


@pytest.fixture
def otp_service(app):
    from exam_portal.api.deps import get_otp_service
    from exam_portal.services.otp.service import OtpService
    from exam_portal.services.otp.store import MemoryOtpStore

    service = OtpService(MemoryOtpStore(ttl_seconds=660), ttl_seconds=600, max_attempts=5)
    app.dependency_overrides[get_otp_service] = lambda: service
    return service


@pytest.fixture(autouse=True)
def otp_sends_allowed():
    with patch("exam_portal.api.routes.auth.check_otp_send_rate_limit", return_value=True) as check:
        yield check


class TestSendOtp:
    def test_missing_email(self, client, otp_service):
        assert client.post("/auth/send-otp", json={}).status_code == 400

    def test_unknown_email_does_not_reveal(self, client, otp_service):
        with patch("exam_portal.api.routes.auth.UserService") as users, \
                patch("exam_portal.api.routes.auth.EmailService") as email:
            users.return_value.get_by_email.return_value = None
            resp = client.post("/auth/send-otp", json={"email": "nobody@example.com"})

        assert resp.status_code == 200
        assert resp.json()["message"] == "If your email is registered, you will receive an OTP"
        email.return_value.send_otp.assert_not_called()

    def test_known_email_sends_code(self, client, otp_service, student):
        with patch("exam_portal.api.routes.auth.UserService") as users, \
                patch("exam_portal.api.routes.auth.EmailService") as email:
            users.return_value.get_by_email.return_value = student
            resp = client.post("/auth/send-otp", json={"email": "Student@Example.com"})

        assert resp.status_code == 200
        to_email, otp = email.return_value.send_otp.call_args[0]
        assert to_email == "student@example.com"
        assert otp_service.store.get("student@example.com").otp == otp

    def test_email_failure(self, client, otp_service, student):
        with patch("exam_portal.api.routes.auth.UserService") as users, \
                patch("exam_portal.api.routes.auth.EmailService") as email:
            users.return_value.get_by_email.return_value = student
            email.return_value.send_otp.side_effect = EmailError("smtp down")
            resp = client.post("/auth/send-otp", json={"email": "student@example.com"})

        assert resp.status_code == 500
        assert otp_service.store.get("student@example.com") is None

    def test_rate_limited_before_lookup(self, client, otp_service, otp_sends_allowed):
        otp_sends_allowed.return_value = False
        with patch("exam_portal.api.routes.auth.UserService") as users:
            resp = client.post("/auth/send-otp", json={"email": "student@example.com"})

        assert resp.status_code == 429
        users.return_value.get_by_email.assert_not_called()


class TestVerifyOtp:
    def test_missing_fields(self, client, otp_service):
        assert client.post("/auth/verify-otp", json={"email": "a@example.com"}).status_code == 400

    def test_wrong_code(self, client, otp_service):
        otp = otp_service.issue("student@example.com")
        wrong = "000000" if otp != "000000" else "111111"
        resp = client.post("/auth/verify-otp", json={"email": "student@example.com", "otp": wrong})
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Invalid OTP. 4 attempts remaining."

    def test_success_returns_token(self, client, otp_service, student):
        from exam_portal.services.auth.tokens import read_student_token

        otp = otp_service.issue("student@example.com")
        with patch("exam_portal.api.routes.auth.UserService") as users, \
                patch("exam_portal.api.routes.auth.EmailService") as email:
            users.return_value.get_by_email.return_value = student
            resp = client.post(
                "/auth/verify-otp",
                json={"email": "student@example.com", "otp": otp},
                headers={"X-Forwarded-For": "203.0.113.9, 10.0.0.1", "User-Agent": "pytest"},
            )

        assert resp.status_code == 200
        body = resp.json()
        assert read_student_token(body["access_token"]) == "u1"
        assert body["user"]["email"] == "student@example.com"
        users.return_value.touch_login.assert_called_once_with(student)
        args = email.return_value.send_login_notification.call_args[0]
        assert args[2] == "203.0.113.9"
        assert args[3] == "pytest"

    def test_notification_failure_ignored(self, client, otp_service, student):
        otp = otp_service.issue("student@example.com")
        with patch("exam_portal.api.routes.auth.UserService") as users, \
                patch("exam_portal.api.routes.auth.EmailService") as email:
            users.return_value.get_by_email.return_value = student
            email.return_value.send_login_notification.side_effect = EmailError("smtp down")
            resp = client.post("/auth/verify-otp", json={"email": "student@example.com", "otp": otp})

        assert resp.status_code == 200


class TestStudentSession:
    def test_login_unknown_email(self, client):
        with patch("exam_portal.api.routes.auth.UserService") as users:
            users.return_value.validate_student_login.return_value = None
            resp = client.post("/auth/login", json={"email": "x@example.com", "full_name": "X"})
        assert resp.status_code == 404

    def test_me_with_bearer_token(self, client, db, student):
        from exam_portal.services.auth.tokens import create_student_token

        db.query.return_value.filter.return_value.one_or_none.return_value = student
        resp = client.get("/auth/me", headers={"Authorization": f"Bearer {create_student_token('u1')}"})
        assert resp.status_code == 200
        assert resp.json()["id"] == "u1"

    def test_me_with_tampered_token(self, client):
        resp = client.get("/auth/me", headers={"Authorization": "Bearer not-a-token"})
        assert resp.status_code == 401


def test_login_location():
    from exam_portal.api.routes.auth import login_location

    assert login_location("127.0.0.1") == "Local Development"
    assert login_location("203.0.113.9") == "India"


class TestAdminLogin:
    BODY = {"email": "admin@example.com", "password": "correct-horse-battery", "passcode": "4242"}

    def test_rate_limited(self, client):
        with patch("exam_portal.api.routes.admin_auth.check_login_rate_limit", return_value=False):
            assert client.post("/admin/auth/login", json=self.BODY).status_code == 429

    def test_wrong_passcode(self, client):
        with patch("exam_portal.api.routes.admin_auth.check_login_rate_limit", return_value=True):
            resp = client.post("/admin/auth/login", json={**self.BODY, "passcode": "0000"})
        assert resp.status_code == 401

    def test_success_sets_session_cookie(self, client):
        with patch("exam_portal.api.routes.admin_auth.check_login_rate_limit", return_value=True), \
                patch("exam_portal.api.routes.admin_auth.reset_login_attempts") as reset, \
                patch("exam_portal.api.routes.admin_auth.create_admin_session", new=AsyncMock(return_value=uuid4())):
            resp = client.post("/admin/auth/login", json={**self.BODY, "email": " Admin@Example.com "})

        assert resp.status_code == 200
        assert "admin_session" in resp.headers.get("set-cookie", "")
        reset.assert_called_once()

    def test_admin_routes_need_session(self, client):
        assert client.get("/admin/dashboard").status_code == 401
