import asyncio
from unittest.mock import MagicMock
from uuid import uuid4

from exam_portal.admin.session import AdminSessionData, RedisSessionBackend


def _backend():
    backend = RedisSessionBackend("redis://localhost:6379/15", ttl_seconds=3600)
    backend._client = MagicMock()
    return backend


def test_create_stores_json_with_ttl():
    backend = _backend()
    session_id = uuid4()
    asyncio.run(backend.create(session_id, AdminSessionData(email="admin@example.com", ip="10.0.0.1")))

    key, ttl, raw = backend.client.setex.call_args[0]
    assert key == f"admin-session:{session_id}"
    assert ttl == 3600
    assert AdminSessionData.model_validate_json(raw).ip == "10.0.0.1"


def test_read_slides_expiry():
    backend = _backend()
    session_id = uuid4()
    backend.client.get.return_value = AdminSessionData(email="admin@example.com").model_dump_json()

    session = asyncio.run(backend.read(session_id))

    assert session.email == "admin@example.com"
    backend.client.expire.assert_called_once_with(f"admin-session:{session_id}", 3600)


def test_read_missing_session():
    backend = _backend()
    backend.client.get.return_value = None
    assert asyncio.run(backend.read(uuid4())) is None
    backend.client.expire.assert_not_called()


def test_me_returns_session_details(client, as_admin):
    resp = client.get("/admin/auth/me")
    assert resp.status_code == 200
    assert resp.json()["email"] == "admin@example.com"
    assert resp.json()["role"] == "admin"
