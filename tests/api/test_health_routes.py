from unittest.mock import patch


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_ready_when_dependencies_answer(client):
    with patch("exam_portal.api.routes.health.redis.Redis.from_url") as from_url:
        resp = client.get("/ready")

    assert resp.status_code == 200
    assert resp.json()["checks"] == {"database": "ok", "redis": "ok"}
    from_url.return_value.ping.assert_called_once()


def test_not_ready_reports_failing_check(client, db):
    db.execute.side_effect = RuntimeError("connection refused")
    with patch("exam_portal.api.routes.health.redis.Redis.from_url"):
        resp = client.get("/ready")

    assert resp.status_code == 503
    body = resp.json()
    assert body["status"] == "not_ready"
    assert body["checks"] == {"database": "error", "redis": "ok"}


def test_request_id_is_echoed(client):
    resp = client.get("/health", headers={"X-Request-Id": "abc123"})
    assert resp.headers["X-Request-Id"] == "abc123"
