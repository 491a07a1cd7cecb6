from unittest.mock import MagicMock, patch

from exam_portal.services.auth import rate_limit


def _fake_redis(count):
    fake = MagicMock()
    fake.incr.return_value = count
    return fake


class TestHit:
    def test_first_event_starts_window(self):
        fake = _fake_redis(1)
        with patch.object(rate_limit.redis.Redis, "from_url", return_value=fake):
            assert rate_limit.hit("b", "k", limit=3, window_seconds=60) is True
        fake.incr.assert_called_once_with("b:k")
        fake.expire.assert_called_once_with("b:k", 60)

    def test_at_limit_still_allowed(self):
        fake = _fake_redis(3)
        with patch.object(rate_limit.redis.Redis, "from_url", return_value=fake):
            assert rate_limit.hit("b", "k", limit=3, window_seconds=60) is True
        fake.expire.assert_not_called()

    def test_over_limit_blocked(self):
        with patch.object(rate_limit.redis.Redis, "from_url", return_value=_fake_redis(4)):
            assert rate_limit.hit("b", "k", limit=3, window_seconds=60) is False

    def test_fails_open_on_redis_error(self):
        fake = MagicMock()
        fake.incr.side_effect = rate_limit.redis.RedisError("down")
        with patch.object(rate_limit.redis.Redis, "from_url", return_value=fake):
            assert rate_limit.hit("b", "k", limit=3, window_seconds=60) is True


class TestBuckets:
    def test_login_limit_uses_settings(self):
        fake = _fake_redis(6)
        with patch.object(rate_limit.redis.Redis, "from_url", return_value=fake):
            assert rate_limit.check_login_rate_limit("1.2.3.4") is False
        fake.incr.assert_called_once_with("login_attempts:1.2.3.4")

    def test_otp_sends_keyed_by_normalized_email(self):
        fake = _fake_redis(1)
        with patch.object(rate_limit.redis.Redis, "from_url", return_value=fake):
            assert rate_limit.check_otp_send_rate_limit(" Student@Example.com ") is True
        fake.incr.assert_called_once_with("otp_sends:student@example.com")

    def test_reset_login_attempts(self):
        fake = MagicMock()
        with patch.object(rate_limit.redis.Redis, "from_url", return_value=fake):
            rate_limit.reset_login_attempts("1.2.3.4")
        fake.delete.assert_called_once_with("login_attempts:1.2.3.4")

    def test_reset_swallows_redis_error(self):
        fake = MagicMock()
        fake.delete.side_effect = rate_limit.redis.RedisError("down")
        with patch.object(rate_limit.redis.Redis, "from_url", return_value=fake):
            rate_limit.reset_login_attempts("1.2.3.4")


def test_forwarded_ip_ignored_outside_production():
    request = MagicMock()
    request.headers = {"X-Forwarded-For": "203.0.113.9"}
    request.client.host = "10.0.0.1"
    assert rate_limit.get_client_ip(request) == "10.0.0.1"
