"""
Fixed-window counters in Redis.

Two buckets are used: admin login attempts per client IP and OTP emails per
address. Both fail open when Redis is unreachable, so an outage never locks
students or the admin out.
"""
import logging

import redis
from starlette.requests import Request

from exam_portal.core.config import settings

logger = logging.getLogger("auth")

ADMIN_LOGIN = "login_attempts"
OTP_SEND = "otp_sends"


def _client() -> redis.Redis:
    return redis.Redis.from_url(settings.redis_url, decode_responses=True)


def get_client_ip(request: Request) -> str:
    """Client IP; X-Forwarded-For is honoured only from trusted proxies in production."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded and settings.app_env == "production":
        trusted = settings.trusted_proxy_ips_set
        if trusted and request.client and request.client.host in trusted:
            return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "127.0.0.1"


def hit(bucket: str, key: str, limit: int, window_seconds: int) -> bool:
    """
    Count one event for bucket:key. Returns False once the count passes limit
    inside the window. The window starts at the first event.
    """
    name = f"{bucket}:{key}"
    try:
        client = _client()
        current = client.incr(name)
        if current == 1:
            client.expire(name, window_seconds)
    except redis.RedisError as e:
        logger.warning("rate_limit_redis_error", extra={"bucket": bucket, "error": str(e)})
        return True
    if current > limit:
        logger.warning("rate_limited", extra={"bucket": bucket, "attempts": current})
        return False
    return True


def reset(bucket: str, key: str) -> None:
    try:
        _client().delete(f"{bucket}:{key}")
    except redis.RedisError as e:
        logger.warning("rate_limit_reset_failed", extra={"bucket": bucket, "error": str(e)})


def check_login_rate_limit(client_ip: str) -> bool:
    return hit(
        ADMIN_LOGIN,
        client_ip,
        settings.login_rate_limit_attempts,
        settings.login_rate_limit_window_seconds,
    )


def reset_login_attempts(client_ip: str) -> None:
    reset(ADMIN_LOGIN, client_ip)


def check_otp_send_rate_limit(email: str) -> bool:
    return hit(
        OTP_SEND,
        email.strip().lower(),
        settings.otp_send_limit,
        settings.otp_send_window_seconds,
    )
