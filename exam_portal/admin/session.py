"""
Admin sessions: a signed `admin_session` cookie holding a UUID, with the
session body in Redis. Reads slide the expiry forward.
"""
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID, uuid4

import redis
from fastapi import HTTPException, Request, Response, status
from fastapi_sessions.backends.session_backend import SessionBackend
from fastapi_sessions.frontends.implementations import SessionCookie, CookieParameters
from pydantic import BaseModel, Field

from exam_portal.core.config import settings


class AdminSessionData(BaseModel):
    email: str
    ip: str | None = None
    logged_in_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class RedisSessionBackend(SessionBackend[UUID, AdminSessionData]):
    key_prefix = "admin-session:"

    def __init__(self, url: str, ttl_seconds: int) -> None:
        self.url = url
        self.ttl_seconds = ttl_seconds
        self._client: redis.Redis | None = None

    @property
    def client(self) -> redis.Redis:
        if self._client is None:
            self._client = redis.Redis.from_url(self.url, decode_responses=True)
        return self._client

    def _key(self, session_id: UUID) -> str:
        return f"{self.key_prefix}{session_id}"

    async def create(self, session_id: UUID, data: AdminSessionData) -> None:
        self.client.setex(self._key(session_id), self.ttl_seconds, data.model_dump_json())

    async def read(self, session_id: UUID) -> Optional[AdminSessionData]:
        key = self._key(session_id)
        raw = self.client.get(key)
        if not raw:
            return None
        self.client.expire(key, self.ttl_seconds)
        return AdminSessionData.model_validate_json(raw)

    async def update(self, session_id: UUID, data: AdminSessionData) -> None:
        await self.create(session_id, data)

    async def delete(self, session_id: UUID) -> None:
        self.client.delete(self._key(session_id))


session_backend = RedisSessionBackend(settings.redis_url, settings.admin_session_ttl)

session_cookie = SessionCookie(
    cookie_name="admin_session",
    identifier="admin_session",
    auto_error=False,
    secret_key=settings.secret_key,
    cookie_params=CookieParameters(
        max_age=settings.admin_session_ttl,
        samesite=settings.admin_cookie_samesite,
        secure=settings.admin_cookie_secure,
    ),
)


async def get_session_id(request: Request) -> Optional[UUID]:
    # FrontendError when the cookie is missing or its signature is invalid
    session_id = session_cookie(request)
    return session_id if isinstance(session_id, UUID) else None


async def require_admin(request: Request) -> AdminSessionData:
    session_id = await get_session_id(request)
    session = await session_backend.read(session_id) if session_id else None
    if session is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Admin login required")
    return session


async def create_admin_session(email: str, ip: str | None = None) -> UUID:
    session_id = uuid4()
    await session_backend.create(session_id, AdminSessionData(email=email, ip=ip))
    return session_id


async def end_admin_session(request: Request, response: Response) -> None:
    session_id = await get_session_id(request)
    if session_id:
        await session_backend.delete(session_id)
    session_cookie.delete_from_response(response)
