"""
Expiring OTP storage keyed by email.

RedisOtpStore is the production backend (atomic HINCRBY / DEL, key TTL).
MemoryOtpStore is for local runs and tests; every read-modify-write goes
through one lock because FastAPI runs sync endpoints on a thread pool.
"""
import threading
import time
from abc import ABC, abstractmethod
from typing import Callable

import redis
from pydantic import BaseModel


class OtpRecord(BaseModel):
    otp: str
    email: str
    created_at: float  # unix seconds
    attempts: int = 0


class OtpStore(ABC):
    @abstractmethod
    def put(self, email: str, record: OtpRecord) -> None:
        """Store a fresh record, replacing any previous one."""
        raise NotImplementedError

    @abstractmethod
    def get(self, email: str) -> OtpRecord | None:
        raise NotImplementedError

    @abstractmethod
    def increment_attempts(self, email: str) -> int:
        """Atomically bump the attempt counter. Returns the new value, 0 if no record."""
        raise NotImplementedError

    @abstractmethod
    def delete(self, email: str) -> bool:
        """Remove the record. True only for the caller that actually removed it."""
        raise NotImplementedError

    def close(self) -> None:
        return None


class RedisOtpStore(OtpStore):
    # Increment only while the record exists; HINCRBY alone would recreate it without a TTL
    INCREMENT_IF_EXISTS = """
if redis.call("exists", KEYS[1]) == 1 then
    return redis.call("hincrby", KEYS[1], "attempts", 1)
end
return 0
"""

    def __init__(self, client: redis.Redis, ttl_seconds: int) -> None:
        self.client = client
        self.ttl_seconds = ttl_seconds
        self.key_prefix = "otp:"
        self._increment = client.register_script(self.INCREMENT_IF_EXISTS)

    @classmethod
    def from_url(cls, url: str, ttl_seconds: int) -> "RedisOtpStore":
        return cls(redis.Redis.from_url(url, decode_responses=True), ttl_seconds)

    def _key(self, email: str) -> str:
        return f"{self.key_prefix}{email}"

    def put(self, email: str, record: OtpRecord) -> None:
        key = self._key(email)
        pipe = self.client.pipeline()
        pipe.delete(key)
        pipe.hset(
            key,
            mapping={
                "otp": record.otp,
                "email": record.email,
                "created_at": str(record.created_at),
                "attempts": str(record.attempts),
            },
        )
        pipe.expire(key, self.ttl_seconds)
        pipe.execute()

    def get(self, email: str) -> OtpRecord | None:
        raw = self.client.hgetall(self._key(email))
        if not raw or "otp" not in raw or "created_at" not in raw:
            return None
        return OtpRecord(
            otp=raw["otp"],
            email=raw.get("email", email),
            created_at=float(raw["created_at"]),
            attempts=int(raw.get("attempts", 0)),
        )

    def increment_attempts(self, email: str) -> int:
        return int(self._increment(keys=[self._key(email)]))

    def delete(self, email: str) -> bool:
        return self.client.delete(self._key(email)) > 0

    def close(self) -> None:
        self.client.close()


class MemoryOtpStore(OtpStore):
    def __init__(self, ttl_seconds: int, clock: Callable[[], float] = time.time) -> None:
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._records: dict[str, OtpRecord] = {}
        self._lock = threading.Lock()

    def _evict_stale(self) -> None:
        # Caller holds the lock. Records past the TTL are dropped lazily.
        cutoff = self.clock() - self.ttl_seconds
        for email in [e for e, r in self._records.items() if r.created_at < cutoff]:
            del self._records[email]

    def put(self, email: str, record: OtpRecord) -> None:
        with self._lock:
            self._evict_stale()
            self._records[email] = record

    def get(self, email: str) -> OtpRecord | None:
        with self._lock:
            record = self._records.get(email)
            return record.model_copy() if record else None

    def increment_attempts(self, email: str) -> int:
        with self._lock:
            record = self._records.get(email)
            if record is None:
                return 0
            record.attempts += 1
            return record.attempts

    def delete(self, email: str) -> bool:
        with self._lock:
            return self._records.pop(email, None) is not None

    def close(self) -> None:
        with self._lock:
            self._records.clear()
