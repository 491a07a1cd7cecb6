import logging
import secrets
import time
from typing import Callable

from pydantic import BaseModel

from exam_portal.core.config import settings
from exam_portal.services.otp.store import MemoryOtpStore, OtpRecord, OtpStore, RedisOtpStore

logger = logging.getLogger(__name__)


def generate_otp() -> str:
    """Random 6-digit code, 100000..999999."""
    return str(100000 + secrets.randbelow(900000))


def normalize_email(email: str) -> str:
    return email.strip().lower()


def build_otp_store() -> OtpStore:
    """Store selected by settings.otp_backend. Records outlive the OTP TTL by a grace period."""
    retention = settings.otp_ttl_seconds + settings.otp_expired_grace_seconds
    if settings.otp_backend == "memory":
        return MemoryOtpStore(ttl_seconds=retention)
    return RedisOtpStore.from_url(settings.redis_url, ttl_seconds=retention)


class OtpVerification(BaseModel):
    valid: bool
    message: str | None = None


class OtpService:
    def __init__(
        self,
        store: OtpStore,
        ttl_seconds: int | None = None,
        max_attempts: int | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.otp_ttl_seconds
        self.max_attempts = max_attempts if max_attempts is not None else settings.otp_max_attempts
        self.clock = clock

    def issue(self, email: str) -> str:
        """Generate and store a fresh OTP; any previous code for the email is replaced."""
        email = normalize_email(email)
        otp = generate_otp()
        self.store.put(email, OtpRecord(otp=otp, email=email, created_at=self.clock(), attempts=0))
        logger.info("otp_issued", extra={"email": email})
        return otp

    def verify(self, email: str, otp: str) -> OtpVerification:
        email = normalize_email(email)
        record = self.store.get(email)
        if record is None:
            return OtpVerification(valid=False, message="OTP not found. Please request a new one.")

        if self.clock() - record.created_at > self.ttl_seconds:
            self.store.delete(email)
            return OtpVerification(valid=False, message="OTP has expired. Please request a new one.")

        attempts = self.store.increment_attempts(email)
        if attempts == 0:
            # Removed by a concurrent verification between get and increment
            return OtpVerification(valid=False, message="OTP not found. Please request a new one.")

        if attempts > self.max_attempts:
            self.store.delete(email)
            logger.warning("otp_attempts_exceeded", extra={"email": email, "attempts": attempts})
            return OtpVerification(valid=False, message="Too many failed attempts. Please request a new OTP.")

        if not secrets.compare_digest(record.otp, otp.strip()):
            return OtpVerification(
                valid=False,
                message=f"Invalid OTP. {self.max_attempts - attempts} attempts remaining.",
            )

        if not self.store.delete(email):
            return OtpVerification(valid=False, message="OTP not found. Please request a new one.")
        logger.info("otp_verified", extra={"email": email})
        return OtpVerification(valid=True)

    def clear(self, email: str) -> None:
        self.store.delete(normalize_email(email))
