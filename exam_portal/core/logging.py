import json
import logging
import time
import uuid
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler

from starlette.requests import Request

from exam_portal.core.config import settings

logger = logging.getLogger("http")

# Keys copied from a record's `extra` into the JSON line
EXTRA_FIELDS = (
    "request_id", "method", "path", "status_code", "latency_ms",
    "user_id", "email", "ip", "test_id", "attempt_id", "category",
    "plan_names", "subscriptions", "plans", "bucket", "attempts",
    "expired_count", "inactive_count", "error",
)


class JsonFormatter(logging.Formatter):
    """One JSON object per line; timestamps in UTC."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(
            (field, getattr(record, field))
            for field in EXTRA_FIELDS
            if getattr(record, field, None) is not None
        )
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging() -> None:
    """Route the root logger to stdout, plus a rotating file when LOG_FILE is set."""
    formatter = JsonFormatter()
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if settings.log_file:
        handlers.append(
            RotatingFileHandler(
                settings.log_file,
                maxBytes=settings.log_max_bytes,
                backupCount=settings.log_backup_count,
            )
        )
    for handler in handlers:
        handler.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel(settings.log_level.upper())
    root.handlers = handlers


async def request_logging_middleware(request: Request, call_next):
    """Log every request with its latency and echo the request id header."""
    request_id = request.headers.get(settings.request_id_header) or uuid.uuid4().hex
    start = time.perf_counter()
    fields = {"request_id": request_id, "method": request.method, "path": request.url.path}
    try:
        response = await call_next(request)
    except Exception:
        fields["latency_ms"] = int((time.perf_counter() - start) * 1000)
        logger.exception("request_failed", extra=fields)
        raise
    fields["latency_ms"] = int((time.perf_counter() - start) * 1000)
    fields["status_code"] = response.status_code
    response.headers[settings.request_id_header] = request_id
    logger.info("request", extra=fields)
    return response
