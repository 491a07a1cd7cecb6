"""
Prometheus-based metrics for production monitoring.
Provides /metrics endpoint for scraping.
"""
from prometheus_client import Counter, generate_latest, CONTENT_TYPE_LATEST
from fastapi import APIRouter, Response


# Counters
otp_sent_total = Counter(
    "otp_sent_total",
    "Total OTP codes issued",
    ["status"],  # sent, email_failed, rate_limited
)

otp_verify_total = Counter(
    "otp_verify_total",
    "Total OTP verifications",
    ["result"],  # success, invalid, expired, not_found, too_many_attempts
)

access_denied_total = Counter(
    "access_denied_total",
    "Total premium content denials",
    ["kind"],  # test, material
)

attempts_started_total = Counter(
    "attempts_started_total",
    "Total test attempts started or resumed",
    ["outcome"],  # created, resumed
)

attempts_submitted_total = Counter(
    "attempts_submitted_total",
    "Total test attempts submitted",
)

admin_logins_total = Counter(
    "admin_logins_total",
    "Total admin login attempts",
    ["result"],  # success, invalid, rate_limited
)

subscriptions_deactivated_total = Counter(
    "subscriptions_deactivated_total",
    "Subscriptions deactivated by the scheduled sweep",
    ["reason"],  # expired, inactive
)


# Metrics endpoint router
router = APIRouter()


@router.get("/metrics")
def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint for scraping."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )
