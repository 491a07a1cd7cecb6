import hmac

from exam_portal.core.config import settings


def verify_admin_credentials(email: str, password: str, passcode: str) -> bool:
    """Constant-time check against the configured admin email, password and passcode."""
    checks = (
        hmac.compare_digest(email.strip().lower().encode(), settings.admin_email.strip().lower().encode()),
        hmac.compare_digest(password.encode(), settings.admin_password.encode()),
        hmac.compare_digest(passcode.strip().encode(), settings.admin_passcode.strip().encode()),
    )
    return all(checks)
