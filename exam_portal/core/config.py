"""
Application configuration.
All settings are loaded from environment variables.
Required variables (no defaults) must be present in the environment or .env.
"""
from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    IMPORTANT: Credentials have no defaults - they MUST be set in .env file.
    """

    # ===========================================
    # APPLICATION
    # ===========================================
    app_env: str = "local"
    # Comma-separated origins (e.g. http://localhost:3000). Empty = default list in main.py.
    cors_origins: str = ""
    # Trusted proxy IPs (comma-separated). Used for X-Forwarded-For in production.
    trusted_proxy_ips: str = ""
    # Product name used in email subjects and templates
    brand_name: str = "Rapid Steno"

    # ===========================================
    # DATABASE (PostgreSQL)
    # ===========================================
    database_url: str  # Required, no default
    db_pool_size: int = 10
    db_max_overflow: int = 20

    # ===========================================
    # REDIS & CELERY
    # ===========================================
    redis_url: str  # Required, no default
    celery_broker_url: str  # Required, no default
    celery_result_backend: str  # Required, no default

    # ===========================================
    # OTP LOGIN
    # ===========================================
    otp_backend: str = "redis"  # redis, memory
    otp_ttl_seconds: int = 600  # 10 minutes
    otp_max_attempts: int = 5
    # Redis keeps the record a little longer than the TTL so "expired" can be reported
    otp_expired_grace_seconds: int = 60
    # OTP emails per address per window
    otp_send_limit: int = 5
    otp_send_window_seconds: int = 900  # 15 min

    # ===========================================
    # EMAIL (SMTP)
    # ===========================================
    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    smtp_from: str = ""  # Empty = smtp_user
    smtp_use_tls: bool = True
    smtp_timeout: float = 10.0
    # Shown in login notifications when the client IP is not loopback
    default_login_location: str = "India"

    # ===========================================
    # AUTH
    # ===========================================
    secret_key: str  # Required, no default
    student_token_ttl: int = 7 * 24 * 3600

    # ===========================================
    # ADMIN (REQUIRED - CHANGE DEFAULTS!)
    # ===========================================
    admin_email: str  # Required, no default
    admin_password: str  # Required, no default
    admin_passcode: str  # Required, no default (4-digit second factor)
    admin_session_ttl: int = 3600  # 1 hour
    admin_cookie_secure: bool = False  # Set True in production (HTTPS)
    admin_cookie_samesite: str = "strict"

    # Login rate limit (brute-force protection)
    login_rate_limit_attempts: int = 5
    login_rate_limit_window_seconds: int = 900  # 15 min

    # ===========================================
    # PLANS & CONTENT ACCESS
    # ===========================================
    premium_plan_name: str = "ahc"
    standard_plan_name: str = "gold"
    premium_content_keywords: str = "allahabad,ahc,allahabad high court"
    sample_content_keywords: str = "sample,demo"
    subscription_days: int = 90
    inactive_user_days: int = 90

    # ===========================================
    # LOGGING
    # ===========================================
    log_level: str = "INFO"
    log_file: str | None = None
    request_id_header: str = "X-Request-Id"
    log_max_bytes: int = 10_000_000
    log_backup_count: int = 5

    @field_validator("premium_content_keywords", "sample_content_keywords")
    @classmethod
    def normalize_keywords(cls, v: str) -> str:
        """Keywords are matched against lower-cased names."""
        return v.lower().strip()

    @property
    def premium_keywords_list(self) -> list[str]:
        return [k.strip() for k in self.premium_content_keywords.split(",") if k.strip()]

    @property
    def sample_keywords_list(self) -> list[str]:
        return [k.strip() for k in self.sample_content_keywords.split(",") if k.strip()]

    @property
    def trusted_proxy_ips_set(self) -> set[str]:
        """Get trusted proxy IPs as a set."""
        return {ip.strip() for ip in self.trusted_proxy_ips.split(",") if ip.strip()}

    @field_validator("secret_key")
    @classmethod
    def validate_secret_key(cls, v: str) -> str:
        """Ensure signing secret is reasonably secure."""
        if len(v) < 16:
            raise ValueError("secret_key must be at least 16 characters")
        if v in ("changeme", "secret", "password", "admin"):
            raise ValueError("secret_key is too weak, please change it")
        return v

    @field_validator("admin_password")
    @classmethod
    def validate_admin_password(cls, v: str) -> str:
        """Reject well-known weak passwords."""
        if v in ("admin", "admin123", "password", "123456", "changeme"):
            raise ValueError("admin_password is too weak, please change it")
        return v

    @field_validator("admin_passcode")
    @classmethod
    def validate_admin_passcode(cls, v: str) -> str:
        v = v.strip()
        if not v.isdigit() or len(v) < 4:
            raise ValueError("admin_passcode must be at least 4 digits")
        return v

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"


settings = Settings()
