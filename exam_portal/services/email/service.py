import logging
import smtplib
from datetime import datetime, timezone
from email.message import EmailMessage

from exam_portal.core.config import settings
from exam_portal.services.email import templates

logger = logging.getLogger(__name__)


class EmailError(Exception):
    pass


class EmailService:
    """SMTP delivery of OTP and login notification emails."""

    def __init__(self) -> None:
        self.host = settings.smtp_host
        self.port = settings.smtp_port
        self.user = settings.smtp_user
        self.password = settings.smtp_password
        self.sender = settings.smtp_from or settings.smtp_user
        self.use_tls = settings.smtp_use_tls
        self.timeout = settings.smtp_timeout
        self.brand = settings.brand_name

    def send(self, to_email: str, subject: str, html: str) -> None:
        if not self.host or not self.sender:
            raise EmailError("SMTP is not configured")

        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = self.sender
        msg["To"] = to_email
        msg.set_content("This message requires an HTML-capable email client.")
        msg.add_alternative(html, subtype="html")

        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                if self.use_tls:
                    server.starttls()
                if self.user and self.password:
                    server.login(self.user, self.password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            raise EmailError(str(e)) from e

    def send_otp(self, to_email: str, otp: str) -> None:
        html = templates.otp_email(self.brand, otp, settings.otp_ttl_seconds // 60)
        self.send(to_email, f"Your {self.brand} Login OTP", html)
        logger.info("otp_email_sent", extra={"email": to_email})

    def send_login_notification(
        self,
        to_email: str,
        user_name: str,
        ip_address: str,
        device_info: str,
        location: str = "Unknown",
    ) -> None:
        login_time = datetime.now(timezone.utc).strftime("%A, %B %d, %Y %H:%M %Z")
        html = templates.login_notification_email(
            self.brand, user_name, login_time, ip_address, device_info, location
        )
        self.send(to_email, f"Successful Login to {self.brand}", html)
        logger.info("login_notification_sent", extra={"email": to_email})
