"""
HTML bodies for transactional emails. Values are escaped here; callers pass raw strings.
"""
from datetime import datetime, timezone
from html import escape

_LAYOUT = """<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>{title}</title></head>
<body style="font-family: 'Segoe UI', Tahoma, sans-serif; background-color: #f9f9f9; margin: 0; padding: 0;">
  <div style="max-width: 600px; margin: 0 auto; padding: 20px;">
    <div style="background-color: #ffffff; border-radius: 8px;">
      <div style="background-color: #002E2C; padding: 20px; text-align: center;">
        <h1 style="color: white; margin: 0; font-size: 24px;">{heading}</h1>
      </div>
      <div style="padding: 30px; color: #333; line-height: 1.6;">
{body}
      </div>
      <div style="text-align: center; padding: 20px; color: #666; font-size: 12px; border-top: 1px solid #eee;">
        <p>&copy; {year} {brand}. All rights reserved.</p>
      </div>
    </div>
  </div>
</body>
</html>
"""


def _render(brand: str, title: str, heading: str, body: str) -> str:
    return _LAYOUT.format(
        title=escape(title),
        heading=escape(heading),
        body=body,
        year=datetime.now(timezone.utc).year,
        brand=escape(brand),
    )


def otp_email(brand: str, otp: str, ttl_minutes: int) -> str:
    body = (
        "        <p>Hello,</p>\n"
        f"        <p>Thank you for logging in to {escape(brand)}. To complete your login, "
        "please use the following One-Time Password (OTP):</p>\n"
        '        <p style="text-align: center; font-size: 32px; font-weight: bold; letter-spacing: 8px; '
        f'color: #002E2C;">{escape(otp)}</p>\n'
        f"        <p>This OTP is valid for {ttl_minutes} minutes. Please do not share this code with anyone.</p>\n"
        "        <p><em>If you did not request this OTP, please ignore this email.</em></p>"
    )
    return _render(brand, "Your OTP Code", f"{brand} Verification", body)


def login_notification_email(
    brand: str,
    user_name: str,
    login_time: str,
    ip_address: str,
    device_info: str,
    location: str,
) -> str:
    body = (
        f"        <p>Hello {escape(user_name)},</p>\n"
        f"        <p>We detected a successful login to your {escape(brand)} account.</p>\n"
        "        <ul>\n"
        f"          <li><strong>Time:</strong> {escape(login_time)}</li>\n"
        f"          <li><strong>IP address:</strong> {escape(ip_address)}</li>\n"
        f"          <li><strong>Device:</strong> {escape(device_info)}</li>\n"
        f"          <li><strong>Location:</strong> {escape(location)}</li>\n"
        "        </ul>\n"
        "        <p>If this was not you, please contact support immediately.</p>"
    )
    return _render(brand, "Successful Login Notification", "Successful Login", body)
