"""
Admin authentication routes (session cookie).
Accepts JSON body { email, password, passcode }; rate limited per client IP.
"""
import logging

from fastapi import APIRouter, Body, Depends, HTTPException, Request, Response, status

from exam_portal.admin.session import (
    AdminSessionData,
    create_admin_session,
    end_admin_session,
    require_admin,
    session_cookie,
)
from exam_portal.schemas.auth import AdminLoginRequest
from exam_portal.services.auth.admin import verify_admin_credentials
from exam_portal.services.auth.rate_limit import (
    check_login_rate_limit,
    get_client_ip,
    reset_login_attempts,
)
from exam_portal.utils.metrics import admin_logins_total

logger = logging.getLogger("auth")

router = APIRouter(prefix="/admin/auth", tags=["admin-auth"])


@router.post("/login")
async def login(request: Request, response: Response, body: AdminLoginRequest = Body(...)):
    client_ip = get_client_ip(request)
    if not check_login_rate_limit(client_ip):
        admin_logins_total.labels(result="rate_limited").inc()
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many login attempts. Try again later.",
        )

    if not verify_admin_credentials(body.email, body.password, body.passcode):
        admin_logins_total.labels(result="invalid").inc()
        logger.warning("admin_login_failed", extra={"ip": client_ip})
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid admin credentials",
        )

    reset_login_attempts(client_ip)
    session_id = await create_admin_session(body.email.strip().lower(), client_ip)
    session_cookie.attach_to_response(response, session_id)
    admin_logins_total.labels(result="success").inc()
    logger.info("admin_logged_in", extra={"ip": client_ip})
    return {"success": True, "user": {"email": body.email.strip().lower(), "role": "admin"}}


@router.post("/logout")
async def logout(request: Request, response: Response, admin: AdminSessionData = Depends(require_admin)):
    await end_admin_session(request, response)
    logger.info("admin_logged_out", extra={"email": admin.email})
    return {"message": "Successfully logged out"}


@router.get("/me")
async def get_me(admin: AdminSessionData = Depends(require_admin)):
    return {"email": admin.email, "role": "admin", "logged_in_at": admin.logged_in_at, "ip": admin.ip}
