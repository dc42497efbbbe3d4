"""
Admin authentication endpoints.
Provides login, logout, and session status routes.
"""
import logging

from fastapi import APIRouter, HTTPException, Request, Response
from pydantic import BaseModel

from app.rate_limit import limiter, RATE_LIMIT_LOGIN
from security.admin_auth import (
    verify_admin_password,
    set_admin_cookie,
    clear_admin_cookie,
    get_current_admin,
    get_cookie_secret,
    check_admin_configured,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/admin", tags=["admin-auth"])


class LoginRequest(BaseModel):
    password: str


@router.post("/login")
@limiter.limit(RATE_LIMIT_LOGIN)
async def admin_login(request: Request, response: Response, body: LoginRequest):
    """
    Admin login with password.
    Sets httpOnly session cookie on success.
    Returns 503 if ADMIN_PASSWORD not configured, 401 on invalid password.
    """
    client_host = request.client.host if request.client else 'unknown'
    logger.info(f"[admin_login] Login attempt from {client_host}")

    try:
        get_cookie_secret()
    except ValueError as e:
        logger.error(f"[admin_login] COOKIE_SECRET not configured: {e}")
        raise HTTPException(status_code=500, detail="COOKIE_SECRET not configured")

    if not check_admin_configured():
        logger.warning("[admin_login] Admin not configured (ADMIN_PASSWORD not set)")
        raise HTTPException(status_code=503, detail="Admin not configured")

    if not verify_admin_password(body.password):
        logger.warning(f"[admin_login] Invalid password attempt from {client_host}")
        raise HTTPException(status_code=401, detail="Invalid credentials")

    set_admin_cookie(response, "admin")
    logger.info(f"[admin_login] Login successful from {client_host}")
    return {"authenticated": True}


@router.post("/logout")
async def admin_logout(response: Response):
    """Admin logout. Clears session cookie."""
    clear_admin_cookie(response)
    return {"authenticated": False}


@router.get("/session")
async def admin_session(request: Request):
    """Check admin authentication status."""
    return {"authenticated": get_current_admin(request) is not None}
