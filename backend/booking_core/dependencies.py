# backend/booking_core/dependencies.py
# Identity is resolved upstream; this service only gates admin routes.

import hmac

from fastapi import Header, HTTPException

from .config import settings


def require_admin(x_admin_token: str | None = Header(default=None)) -> None:
    if not settings.admin_token:
        raise HTTPException(status_code=503, detail="Admin API is not configured")
    if not x_admin_token or not hmac.compare_digest(x_admin_token, settings.admin_token):
        raise HTTPException(status_code=403, detail="Forbidden")
