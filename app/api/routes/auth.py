from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from app.api.dependencies import get_current_user
from app.config import settings
from app.core.security import ADMIN_ROLE, ADMIN_TOKEN_TTL, create_access_token, verify_password
from app.schemas.auth import AdminLoginRequest, AdminTokenResponse, BillingAdmin

logger = logging.getLogger(__name__)

router = APIRouter()

INVALID_CREDENTIALS = "Invalid credentials"


@router.post("/login", response_model=AdminTokenResponse)
async def login(payload: AdminLoginRequest) -> AdminTokenResponse:
    """Issue a token for the subscriptions admin routes."""
    password_hash = settings.admin_password_hash.get_secret_value()
    if not password_hash:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Admin login is not configured",
        )

    email = payload.email.strip().lower()
    if email != settings.admin_email.lower() or not verify_password(payload.password, password_hash):
        logger.warning("Failed billing admin login for %s", email)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=INVALID_CREDENTIALS)

    admin = BillingAdmin(id="admin", email=settings.admin_email, name=settings.admin_name)
    token = create_access_token(admin.email, {"name": admin.name, "role": ADMIN_ROLE})
    return AdminTokenResponse(
        access_token=token,
        expires_in=int(ADMIN_TOKEN_TTL.total_seconds()),
        admin=admin,
    )


@router.get("/me", response_model=BillingAdmin)
async def me(admin: dict = Depends(get_current_user)) -> BillingAdmin:
    return BillingAdmin(**admin)
