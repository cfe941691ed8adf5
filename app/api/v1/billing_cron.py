"""
Daily billing cron trigger.

Called once a day by an external scheduler with
``Authorization: Bearer {CRON_SECRET}``. GET and POST behave the same.
"""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, status
from fastapi.responses import JSONResponse

from app.api.dependencies import get_lifecycle_manager
from app.core.exceptions import BillingRunInProgress
from app.core.security import verify_cron_secret
from app.services.billing_lifecycle import SubscriptionLifecycleManager
from app.services.billing_scheduler import billing_scheduler

logger = logging.getLogger(__name__)

router = APIRouter()


@router.api_route("/billing", methods=["GET", "POST"])
async def billing_cron(
    authorization: Optional[str] = Header(default=None),
    manager: SubscriptionLifecycleManager = Depends(get_lifecycle_manager),
) -> JSONResponse:
    if not verify_cron_secret(authorization):
        logger.warning("Rejected billing cron call with invalid credentials")
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"error": "Unauthorized"},
        )

    try:
        result = await billing_scheduler.run_exclusive(manager)
    except BillingRunInProgress as exc:
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={"success": False, "error": str(exc)},
        )

    return JSONResponse(
        status_code=status.HTTP_200_OK if result.success else status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=result.to_response(),
    )
