from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.api.dependencies import get_email_service, get_lifecycle_manager, get_seller_contacts
from app.core.exceptions import BillingRunInProgress, NotFoundError
from app.core.security import now_utc
from app.database import get_db
from app.integrations.email import EmailService
from app.integrations.supabase_auth import SupabaseAuthAdmin
from app.models import SubscriptionStatus
from app.repositories.billing_repository import BillingRepository
from app.schemas.billing import PublishStatus
from app.schemas.subscription import SellerBillingSchema, SubscriptionSchema
from app.services import subscription_service
from app.services.billing_lifecycle import SubscriptionLifecycleManager
from app.services.billing_scheduler import billing_scheduler

router = APIRouter()


@router.get("/", response_model=list[SubscriptionSchema])
async def list_subscriptions(
    status_filter: Optional[SubscriptionStatus] = Query(default=None, alias="status"),
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
):
    rows = BillingRepository(db).list_subscriptions(status_filter, skip=skip, limit=limit)
    return [SubscriptionSchema.model_validate(row) for row in rows]


@router.get("/{user_id}/billing", response_model=SellerBillingSchema)
async def seller_billing(user_id: UUID, db: Session = Depends(get_db)):
    return subscription_service.get_seller_billing(db, user_id, now_utc())


@router.get("/{user_id}/publish-status", response_model=PublishStatus)
async def publish_status(user_id: UUID, db: Session = Depends(get_db)):
    return subscription_service.check_publish_status(db, user_id, now_utc())


@router.post("/{subscription_id}/payments", response_model=SubscriptionSchema)
async def record_payment(
    subscription_id: UUID,
    db: Session = Depends(get_db),
    email_service: EmailService = Depends(get_email_service),
    contacts: SupabaseAuthAdmin = Depends(get_seller_contacts),
):
    """Mark a subscription paid for a new month and restore its listings."""
    try:
        subscription = await subscription_service.record_payment_received(
            db, subscription_id, now_utc(), email_service=email_service, contacts=contacts
        )
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    return SubscriptionSchema.model_validate(subscription)


@router.post("/run-billing")
async def run_billing(
    manager: SubscriptionLifecycleManager = Depends(get_lifecycle_manager),
) -> JSONResponse:
    """Run the daily billing pass now, on behalf of an admin."""
    try:
        result = await billing_scheduler.run_exclusive(manager)
    except BillingRunInProgress as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    return JSONResponse(
        status_code=status.HTTP_200_OK if result.success else status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=result.to_response(),
    )
