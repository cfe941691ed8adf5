from __future__ import annotations

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from app.schemas.billing import ListingPlanOut


class SubscriptionSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    plan_id: UUID
    status: str
    current_period_start: datetime | None = None
    current_period_end: datetime | None = None
    next_payment_due: date | None = None
    grace_until: datetime | None = None
    cancel_at_period_end: bool = False
    plan: ListingPlanOut | None = None


class PaymentTransactionSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    reference: str
    amount: float
    status: str
    created_at: datetime | None = None
    paid_at: datetime | None = None


class SellerBillingSchema(BaseModel):
    subscription: SubscriptionSchema | None = None
    transactions: list[PaymentTransactionSchema]
    days_until_payment: int | None = None
    is_active: bool = False
