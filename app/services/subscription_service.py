"""
Subscription rules shared by the marketplace: publish quota, the listing
visibility cascade and reactivation once a payment lands.
"""
from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Optional
from uuid import UUID

from dateutil.relativedelta import relativedelta
from sqlalchemy.orm import Session

from app.config import settings
from app.core.exceptions import AppError, NotFoundError
from app.integrations.email import EmailService
from app.integrations.supabase_auth import SupabaseAuthAdmin
from app.models import Subscription, SubscriptionStatus
from app.repositories.billing_repository import BillingRepository, as_utc
from app.schemas.billing import PublishStatus
from app.schemas.subscription import (
    PaymentTransactionSchema,
    SellerBillingSchema,
    SubscriptionSchema,
)
from app.templates import billing_emails

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 60 * 60 * 24


def is_subscription_active(subscription: Optional[Subscription], now: datetime) -> bool:
    """Active, or past due but still inside the grace window."""
    if subscription is None:
        return False
    if subscription.status == SubscriptionStatus.ACTIVE.value:
        return True
    if subscription.status == SubscriptionStatus.PAST_DUE.value and subscription.grace_until:
        return as_utc(subscription.grace_until) > now
    return False


def get_days_until_payment(subscription: Optional[Subscription], now: datetime) -> Optional[int]:
    if subscription is None or subscription.next_payment_due is None:
        return None
    due = datetime.combine(subscription.next_payment_due, datetime.min.time(), tzinfo=now.tzinfo)
    return math.ceil((due - now).total_seconds() / SECONDS_PER_DAY)


def _refused(reason: str, current: int = 0, maximum: int = 0) -> PublishStatus:
    return PublishStatus(
        can_publish=False,
        reason=reason,
        current_count=current,
        max_count=maximum,
        remaining=0,
    )


def check_publish_status(db: Session, user_id: UUID, now: datetime) -> PublishStatus:
    """Whether a seller may publish another listing under their plan."""
    repository = BillingRepository(db)
    subscription = repository.get_subscription_for_user(user_id)

    if subscription is None:
        return _refused("No active subscription. Please subscribe to a plan first.")

    if subscription.status in (
        SubscriptionStatus.CANCELED.value,
        SubscriptionStatus.PAUSED.value,
        SubscriptionStatus.PENDING.value,
    ):
        return _refused("Your subscription is not active. Please reactivate to publish listings.")

    if subscription.status == SubscriptionStatus.PAST_DUE.value and not is_subscription_active(
        subscription, now
    ):
        return _refused("Your subscription payment is overdue. Please pay to continue.")

    current = repository.count_active_listings(user_id)
    maximum = subscription.plan.max_active_listings if subscription.plan else 0
    if current >= maximum:
        return _refused(
            f"Listing limit reached ({current}/{maximum}). Upgrade your plan for more listings.",
            current,
            maximum,
        )

    return PublishStatus(
        can_publish=True,
        current_count=current,
        max_count=maximum,
        remaining=maximum - current,
    )


def handle_subscription_status_change(
    db: Session, user_id: UUID, new_status: SubscriptionStatus, now: datetime
) -> int:
    """
    Apply the listing visibility cascade for a seller's new subscription status.

    Returns the number of listings whose status changed.
    """
    repository = BillingRepository(db)
    if new_status in (SubscriptionStatus.PAUSED, SubscriptionStatus.CANCELED):
        return repository.pause_published_listings(user_id, now)
    if new_status == SubscriptionStatus.ACTIVE:
        subscription = repository.get_subscription_for_user(user_id)
        if subscription is None or subscription.plan is None:
            return 0
        return repository.reactivate_paused_listings(
            user_id, subscription.plan.max_active_listings, now
        )
    return 0


async def record_payment_received(
    db: Session,
    subscription_id: UUID,
    now: datetime,
    email_service: Optional[EmailService] = None,
    contacts: Optional[SupabaseAuthAdmin] = None,
) -> Subscription:
    """
    Start a new monthly period after a successful payment.

    Clears the grace window, republishes paused listings up to the plan limit
    and emails the seller. The email is best effort.
    """
    repository = BillingRepository(db)
    subscription = repository.get_subscription(subscription_id)
    if subscription is None:
        raise NotFoundError(f"Subscription {subscription_id} not found")

    period_end = now + relativedelta(months=1)
    subscription.status = SubscriptionStatus.ACTIVE.value
    subscription.current_period_start = now
    subscription.current_period_end = period_end
    subscription.next_payment_due = period_end.date()
    subscription.grace_until = None
    subscription.updated_at = now
    db.commit()
    db.refresh(subscription)

    restored = handle_subscription_status_change(db, subscription.user_id, SubscriptionStatus.ACTIVE, now)
    logger.info(
        "Subscription %s activated for seller %s; %s listing(s) restored",
        subscription.id,
        subscription.user_id,
        restored,
    )

    contacts = contacts or SupabaseAuthAdmin()
    email_service = email_service or EmailService()
    try:
        contact = await contacts.get_seller_contact(subscription.user_id)
        if contact.email:
            email = billing_emails.subscription_reactivated_email(
                contact.name, restored, period_end.date(), settings.billing_url
            )
            await email_service.send_email(contact.email, email.subject, email.html)
    except AppError as exc:
        logger.warning("Reactivation email failed for subscription %s: %s", subscription.id, exc)

    return subscription


def get_seller_billing(db: Session, user_id: UUID, now: datetime) -> SellerBillingSchema:
    repository = BillingRepository(db)
    subscription = repository.get_subscription_for_user(user_id)
    transactions = repository.recent_transactions(user_id, limit=10)
    return SellerBillingSchema(
        subscription=SubscriptionSchema.model_validate(subscription) if subscription else None,
        transactions=[PaymentTransactionSchema.model_validate(tx) for tx in transactions],
        days_until_payment=get_days_until_payment(subscription, now),
        is_active=is_subscription_active(subscription, now),
    )
