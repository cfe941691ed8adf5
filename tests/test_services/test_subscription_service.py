from __future__ import annotations

import uuid
from datetime import date, datetime, timezone

import pytest

from app.core.exceptions import NotFoundError
from app.models import SubscriptionStatus
from app.repositories.billing_repository import as_utc
from app.services import subscription_service

UTC = timezone.utc
NOW = datetime(2024, 1, 12, 9, 0, tzinfo=UTC)


def test_is_subscription_active_rules(make_subscription):
    assert subscription_service.is_subscription_active(None, NOW) is False
    assert subscription_service.is_subscription_active(make_subscription(status="active"), NOW) is True
    in_grace = make_subscription(status="past_due", grace_until=datetime(2024, 1, 13, tzinfo=UTC))
    assert subscription_service.is_subscription_active(in_grace, NOW) is True
    expired = make_subscription(status="past_due", grace_until=datetime(2024, 1, 11, tzinfo=UTC))
    assert subscription_service.is_subscription_active(expired, NOW) is False
    assert subscription_service.is_subscription_active(make_subscription(status="paused"), NOW) is False


def test_days_until_payment_rounds_up(make_subscription):
    sub = make_subscription(status="active", next_payment_due=date(2024, 1, 15))
    assert subscription_service.get_days_until_payment(sub, NOW) == 3
    sub_without_due = make_subscription(status="pending", next_payment_due=None)
    assert subscription_service.get_days_until_payment(sub_without_due, NOW) is None


def test_publish_status_without_subscription(db):
    status = subscription_service.check_publish_status(db, uuid.uuid4(), NOW)
    assert status.can_publish is False
    assert status.reason.startswith("No active subscription")


def test_publish_status_refuses_paused_and_expired(db, make_subscription):
    paused = make_subscription(status="paused")
    expired = make_subscription(status="past_due", grace_until=datetime(2024, 1, 11, tzinfo=UTC))

    assert subscription_service.check_publish_status(db, paused.user_id, NOW).can_publish is False
    overdue = subscription_service.check_publish_status(db, expired.user_id, NOW)
    assert overdue.can_publish is False
    assert "overdue" in overdue.reason


def test_publish_status_counts_against_plan_limit(db, make_subscription, make_listing):
    sub = make_subscription(status="active")
    make_listing(sub.user_id, "published")
    make_listing(sub.user_id, "pending_review")
    make_listing(sub.user_id, "draft")

    status = subscription_service.check_publish_status(db, sub.user_id, NOW)
    assert status.can_publish is True
    assert (status.current_count, status.max_count, status.remaining) == (2, 3, 1)

    make_listing(sub.user_id, "published")
    full = subscription_service.check_publish_status(db, sub.user_id, NOW)
    assert full.can_publish is False
    assert full.reason == "Listing limit reached (3/3). Upgrade your plan for more listings."


def test_status_change_to_canceled_hides_listings(db, make_subscription, make_listing):
    sub = make_subscription(status="canceled")
    listing = make_listing(sub.user_id, "published")

    changed = subscription_service.handle_subscription_status_change(
        db, sub.user_id, SubscriptionStatus.CANCELED, NOW
    )

    db.refresh(listing)
    assert changed == 1
    assert listing.listing_status == "paused"


def test_reactivation_respects_plan_limit_and_prefers_recent(db, make_subscription, make_listing):
    sub = make_subscription(status="active")
    listings = [
        make_listing(sub.user_id, "paused", title=f"Bike {day}", updated_at=datetime(2024, 1, day, tzinfo=UTC))
        for day in range(1, 6)
    ]

    changed = subscription_service.handle_subscription_status_change(
        db, sub.user_id, SubscriptionStatus.ACTIVE, NOW
    )

    for row in listings:
        db.refresh(row)
    assert changed == 3
    assert [row.listing_status for row in listings] == ["paused", "paused", "published", "published", "published"]


@pytest.mark.asyncio
async def test_record_payment_reactivates_subscription(db, make_subscription, make_listing, email_service, contacts):
    sub = make_subscription(
        status="paused",
        next_payment_due=date(2024, 1, 10),
        grace_until=datetime(2024, 1, 13, tzinfo=UTC),
    )
    listing = make_listing(sub.user_id, "paused")
    paid_at = datetime(2024, 1, 31, 12, 0, tzinfo=UTC)

    updated = await subscription_service.record_payment_received(
        db, sub.id, paid_at, email_service=email_service, contacts=contacts
    )

    db.refresh(listing)
    assert updated.status == "active"
    assert updated.grace_until is None
    assert updated.next_payment_due == date(2024, 2, 29)
    assert as_utc(updated.current_period_end) == datetime(2024, 2, 29, 12, 0, tzinfo=UTC)
    assert listing.listing_status == "published"
    assert email_service.subjects() == ["Payment Received - Your Go Moto Subscription Is Active"]


@pytest.mark.asyncio
async def test_record_payment_survives_email_failure(db, make_subscription, email_service, contacts):
    sub = make_subscription(status="past_due", grace_until=datetime(2024, 1, 13, tzinfo=UTC))
    email_service.fail = True

    updated = await subscription_service.record_payment_received(
        db, sub.id, NOW, email_service=email_service, contacts=contacts
    )

    assert updated.status == "active"


@pytest.mark.asyncio
async def test_record_payment_unknown_subscription(db, email_service, contacts):
    with pytest.raises(NotFoundError):
        await subscription_service.record_payment_received(
            db, uuid.uuid4(), NOW, email_service=email_service, contacts=contacts
        )


def test_seller_billing_summary(db, make_subscription):
    sub = make_subscription(status="active", next_payment_due=date(2024, 1, 15))

    summary = subscription_service.get_seller_billing(db, sub.user_id, NOW)

    assert summary.subscription.id == sub.id
    assert summary.subscription.plan.slug == "pro"
    assert summary.transactions == []
    assert summary.days_until_payment == 3
    assert summary.is_active is True
