"""
Subscription and listing persistence for billing workflows.

Every write commits immediately; there is no transaction spanning more than
one statement. Status writes are conditional on the status the caller last
observed, so a record changed by someone else in the meantime is reported
as not updated instead of being overwritten.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, List, Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import DatabaseError
from app.models import (
    Listing,
    ListingStatus,
    PaymentTransaction,
    Subscription,
    SubscriptionStatus,
)

logger = logging.getLogger(__name__)

ACTIVE_LISTING_STATUSES = (ListingStatus.PUBLISHED.value, ListingStatus.PENDING_REVIEW.value)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive timestamps read back from drivers that drop the offset."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class SubscriptionRow:
    """The columns the lifecycle passes read from a candidate subscription."""

    id: UUID
    user_id: UUID
    plan_id: UUID
    status: str
    next_payment_due: Optional[date]
    grace_until: Optional[datetime]

    @classmethod
    def from_model(cls, subscription: Subscription) -> "SubscriptionRow":
        return cls(
            id=subscription.id,
            user_id=subscription.user_id,
            plan_id=subscription.plan_id,
            status=subscription.status,
            next_payment_due=subscription.next_payment_due,
            grace_until=as_utc(subscription.grace_until),
        )


class BillingRepository:
    """Reads and conditional writes against ``subscriptions`` and ``listings``."""

    def __init__(self, db: Session):
        self.db = db

    def _rows(self, query) -> List[SubscriptionRow]:
        try:
            return [SubscriptionRow.from_model(row) for row in query.all()]
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise DatabaseError(str(exc)) from exc

    def _commit_update(self, query, values: dict[str, Any]) -> int:
        try:
            updated = query.update(values, synchronize_session=False)
            self.db.commit()
            return updated
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise DatabaseError(str(exc)) from exc

    def list_due_for_payment(self, today: date) -> List[SubscriptionRow]:
        """Active subscriptions whose next payment is due today or earlier."""
        query = self.db.query(Subscription).filter(
            Subscription.status == SubscriptionStatus.ACTIVE.value,
            Subscription.next_payment_due <= today,
        )
        return self._rows(query)

    def list_grace_expired(self, now: datetime) -> List[SubscriptionRow]:
        """Past-due subscriptions whose grace window ended before ``now``."""
        query = self.db.query(Subscription).filter(
            Subscription.status == SubscriptionStatus.PAST_DUE.value,
            Subscription.grace_until < now,
        )
        return self._rows(query)

    def list_in_grace_due_on(self, now: datetime, due_on: date) -> List[SubscriptionRow]:
        """Past-due subscriptions still inside grace whose payment was due on ``due_on``."""
        query = self.db.query(Subscription).filter(
            Subscription.status == SubscriptionStatus.PAST_DUE.value,
            Subscription.grace_until >= now,
            Subscription.next_payment_due == due_on,
        )
        return self._rows(query)

    def transition_status(
        self,
        subscription_id: UUID,
        expected: SubscriptionStatus,
        target: SubscriptionStatus,
        now: datetime,
        **values: Any,
    ) -> bool:
        """
        Move a subscription from ``expected`` to ``target``.

        Returns False when the row no longer holds ``expected``.
        """
        query = self.db.query(Subscription).filter(
            Subscription.id == subscription_id,
            Subscription.status == expected.value,
        )
        updated = self._commit_update(query, {"status": target.value, "updated_at": now, **values})
        return updated > 0

    def pause_published_listings(self, owner_id: UUID, now: datetime) -> int:
        query = self.db.query(Listing).filter(
            Listing.owner_id == owner_id,
            Listing.listing_status == ListingStatus.PUBLISHED.value,
        )
        return self._commit_update(
            query, {"listing_status": ListingStatus.PAUSED.value, "updated_at": now}
        )

    def reactivate_paused_listings(self, owner_id: UUID, limit: int, now: datetime) -> int:
        """Republish the most recently updated paused listings, at most ``limit`` of them."""
        if limit <= 0:
            return 0
        try:
            ids = [
                row.id
                for row in self.db.query(Listing.id)
                .filter(
                    Listing.owner_id == owner_id,
                    Listing.listing_status == ListingStatus.PAUSED.value,
                )
                .order_by(Listing.updated_at.desc())
                .limit(limit)
                .all()
            ]
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise DatabaseError(str(exc)) from exc
        if not ids:
            return 0
        query = self.db.query(Listing).filter(Listing.id.in_(ids))
        return self._commit_update(
            query, {"listing_status": ListingStatus.PUBLISHED.value, "updated_at": now}
        )

    def count_active_listings(self, owner_id: UUID) -> int:
        return (
            self.db.query(Listing)
            .filter(
                Listing.owner_id == owner_id,
                Listing.listing_status.in_(ACTIVE_LISTING_STATUSES),
            )
            .count()
        )

    def get_subscription(self, subscription_id: UUID) -> Optional[Subscription]:
        return self.db.query(Subscription).filter(Subscription.id == subscription_id).first()

    def get_subscription_for_user(self, user_id: UUID) -> Optional[Subscription]:
        """Latest subscription for a seller, including canceled history rows."""
        return (
            self.db.query(Subscription)
            .filter(Subscription.user_id == user_id)
            .order_by(Subscription.created_at.desc())
            .first()
        )

    def list_subscriptions(
        self, status: Optional[SubscriptionStatus] = None, skip: int = 0, limit: int = 100
    ) -> List[Subscription]:
        query = self.db.query(Subscription)
        if status is not None:
            query = query.filter(Subscription.status == status.value)
        return query.order_by(Subscription.created_at.desc()).offset(skip).limit(limit).all()

    def recent_transactions(self, user_id: UUID, limit: int = 10) -> List[PaymentTransaction]:
        return (
            self.db.query(PaymentTransaction)
            .filter(PaymentTransaction.user_id == user_id)
            .order_by(PaymentTransaction.created_at.desc())
            .limit(limit)
            .all()
        )
