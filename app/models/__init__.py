"""
SQLAlchemy models for the Go Moto billing service.
"""
from __future__ import annotations

import enum
import uuid

from sqlalchemy import (
    DECIMAL,
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Text,
    Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()

JSONType = JSON().with_variant(JSONB(), "postgresql")


class SubscriptionStatus(str, enum.Enum):
    PENDING = "pending"
    ACTIVE = "active"
    PAST_DUE = "past_due"
    PAUSED = "paused"
    CANCELED = "canceled"


class ListingStatus(str, enum.Enum):
    DRAFT = "draft"
    PENDING_REVIEW = "pending_review"
    PUBLISHED = "published"
    PAUSED = "paused"
    REJECTED = "rejected"
    SOLD = "sold"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


def _in_clause(column: str, members: type[enum.Enum]) -> str:
    values = ", ".join(f"'{member.value}'" for member in members)
    return f"{column} IN ({values})"


class ListingPlan(Base):
    __tablename__ = "listing_plans"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    slug = Column(Text, nullable=False, unique=True)
    name = Column(Text, nullable=False)
    description = Column(Text)
    monthly_price = Column(DECIMAL(10, 2), nullable=False)
    max_active_listings = Column(Integer, nullable=False, default=1)
    features = Column(JSONType, default=list)
    is_active = Column(Boolean, default=True)
    display_order = Column(Integer, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Subscription(Base):
    __tablename__ = "subscriptions"
    __table_args__ = (
        CheckConstraint(_in_clause("status", SubscriptionStatus), name="subscriptions_status_check"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    plan_id = Column(Uuid(as_uuid=True), ForeignKey("listing_plans.id"), nullable=False)
    status = Column(Text, nullable=False, default=SubscriptionStatus.PENDING.value)
    current_period_start = Column(DateTime(timezone=True))
    current_period_end = Column(DateTime(timezone=True))
    next_payment_due = Column(Date)
    grace_until = Column(DateTime(timezone=True))
    cancel_at_period_end = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now())

    plan = relationship("ListingPlan", lazy="joined")


class Listing(Base):
    __tablename__ = "listings"
    __table_args__ = (
        CheckConstraint(_in_clause("listing_status", ListingStatus), name="listings_status_check"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    owner_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    title = Column(Text, nullable=False)
    listing_status = Column(Text, nullable=False, default=ListingStatus.DRAFT.value)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now())


class PaymentTransaction(Base):
    __tablename__ = "payment_transactions"
    __table_args__ = (
        CheckConstraint(_in_clause("status", PaymentStatus), name="payment_transactions_status_check"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    subscription_id = Column(Uuid(as_uuid=True), ForeignKey("subscriptions.id", ondelete="SET NULL"))
    plan_id = Column(Uuid(as_uuid=True), ForeignKey("listing_plans.id"), nullable=False)
    reference = Column(Text, nullable=False, unique=True)
    amount = Column(DECIMAL(10, 2), nullable=False)
    status = Column(Text, nullable=False, default=PaymentStatus.PENDING.value)
    provider = Column(Text, default="ikhokha")
    provider_transaction_id = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    paid_at = Column(DateTime(timezone=True))
