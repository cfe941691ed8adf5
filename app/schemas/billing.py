from __future__ import annotations

from enum import Enum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class BillingPhase(str, Enum):
    MARK_PAST_DUE = "mark_past_due"
    PAUSE_OVERDUE = "pause_overdue"
    FINAL_REMINDER = "final_reminder"
    PAYMENT_RECEIVED = "payment_received"


class BillingErrorKind(str, Enum):
    QUERY_FAILED = "query_failed"
    STATUS_UPDATE_FAILED = "status_update_failed"
    LISTING_PAUSE_FAILED = "listing_pause_failed"
    CONTACT_LOOKUP_FAILED = "contact_lookup_failed"
    EMAIL_FAILED = "email_failed"
    STALE_RECORD = "stale_record"


class BillingError(BaseModel):
    """A recoverable failure recorded during a run; the run carries on after it."""

    kind: BillingErrorKind
    phase: BillingPhase
    message: str
    subscription_id: UUID | None = Field(default=None, serialization_alias="subscriptionId")
    user_id: UUID | None = Field(default=None, serialization_alias="userId")


class BillingRunTally(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    marked_past_due: int = Field(default=0, alias="markedPastDue")
    paused: int = 0
    reminders_sent: int = Field(default=0, alias="remindersSent")
    error_details: list[BillingError] = Field(default_factory=list, alias="errorDetails")

    @property
    def errors(self) -> list[str]:
        return [error.message for error in self.error_details]

    def record(self, error: BillingError) -> None:
        self.error_details.append(error)

    def to_response(self) -> dict:
        payload = self.model_dump(mode="json", by_alias=True)
        payload["errors"] = self.errors
        return payload


class BillingRunResult(BaseModel):
    success: bool
    message: str | None = None
    error: str | None = None
    results: BillingRunTally
    timestamp: str

    def to_response(self) -> dict:
        payload: dict = {"success": self.success}
        if self.message is not None:
            payload["message"] = self.message
        if self.error is not None:
            payload["error"] = self.error
        payload["results"] = self.results.to_response()
        payload["timestamp"] = self.timestamp
        return payload


class PublishStatus(BaseModel):
    can_publish: bool
    reason: str | None = None
    current_count: int = 0
    max_count: int = 0
    remaining: int = 0


class ListingPlanOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    slug: str
    name: str
    description: str | None = None
    monthly_price: float
    max_active_listings: int
    features: list[str] = Field(default_factory=list)
