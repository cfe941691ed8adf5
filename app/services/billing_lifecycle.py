"""
Daily subscription billing run.

Three passes, always in this order and all against the same captured ``now``:

1. ``active`` subscriptions whose payment is due become ``past_due`` with a
   grace window, and the seller is told payment is due.
2. ``past_due`` subscriptions whose grace window has ended become ``paused``;
   the seller's published listings are paused with them.
3. Sellers who are exactly two days overdue (still inside grace) get a final
   reminder.

Per-record failures are collected on the run tally and the pass moves on.
Anything else aborts the run; writes that already landed stay in place.
"""
from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from app.config import settings
from app.core.exceptions import AppError, DatabaseError
from app.core.security import now_utc
from app.integrations.email import EmailService
from app.integrations.supabase_auth import SupabaseAuthAdmin
from app.models import SubscriptionStatus
from app.repositories.billing_repository import BillingRepository, SubscriptionRow
from app.schemas.billing import (
    BillingError,
    BillingErrorKind,
    BillingPhase,
    BillingRunResult,
    BillingRunTally,
)
from app.templates import billing_emails
from app.templates.billing_emails import RenderedEmail

logger = logging.getLogger(__name__)

COMPLETED_MESSAGE = "Billing cron job completed"
FAILED_MESSAGE = "Internal server error"


def grace_deadline(next_payment_due: date, grace_days: int) -> datetime:
    """Midnight UTC of the due date plus the grace window."""
    return datetime.combine(next_payment_due, time.min, tzinfo=timezone.utc) + timedelta(days=grace_days)


class SubscriptionLifecycleManager:
    """Advances subscriptions through active -> past_due -> paused once per run."""

    def __init__(
        self,
        db: Session,
        email_service: Optional[EmailService] = None,
        contacts: Optional[SupabaseAuthAdmin] = None,
        grace_period_days: Optional[int] = None,
        final_reminder_days_overdue: Optional[int] = None,
        billing_url: Optional[str] = None,
    ):
        self.repository = BillingRepository(db)
        self.email_service = email_service or EmailService()
        self.contacts = contacts or SupabaseAuthAdmin()
        self.grace_period_days = (
            settings.grace_period_days if grace_period_days is None else grace_period_days
        )
        self.final_reminder_days_overdue = (
            settings.final_reminder_days_overdue
            if final_reminder_days_overdue is None
            else final_reminder_days_overdue
        )
        self.billing_url = billing_url or settings.billing_url

    async def run(self, now: Optional[datetime] = None) -> BillingRunResult:
        now = now or now_utc()
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        now = now.astimezone(timezone.utc)
        tally = BillingRunTally()

        logger.info("Billing run started at %s", now.isoformat())
        try:
            await self._mark_past_due(now, tally)
            await self._pause_overdue(now, tally)
            await self._send_final_reminders(now, tally)
        except Exception:
            logger.exception("Billing run aborted")
            return BillingRunResult(
                success=False,
                error=FAILED_MESSAGE,
                results=tally,
                timestamp=now.isoformat(),
            )

        logger.info(
            "Billing run complete: marked_past_due=%s paused=%s reminders_sent=%s errors=%s",
            tally.marked_past_due,
            tally.paused,
            tally.reminders_sent,
            len(tally.error_details),
        )
        return BillingRunResult(
            success=True,
            message=COMPLETED_MESSAGE,
            results=tally,
            timestamp=now.isoformat(),
        )

    def _record(
        self,
        tally: BillingRunTally,
        kind: BillingErrorKind,
        phase: BillingPhase,
        message: str,
        row: Optional[SubscriptionRow] = None,
    ) -> None:
        logger.warning("Billing %s: %s", phase.value, message)
        tally.record(
            BillingError(
                kind=kind,
                phase=phase,
                message=message,
                subscription_id=row.id if row else None,
                user_id=row.user_id if row else None,
            )
        )

    def _candidates(
        self,
        tally: BillingRunTally,
        phase: BillingPhase,
        label: str,
        fetch: Callable[[], List[SubscriptionRow]],
    ) -> List[SubscriptionRow]:
        try:
            rows = fetch()
        except DatabaseError as exc:
            self._record(
                tally, BillingErrorKind.QUERY_FAILED, phase, f"Error fetching {label} subscriptions: {exc}"
            )
            return []
        logger.info("Billing %s: %s candidate(s)", phase.value, len(rows))
        return rows

    async def _notify(
        self,
        tally: BillingRunTally,
        phase: BillingPhase,
        row: SubscriptionRow,
        render: Callable[[Optional[str]], RenderedEmail],
        failure_label: str,
    ) -> bool:
        """
        Email the seller. Returns True only when a message went out.

        Lookup and delivery failures of any kind are recorded on the tally so
        one seller cannot stop the pass.
        """
        try:
            contact = await self.contacts.get_seller_contact(row.user_id)
        except Exception as exc:
            if not isinstance(exc, AppError):
                logger.exception("Unexpected contact lookup error for subscription %s", row.id)
            self._record(
                tally,
                BillingErrorKind.CONTACT_LOOKUP_FAILED,
                phase,
                f"Failed to look up seller for subscription {row.id}: {exc}",
                row,
            )
            return False
        if not contact.email:
            logger.info("No email on file for seller %s; skipping notice", row.user_id)
            return False

        email = render(contact.name)
        try:
            await self.email_service.send_email(contact.email, email.subject, email.html)
        except Exception as exc:
            if not isinstance(exc, AppError):
                logger.exception("Unexpected email error for subscription %s", row.id)
            logger.debug("Email failure detail: %s", exc)
            self._record(
                tally,
                BillingErrorKind.EMAIL_FAILED,
                phase,
                f"Failed to send {failure_label} for subscription {row.id}",
                row,
            )
            return False
        return True

    async def _mark_past_due(self, now: datetime, tally: BillingRunTally) -> None:
        phase = BillingPhase.MARK_PAST_DUE
        rows = self._candidates(
            tally, phase, "due", lambda: self.repository.list_due_for_payment(now.date())
        )
        for row in rows:
            grace_until = grace_deadline(row.next_payment_due, self.grace_period_days)
            try:
                moved = self.repository.transition_status(
                    row.id,
                    SubscriptionStatus.ACTIVE,
                    SubscriptionStatus.PAST_DUE,
                    now,
                    grace_until=grace_until,
                )
            except DatabaseError as exc:
                self._record(
                    tally,
                    BillingErrorKind.STATUS_UPDATE_FAILED,
                    phase,
                    f"Failed to mark subscription {row.id} as past_due: {exc}",
                    row,
                )
                continue
            if not moved:
                self._record(
                    tally,
                    BillingErrorKind.STALE_RECORD,
                    phase,
                    f"Skipped subscription {row.id}: no longer active",
                    row,
                )
                continue

            tally.marked_past_due += 1
            sent = await self._notify(
                tally,
                phase,
                row,
                lambda name: billing_emails.payment_due_email(
                    name, grace_until, self.grace_period_days, self.billing_url
                ),
                "email",
            )
            if sent:
                tally.reminders_sent += 1

    async def _pause_overdue(self, now: datetime, tally: BillingRunTally) -> None:
        phase = BillingPhase.PAUSE_OVERDUE
        rows = self._candidates(
            tally, phase, "overdue", lambda: self.repository.list_grace_expired(now)
        )
        for row in rows:
            paused = False
            try:
                paused = self.repository.transition_status(
                    row.id, SubscriptionStatus.PAST_DUE, SubscriptionStatus.PAUSED, now
                )
            except DatabaseError as exc:
                self._record(
                    tally,
                    BillingErrorKind.STATUS_UPDATE_FAILED,
                    phase,
                    f"Failed to pause subscription {row.id}: {exc}",
                    row,
                )
            else:
                if not paused:
                    # Paid or canceled since the candidate query; leave its listings alone.
                    self._record(
                        tally,
                        BillingErrorKind.STALE_RECORD,
                        phase,
                        f"Skipped subscription {row.id}: no longer past_due",
                        row,
                    )
                    continue

            try:
                hidden = self.repository.pause_published_listings(row.user_id, now)
                logger.info("Paused %s listing(s) for seller %s", hidden, row.user_id)
            except DatabaseError as exc:
                self._record(
                    tally,
                    BillingErrorKind.LISTING_PAUSE_FAILED,
                    phase,
                    f"Failed to pause listings for user {row.user_id}: {exc}",
                    row,
                )

            if not paused:
                continue
            tally.paused += 1
            await self._notify(
                tally,
                phase,
                row,
                lambda name: billing_emails.subscription_paused_email(name, self.billing_url),
                "pause email",
            )

    async def _send_final_reminders(self, now: datetime, tally: BillingRunTally) -> None:
        phase = BillingPhase.FINAL_REMINDER
        due_on = now.date() - timedelta(days=self.final_reminder_days_overdue)
        rows = self._candidates(
            tally,
            phase,
            "reminder",
            lambda: self.repository.list_in_grace_due_on(now, due_on),
        )
        for row in rows:
            sent = await self._notify(
                tally,
                phase,
                row,
                lambda name: billing_emails.final_reminder_email(name, self.billing_url),
                "reminder email",
            )
            if sent:
                tally.reminders_sent += 1
