"""
In-process trigger for the daily billing run.

The external cron endpoint and this scheduler share one lock, so a process
never runs two billing passes at the same time. Separate processes are not
coordinated; the conditional status writes in the repository cover that case.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

from croniter import croniter

from app.config import settings
from app.core.exceptions import BillingRunInProgress
from app.database import SessionLocal
from app.schemas.billing import BillingRunResult
from app.services.billing_lifecycle import SubscriptionLifecycleManager

logger = logging.getLogger(__name__)


class BillingScheduler:
    """Sleeps until the next cron slot, then runs the lifecycle manager."""

    def __init__(self, schedule_cron: Optional[str] = None):
        self.schedule_cron = schedule_cron or settings.billing_schedule_cron
        if not croniter.is_valid(self.schedule_cron):
            raise ValueError(f"Invalid BILLING_SCHEDULE_CRON: {self.schedule_cron!r}")
        self._lock = asyncio.Lock()
        self._stop_event = asyncio.Event()
        self._task: asyncio.Task | None = None
        self.last_result: BillingRunResult | None = None

    @property
    def is_running(self) -> bool:
        return self._lock.locked()

    def next_run_after(self, moment: datetime) -> datetime:
        return croniter(self.schedule_cron, moment).get_next(datetime)

    async def run_exclusive(
        self, manager: SubscriptionLifecycleManager, now: Optional[datetime] = None
    ) -> BillingRunResult:
        if self._lock.locked():
            raise BillingRunInProgress("Billing run already in progress")
        async with self._lock:
            result = await manager.run(now)
        self.last_result = result
        return result

    def start(self) -> None:
        """Start scheduler loop as background task."""
        if self._task and not self._task.done():
            return
        self._stop_event.clear()
        self._task = asyncio.create_task(self._run_loop())
        logger.info("BillingScheduler started with schedule %s", self.schedule_cron)

    async def stop(self) -> None:
        """Stop scheduler loop and wait for completion."""
        self._stop_event.set()
        if self._task:
            await self._task
        logger.info("BillingScheduler stopped")

    async def _run_loop(self) -> None:
        while not self._stop_event.is_set():
            now = datetime.now(timezone.utc)
            delay = (self.next_run_after(now) - now).total_seconds()
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=max(delay, 0))
                return
            except asyncio.TimeoutError:
                pass

            try:
                await self._tick()
            except BillingRunInProgress:
                logger.warning("Skipping scheduled billing run; another run is in progress")
            except Exception as exc:
                logger.exception("BillingScheduler tick failed: %s", exc)

    async def _tick(self) -> None:
        db = SessionLocal()
        try:
            result = await self.run_exclusive(SubscriptionLifecycleManager(db))
            logger.info("Scheduled billing run finished: success=%s", result.success)
        finally:
            db.close()


billing_scheduler = BillingScheduler()
