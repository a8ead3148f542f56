"""Listing expiration.

Listings whose ``expires_at`` has passed while still ``active`` are flipped
to ``expired``. The sweep is best effort and idempotent: it can run from the
request pipeline, from the background scheduler, from the admin endpoint or
from ``scripts/expire_listings.py`` without coordination between them.
"""

import asyncio
import logging
from datetime import datetime
from typing import Awaitable, Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from database.crud import CRUDProperty
from database.models import utcnow
from errors import BestEffortFailure
from models import SweepReport

logger = logging.getLogger(__name__)


class ExpirationSweep:

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def run(self, db: AsyncSession, now: Optional[datetime] = None) -> SweepReport:
        now = now or utcnow()
        report = SweepReport()

        # A rollback expires every loaded row, so only ids are carried past it
        stale_ids = [listing.id for listing in await CRUDProperty.find_stale(db, now)]
        report.matched = len(stale_ids)

        for listing_id in stale_ids:
            try:
                changed = await CRUDProperty.mark_expired(db, listing_id)
                await db.commit()
            except SQLAlchemyError as e:
                await db.rollback()
                report.failed += 1
                logger.error("Failed to expire listing", extra={"property_id": listing_id, "error": str(e)})
                continue
            if changed:
                report.expired += 1
                report.expired_ids.append(listing_id)

        if report.matched:
            logger.info("Expiration sweep finished", extra=report.to_dict())
        return report

    async def run_once(self, now: Optional[datetime] = None) -> SweepReport:
        async with self.session_factory() as db:
            return await self.run(db, now=now)

    async def run_safely(self, now: Optional[datetime] = None) -> Optional[SweepReport]:
        try:
            return await self.run_once(now=now)
        except Exception as e:
            failure = BestEffortFailure(f"Error expiring listings: {e}")
            logger.error(failure.message, exc_info=True)
            return None


def expiration_hook(sweep: ExpirationSweep) -> Callable:
    """HTTP middleware that sweeps before handing the request on."""

    async def middleware(request, call_next: Callable[..., Awaitable]):
        await sweep.run_safely()
        return await call_next(request)

    return middleware


class ExpirationScheduler:
    """Runs the sweep on a fixed interval, backing off while it keeps failing."""

    def __init__(
        self,
        sweep: ExpirationSweep,
        interval_seconds: float = 300.0,
        max_backoff_seconds: float = 3600.0,
    ):
        self.sweep = sweep
        self.interval_seconds = interval_seconds
        self.max_backoff_seconds = max(max_backoff_seconds, interval_seconds)
        self.consecutive_failures = 0
        self._task: Optional[asyncio.Task] = None

    def next_delay(self) -> float:
        if not self.consecutive_failures:
            return self.interval_seconds
        return min(self.interval_seconds * (2 ** self.consecutive_failures), self.max_backoff_seconds)

    async def tick(self) -> Optional[SweepReport]:
        report = await self.sweep.run_safely()
        if report is None or report.failed:
            self.consecutive_failures += 1
            logger.warning(
                "Expiration sweep incomplete, backing off",
                extra={"failures": self.consecutive_failures, "next_delay": self.next_delay()},
            )
        else:
            self.consecutive_failures = 0
        return report

    async def _loop(self) -> None:
        while True:
            await self.tick()
            await asyncio.sleep(self.next_delay())

    def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._loop())
            logger.info("Expiration scheduler started", extra={"interval_seconds": self.interval_seconds})

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Expiration scheduler stopped")

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()
