"""
Periodic sweeps: demote expired pinned ads and remove stale apply tokens.

Runs on an AsyncIOScheduler inside the API process, or once from the
command line: python -m jobboard.worker
"""
import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from jobboard import database
from jobboard.config import settings
from jobboard.services.lifecycle import demote_expired
from jobboard.services.quick_apply import cleanup_expired_apply_tokens

logger = logging.getLogger(__name__)


SWEEP_JOB_ID = "jobboard-sweeps"


@dataclass
class SweepResult:
    demoted: int
    apply_tokens_removed: int


async def run_sweeps(now: Optional[datetime] = None) -> SweepResult:
    """Run every sweep once, each in its own session."""
    now = now or datetime.utcnow()

    async with database.AsyncSessionLocal() as db:
        demoted = await demote_expired(db, now)

    async with database.AsyncSessionLocal() as db:
        removed = await cleanup_expired_apply_tokens(db, now)

    logger.info(
        f"Sweeps done: {demoted} ad(s) demoted, {removed} apply token(s) removed",
        extra={"demoted": demoted, "apply_tokens_removed": removed},
    )
    return SweepResult(demoted=demoted, apply_tokens_removed=removed)


async def _scheduled_sweeps() -> None:
    try:
        await run_sweeps()
    except Exception as e:
        # Keep the scheduler alive; the next interval retries
        logger.exception(f"Sweeps failed: {type(e).__name__}: {e}")


class SweepScheduler:
    """Owns the AsyncIOScheduler that runs the sweeps."""

    def __init__(self, interval_minutes: Optional[int] = None):
        self.interval_minutes = interval_minutes or settings.sweep_interval_minutes
        self._scheduler: Optional[AsyncIOScheduler] = None

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    def start(self) -> None:
        if self.running:
            logger.info("Sweep scheduler already running")
            return

        self._scheduler = AsyncIOScheduler(timezone="UTC")
        self._scheduler.add_job(
            _scheduled_sweeps,
            trigger=IntervalTrigger(minutes=self.interval_minutes),
            id=SWEEP_JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self._scheduler.start()
        logger.info(f"Sweep scheduler started (every {self.interval_minutes} min)")

    def stop(self) -> None:
        if self._scheduler is not None:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None
            logger.info("Sweep scheduler stopped")


sweep_scheduler = SweepScheduler()


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    asyncio.run(run_sweeps())
