"""
Payment reconciliation.

Matches a gateway confirmation to its PurchaseEvent and applies the
purchased tier exactly once. Steps 1-4 are fail-fast; the submitter email
is best effort and never reverses what was committed.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import select, update, and_
from sqlalchemy.ext.asyncio import AsyncSession

from jobboard.exceptions import NotFoundError, DataIntegrityError, UpstreamError
from jobboard.models.job_posting import JobPosting, AdTier
from jobboard.models.purchase_event import PurchaseEvent
from jobboard.services.lifecycle import apply_tier_change, token_for_job

logger = logging.getLogger(__name__)


@dataclass
class PaymentConfirmation:
    session_id: str
    job_id: Optional[int]
    previous_tier: Optional[AdTier]
    current_tier: Optional[AdTier]
    upgraded: bool
    already_processed: bool


async def get_purchase_event(db: AsyncSession, session_id: str) -> PurchaseEvent:
    result = await db.execute(
        select(PurchaseEvent)
        .where(PurchaseEvent.session_id == session_id)
        .execution_options(populate_existing=True)
    )
    event = result.scalar_one_or_none()
    if not event:
        raise NotFoundError(f"No purchase event for session {session_id}")
    return event


async def _mark_completed(db: AsyncSession, session_id: str, now: datetime) -> None:
    result = await db.execute(
        update(PurchaseEvent)
        .where(
            and_(
                PurchaseEvent.session_id == session_id,
                PurchaseEvent.completed_at.is_(None),
            )
        )
        .values(completed_at=now)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        await db.rollback()
        raise DataIntegrityError("mark purchase completed", 1, result.rowcount)
    await db.commit()


async def _job_for_event(db: AsyncSession, event: PurchaseEvent) -> Optional[JobPosting]:
    if event.job_id is None:
        return None
    result = await db.execute(
        select(JobPosting)
        .where(JobPosting.id == event.job_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def confirm_payment(
    db: AsyncSession, session_id: str, email_service=None
) -> PaymentConfirmation:
    """
    Reconcile one confirmed checkout session.

    A replayed session is not marked completed again, but the tier change is
    retried: a run that committed completion and then failed before the tier
    write is recovered by the gateway's next delivery. The rank
    compare-and-swap keeps this a no-op once the tier is in place, and the
    submitter is only emailed when the tier actually changed.

    Raises:
        NotFoundError: Unknown session, or its job no longer exists
        DataIntegrityError: Completion did not affect exactly one row
    """
    log_data = {"session_id": session_id}

    # Step 1: purchase event
    event = await get_purchase_event(db, session_id)
    already_processed = event.completed_at is not None

    # Step 2: completion is committed before any tier write
    now = datetime.utcnow()
    if already_processed:
        logger.info(f"Session {session_id} already processed, re-checking tier", extra=log_data)
    else:
        try:
            await _mark_completed(db, session_id, now)
        except DataIntegrityError as e:
            logger.error(f"Payment confirmation aborted: {e.message}", extra=log_data)
            raise
        await db.refresh(event)

    # Step 3: job
    job = await _job_for_event(db, event)
    if not job:
        if already_processed:
            return PaymentConfirmation(
                session_id=session_id,
                job_id=event.job_id,
                previous_tier=None,
                current_tier=None,
                upgraded=False,
                already_processed=True,
            )
        logger.error(
            f"Session {session_id} completed but its job no longer exists",
            extra=log_data,
        )
        raise NotFoundError(f"No job for session {session_id}")

    log_data["job_id"] = job.id

    # Step 4: tier upgrade (compare-and-swap on rank)
    previous_tier = AdTier(job.ad_tier)
    upgraded = await apply_tier_change(db, job, AdTier(event.ad_tier), now=now)
    current_tier = AdTier(job.ad_tier)
    logger.info(
        f"Payment confirmed for job {job.id}: {previous_tier.name} → {current_tier.name}",
        extra=log_data,
    )

    # Step 5: best effort notification
    if upgraded and email_service is not None:
        try:
            token = await token_for_job(db, job.id)
            await email_service.send_upgrade_notice(event.email, current_tier.name, token)
        except UpstreamError as e:
            logger.error(
                f"Unable to send upgrade email for session {session_id}: {e.message}",
                extra=log_data,
            )

    return PaymentConfirmation(
        session_id=session_id,
        job_id=job.id,
        previous_tier=previous_tier,
        current_tier=current_tier,
        upgraded=upgraded,
        already_processed=already_processed,
    )
