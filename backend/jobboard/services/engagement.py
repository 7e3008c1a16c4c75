"""Page view and clickout tracking."""
import logging

from sqlalchemy import select, func, and_
from sqlalchemy.ext.asyncio import AsyncSession

from jobboard.models.job_event import JobEvent, JobEventType
from jobboard.schemas.job import JobStats

logger = logging.getLogger(__name__)


async def _track(db: AsyncSession, job_id: int, event_type: JobEventType) -> None:
    db.add(JobEvent(event_type=event_type.value, job_id=job_id))
    await db.commit()


async def track_view(db: AsyncSession, job_id: int) -> None:
    await _track(db, job_id, JobEventType.PAGE_VIEW)


async def track_clickout(db: AsyncSession, job_id: int) -> None:
    await _track(db, job_id, JobEventType.CLICKOUT)


def conversion_rate(views: int, clickouts: int) -> str:
    """Clickouts per view as a percentage, empty until both are non-zero."""
    if views > 0 and clickouts > 0:
        return f"{clickouts / views * 100:.2f}"
    return ""


async def get_job_stats(db: AsyncSession, job_id: int) -> JobStats:
    result = await db.execute(
        select(JobEvent.event_type, func.count(JobEvent.id))
        .where(JobEvent.job_id == job_id)
        .group_by(JobEvent.event_type)
    )
    counts = {event_type: count for event_type, count in result.all()}

    views = counts.get(JobEventType.PAGE_VIEW.value, 0)
    clickouts = counts.get(JobEventType.CLICKOUT.value, 0)
    return JobStats(
        views=views,
        clickouts=clickouts,
        conversion_rate=conversion_rate(views, clickouts),
    )
