"""Salary statistics over live jobs, by location and salary currency."""
import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession

from jobboard.models.job_posting import JobPosting
from jobboard.services.search import REMOTE_LOCATION, sanitize

logger = logging.getLogger(__name__)


DEFAULT_SALARY_CURRENCY = "$"
PERCENTILES = (0.10, 0.25, 0.50, 0.75, 0.90)


@dataclass
class SalaryDataPoint:
    min: int
    max: int


@dataclass
class SalaryTrendDataPoint:
    date: str
    p10: int
    p25: int
    p50: int
    p75: int
    p90: int


@dataclass
class SalaryStats:
    location: str
    currency: str
    complementary_remote: bool
    data: list[SalaryDataPoint] = field(default_factory=list)
    trends: list[SalaryTrendDataPoint] = field(default_factory=list)


def percentile_disc(sorted_values: list[int], fraction: float) -> int:
    """First value whose cumulative share reaches the fraction."""
    index = max(math.ceil(fraction * len(sorted_values)) - 1, 0)
    return sorted_values[index]


async def _salary_rows(
    db: AsyncSession, location: str, currency: str
) -> list[tuple[int, int, datetime]]:
    result = await db.execute(
        select(JobPosting.salary_min, JobPosting.salary_max, JobPosting.created_at)
        .where(
            and_(
                JobPosting.approved_at.is_not(None),
                JobPosting.salary_currency == currency,
                JobPosting.location.ilike(f"%{location}%"),
            )
        )
        .order_by(JobPosting.created_at.asc())
    )
    return [tuple(row) for row in result.all()]


def monthly_trends(rows: list[tuple[int, int, datetime]]) -> list[SalaryTrendDataPoint]:
    """Discrete percentiles of salary_max per calendar month, oldest first."""
    by_month: dict[str, list[int]] = {}
    for _, salary_max, created_at in rows:
        month = created_at.strftime("%Y-%m-01")
        by_month.setdefault(month, []).append(salary_max)

    trends = []
    for month in sorted(by_month):
        values = sorted(by_month[month])
        p10, p25, p50, p75, p90 = (percentile_disc(values, p) for p in PERCENTILES)
        trends.append(
            SalaryTrendDataPoint(date=month, p10=p10, p25=p25, p50=p50, p75=p75, p90=p90)
        )
    return trends


async def get_salary_stats(
    db: AsyncSession, location: Optional[str], currency: Optional[str] = None
) -> SalaryStats:
    """
    Salary data points and monthly trend for a location.

    Falls back to Remote jobs paid in dollars when the location has no data.
    """
    location = sanitize(location) or REMOTE_LOCATION
    currency = currency or DEFAULT_SALARY_CURRENCY

    rows = await _salary_rows(db, location, currency)
    complementary_remote = False
    if not rows:
        logger.info(f"No salary data for {location} in {currency}, using {REMOTE_LOCATION}")
        complementary_remote = True
        location, currency = REMOTE_LOCATION, DEFAULT_SALARY_CURRENCY
        rows = await _salary_rows(db, location, currency)

    return SalaryStats(
        location=location,
        currency=currency,
        complementary_remote=complementary_remote,
        data=[SalaryDataPoint(min=row[0], max=row[1]) for row in rows],
        trends=monthly_trends(rows),
    )
