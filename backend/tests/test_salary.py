"""
Tests for salary statistics.
"""
import pytest
from datetime import datetime
from sqlalchemy.ext.asyncio import AsyncSession

from jobboard.services.salary import get_salary_stats, monthly_trends, percentile_disc


def test_percentile_disc():
    values = [10, 20, 30, 40, 50, 60, 70, 80, 90, 100]
    assert percentile_disc(values, 0.10) == 10
    assert percentile_disc(values, 0.25) == 30
    assert percentile_disc(values, 0.50) == 50
    assert percentile_disc(values, 0.90) == 90
    assert percentile_disc([42], 0.75) == 42


def test_monthly_trends_groups_by_month():
    rows = [
        (1, 100, datetime(2026, 1, 5)),
        (1, 300, datetime(2026, 1, 20)),
        (1, 200, datetime(2026, 1, 28)),
        (1, 500, datetime(2026, 2, 1)),
    ]

    trends = monthly_trends(rows)

    assert [t.date for t in trends] == ["2026-01-01", "2026-02-01"]
    assert trends[0].p10 == 100
    assert trends[0].p50 == 200
    assert trends[0].p90 == 300
    assert trends[1].p50 == 500


@pytest.mark.asyncio
async def test_salary_stats_for_location(db: AsyncSession, make_job):
    await make_job(location="Berlin", salary_min=50000, salary_max=70000, salary_currency="€")
    await make_job(location="Berlin", salary_min=60000, salary_max=90000, salary_currency="€")
    await make_job(location="Berlin", salary_min=60000, salary_max=90000, salary_currency="$")
    await make_job(location="Berlin", salary_min=1, salary_max=2, salary_currency="€", approved=False)

    stats = await get_salary_stats(db, "berlin", "€")

    assert stats.complementary_remote is False
    assert sorted((p.min, p.max) for p in stats.data) == [(50000, 70000), (60000, 90000)]
    assert len(stats.trends) == 1


@pytest.mark.asyncio
async def test_salary_stats_fall_back_to_remote_dollars(db: AsyncSession, make_job):
    await make_job(location="Remote", salary_min=80000, salary_max=120000, salary_currency="$")

    stats = await get_salary_stats(db, "Tokyo", "¥")

    assert stats.complementary_remote is True
    assert stats.location == "Remote"
    assert stats.currency == "$"
    assert [(p.min, p.max) for p in stats.data] == [(80000, 120000)]
