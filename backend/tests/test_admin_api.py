"""
Tests for admin endpoints.
"""
import pytest
from datetime import datetime, timedelta
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from jobboard.models import AdTier, EditToken, JobPosting


@pytest.mark.asyncio
@pytest.mark.parametrize("headers", [{}, {"X-Admin-Token": "wrong"}])
async def test_admin_requires_token(async_client: AsyncClient, make_job, headers: dict):
    job = await make_job(approved=False)

    response = await async_client.post(f"/api/admin/jobs/{job.edit_token}/approve", headers=headers)

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_approve_and_disapprove(
    async_client: AsyncClient, db: AsyncSession, make_job, admin_headers: dict, email_service
):
    job = await make_job(approved=False, submitted_at=datetime.utcnow())

    response = await async_client.post(f"/api/admin/jobs/{job.edit_token}/approve", headers=admin_headers)

    assert response.status_code == 200
    assert response.json()["state"] == "APPROVED"
    assert response.json()["approved_at"] is not None
    assert email_service.sent[0]["subject"] == "Your Job Ad is live"

    again = await async_client.post(f"/api/admin/jobs/{job.edit_token}/approve", headers=admin_headers)
    assert again.status_code == 409

    response = await async_client.post(f"/api/admin/jobs/{job.edit_token}/disapprove", headers=admin_headers)

    assert response.status_code == 200
    assert response.json()["state"] == "PENDING_APPROVAL"
    await db.refresh(job)
    assert job.approved_at is None


@pytest.mark.asyncio
async def test_delete_job(async_client: AsyncClient, db: AsyncSession, make_job, admin_headers: dict):
    job = await make_job()
    job_id = job.id

    response = await async_client.delete(f"/api/admin/jobs/{job.edit_token}", headers=admin_headers)

    assert response.status_code == 200
    assert response.json() == {"job_id": job_id, "deleted": True}
    db.expire_all()
    result = await db.execute(select(JobPosting).where(JobPosting.id == job_id))
    assert result.scalar_one_or_none() is None
    result = await db.execute(select(EditToken).where(EditToken.job_id == job_id))
    assert result.scalar_one_or_none() is None


@pytest.mark.asyncio
async def test_run_sweeps(async_client: AsyncClient, db: AsyncSession, make_job, admin_headers: dict):
    job = await make_job(
        ad_tier=AdTier.SPONSORED_PINNED_30_DAYS,
        approved_at=datetime.utcnow() - timedelta(days=45),
    )

    response = await async_client.post("/api/admin/sweeps", headers=admin_headers)

    assert response.status_code == 200
    assert response.json() == {"demoted": 1, "apply_tokens_removed": 0}
    await db.refresh(job)
    assert job.ad_tier == AdTier.BASIC
