"""
Tests for the edit-token manage endpoints.
"""
import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from jobboard.models import AdTier, JobEvent, PurchaseEvent


@pytest.mark.asyncio
async def test_manage_view(async_client: AsyncClient, db: AsyncSession, make_job):
    job = await make_job(ad_tier=AdTier.SPONSORED_PINNED_7_DAYS)
    db.add_all([
        JobEvent(event_type="page_view", job_id=job.id),
        JobEvent(event_type="page_view", job_id=job.id),
        JobEvent(event_type="clickout", job_id=job.id),
        PurchaseEvent(
            session_id="cs_done", amount=9900, currency="USD",
            ad_tier=AdTier.SPONSORED_PINNED_7_DAYS, email="hr@acme.example", job_id=job.id,
        ),
    ])
    await db.commit()

    response = await async_client.get(f"/api/manage/{job.edit_token}")

    assert response.status_code == 200
    data = response.json()
    assert data["job"]["id"] == job.id
    assert data["job"]["state"] == "PROMOTED"
    assert data["job"]["is_pinned"] is True
    assert data["stats"] == {"views": 2, "clickouts": 1, "conversion_rate": "50.00"}
    assert [p["session_id"] for p in data["purchases"]] == ["cs_done"]


@pytest.mark.asyncio
async def test_manage_unknown_token(async_client: AsyncClient):
    response = await async_client.get("/api/manage/nope")

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_edit_job(async_client: AsyncClient, make_job, draft_data: dict):
    job = await make_job(approved=False)
    draft_data.update({"title": "Principal Engineer", "salary_min": "500", "salary_max": "2000"})

    response = await async_client.put(f"/api/manage/{job.edit_token}", json=draft_data)

    assert response.status_code == 200
    data = response.json()
    assert data["title"] == "Principal Engineer"
    assert data["salary_range"] == "$500 - $2k"
    assert data["slug"] == job.slug
    assert data["state"] == "DRAFT"
    assert data["approved_at"] is None


@pytest.mark.asyncio
async def test_edit_job_rejects_bad_currency(async_client: AsyncClient, make_job, draft_data: dict):
    job = await make_job()
    draft_data["salary_currency"] = "CHF"

    response = await async_client.put(f"/api/manage/{job.edit_token}", json=draft_data)

    assert response.status_code == 400
