"""
Jobs API endpoints.
Public listing/search, job pages, clickouts and job post submission.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from jobboard.config import settings
from jobboard.database import get_db
from jobboard.models.job_posting import AdTier
from jobboard.schemas.job import JobDraft, JobListResponse, JobResponse, JobSubmitResponse
from jobboard.services.email import EmailService, get_email_service
from jobboard.services.engagement import track_view, track_clickout
from jobboard.services.lifecycle import (
    submit_job_post,
    submit_paid_job_post,
    get_job_by_slug,
    get_job_by_external_id,
)
from jobboard.services.payment_gateway import PaymentGateway, get_payment_gateway
from jobboard.services.search import search_jobs, page_links, is_quick_apply

logger = logging.getLogger(__name__)

router = APIRouter()


def _job_response(job) -> JobResponse:
    return JobResponse.from_job(job, quick_apply=is_quick_apply(job.how_to_apply))


# ============================================================
# ENDPOINTS
# ============================================================

@router.get("/", response_model=JobListResponse)
async def list_jobs(
    location: Optional[str] = Query(default=None),
    skill: Optional[str] = Query(default=None),
    p: Optional[str] = Query(default=None, description="Page number, 1-based"),
    db: AsyncSession = Depends(get_db)
):
    """
    Search live jobs.

    Pinned ads are returned separately in pinned_jobs and never appear in
    jobs. When nothing matches, Remote jobs are returned instead and
    complementary_remote is true.
    """
    result = await search_jobs(db, location, skill, p, settings.jobs_per_page)

    return JobListResponse(
        jobs=[_job_response(job) for job in result.jobs],
        pinned_jobs=[_job_response(job) for job in result.pinned_jobs],
        total=result.total,
        page=result.page,
        page_size=result.page_size,
        pages=page_links(result.page, result.total, result.page_size),
        location_filter=location or "",
        skill_filter=skill or "",
        complementary_remote=result.used_remote_fallback,
    )


@router.post("/drafts", response_model=JobSubmitResponse, status_code=201)
async def create_job_post(
    draft: JobDraft,
    db: AsyncSession = Depends(get_db),
    email_service: EmailService = Depends(get_email_service),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    """
    Submit a job post.

    Basic ads go to the approval queue. Paid tiers are saved as drafts and
    a checkout session is opened; the ad goes live once payment confirms.
    """
    if draft.ad_tier == AdTier.BASIC:
        job, token = await submit_job_post(db, draft, email_service)
        return JobSubmitResponse(token=token, external_id=job.external_id)

    job, token, event = await submit_paid_job_post(db, draft, gateway)
    return JobSubmitResponse(token=token, external_id=job.external_id, session_id=event.session_id)


@router.get("/{slug}", response_model=JobResponse)
async def get_job(
    slug: str,
    db: AsyncSession = Depends(get_db)
):
    """Get a live job by slug and record a page view."""
    job = await get_job_by_slug(db, slug)
    await track_view(db, job.id)
    return _job_response(job)


@router.post("/{external_id}/clickout", status_code=204)
async def clickout(
    external_id: str,
    db: AsyncSession = Depends(get_db)
):
    """Record that a visitor followed the how-to-apply link."""
    job = await get_job_by_external_id(db, external_id, approved_only=True)
    await track_clickout(db, job.id)
