"""
Admin API endpoints.
Every route requires the X-Admin-Token header.
"""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from jobboard.api.deps import require_admin
from jobboard.database import get_db
from jobboard.schemas.admin import DeleteResponse, SweepResponse
from jobboard.schemas.job import ManagedJobResponse
from jobboard.services.email import EmailService, get_email_service
from jobboard.services.lifecycle import (
    approve_job,
    disapprove_job,
    get_job_by_token,
    get_job_state,
    permanent_delete,
)
from jobboard.worker import run_sweeps

logger = logging.getLogger(__name__)
router = APIRouter(dependencies=[Depends(require_admin)])


@router.post("/jobs/{token}/approve", response_model=ManagedJobResponse)
async def approve(
    token: str,
    db: AsyncSession = Depends(get_db),
    email_service: EmailService = Depends(get_email_service),
):
    """
    Make a job live.

    Returns:
        200: Job approved
        404: Unknown token
        409: Job already approved
    """
    job = await approve_job(db, token, email_service)
    state = await get_job_state(db, job)
    return ManagedJobResponse.from_job(job, state.value)


@router.post("/jobs/{token}/disapprove", response_model=ManagedJobResponse)
async def disapprove(
    token: str,
    db: AsyncSession = Depends(get_db)
):
    """Take a job offline. Its tier is kept."""
    job = await disapprove_job(db, token)
    state = await get_job_state(db, job)
    return ManagedJobResponse.from_job(job, state.value)


@router.delete("/jobs/{token}", response_model=DeleteResponse)
async def delete_job(
    token: str,
    db: AsyncSession = Depends(get_db)
):
    """Permanently delete a job with its tokens and engagement events."""
    job = await get_job_by_token(db, token)
    job_id = job.id
    await permanent_delete(db, job_id)
    logger.info(f"Admin deleted job {job_id}")
    return DeleteResponse(job_id=job_id)


@router.post("/sweeps", response_model=SweepResponse)
async def sweeps():
    """Run the demotion and apply token sweeps now."""
    result = await run_sweeps()
    return SweepResponse(demoted=result.demoted, apply_tokens_removed=result.apply_tokens_removed)
