"""
Manage API endpoints.
Everything here is authorized by possession of the job's edit token.
"""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from jobboard.database import get_db
from jobboard.schemas.job import JobDraft, ManageResponse, ManagedJobResponse
from jobboard.schemas.payment import PurchaseEventResponse
from jobboard.services.engagement import get_job_stats
from jobboard.services.lifecycle import (
    get_job_by_token,
    get_job_state,
    list_purchase_events,
    update_job,
)

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/{token}", response_model=ManageResponse)
async def get_managed_job(
    token: str,
    db: AsyncSession = Depends(get_db)
):
    """Job, engagement stats and purchase history for the submitter."""
    job = await get_job_by_token(db, token)
    state = await get_job_state(db, job)
    stats = await get_job_stats(db, job.id)
    purchases = await list_purchase_events(db, job.id)

    return ManageResponse(
        job=ManagedJobResponse.from_job(job, state.value),
        stats=stats,
        purchases=[PurchaseEventResponse.model_validate(p) for p in purchases],
    )


@router.put("/{token}", response_model=ManagedJobResponse)
async def edit_job(
    token: str,
    draft: JobDraft,
    db: AsyncSession = Depends(get_db)
):
    """Edit a job. Tier and approval are not changed by an edit."""
    job = await update_job(db, token, draft)
    state = await get_job_state(db, job)
    return ManagedJobResponse.from_job(job, state.value)
