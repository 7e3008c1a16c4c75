"""
Quick apply API endpoints.
"""
import logging

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from jobboard.database import get_db
from jobboard.schemas.apply import ApplyResponse, ApplyConfirmResponse
from jobboard.services.email import EmailService, get_email_service
from jobboard.services.quick_apply import MAX_CV_SIZE, apply_to_job, confirm_application

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/", response_model=ApplyResponse, status_code=202)
async def apply(
    external_id: str = Form(...),
    email: str = Form(...),
    cv: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
    email_service: EmailService = Depends(get_email_service),
):
    """
    Apply to a job with a PDF CV (max 5MB).

    The application is held until the applicant follows the emailed
    confirmation link.
    """
    # One byte over the limit is enough to reject
    content = await cv.read(MAX_CV_SIZE + 1)
    await apply_to_job(db, external_id, email, content, email_service)
    return ApplyResponse()


@router.post("/{token}/confirm", response_model=ApplyConfirmResponse)
async def confirm(
    token: str,
    db: AsyncSession = Depends(get_db),
    email_service: EmailService = Depends(get_email_service),
):
    """Forward a pending application to the company."""
    job = await confirm_application(db, token, email_service)
    return ApplyConfirmResponse(
        slug=job.slug, title=job.title, company=job.company, location=job.location
    )
