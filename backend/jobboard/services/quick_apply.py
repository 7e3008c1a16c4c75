"""
Quick apply: applicants send a CV for jobs whose how_to_apply is an email
address. The CV is held under an apply token until the applicant confirms,
then forwarded to the company.
"""
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import select, delete, update, and_, or_
from sqlalchemy.ext.asyncio import AsyncSession

from jobboard.exceptions import NotFoundError, ValidationError, DataIntegrityError
from jobboard.models.apply_token import ApplyToken, APPLY_TOKEN_TTL
from jobboard.models.job_posting import JobPosting
from jobboard.services.lifecycle import get_job_by_external_id, new_token
from jobboard.services.search import is_quick_apply

logger = logging.getLogger(__name__)


MAX_CV_SIZE = 5 * 1024 * 1024
PDF_MAGIC = b"%PDF-"


def validate_cv(cv: bytes) -> None:
    if not cv:
        raise ValidationError("cv", "file is empty")
    if len(cv) > MAX_CV_SIZE:
        raise ValidationError("cv", f"file is larger than {MAX_CV_SIZE // (1024 * 1024)}MB")
    if not cv.startswith(PDF_MAGIC):
        raise ValidationError("cv", "file is not a PDF")


async def apply_to_job(
    db: AsyncSession, external_id: str, email: str, cv: bytes, email_service
) -> ApplyToken:
    """
    Store a pending application and email the applicant a confirmation link.

    Raises:
        ValidationError: Bad CV, or the job does not take applications by email
        NotFoundError: Job unknown or not live
        UpstreamError: The confirmation email could not be sent
    """
    validate_cv(cv)
    if not email or not email.strip():
        raise ValidationError("email", "must not be blank")

    job = await get_job_by_external_id(db, external_id, approved_only=True)
    if not is_quick_apply(job.how_to_apply):
        raise ValidationError("external_id", f"job {external_id} does not accept quick apply")

    apply_token = ApplyToken(
        token=new_token(),
        job_id=job.id,
        email=email.strip(),
        cv=cv,
        created_at=datetime.utcnow(),
    )
    db.add(apply_token)
    await db.commit()
    await db.refresh(apply_token)
    logger.info(f"Saved application for job {job.id}", extra={"job_id": job.id})

    await email_service.send_apply_confirmation(
        apply_token.email, job.title, job.company, job.location, job.slug, apply_token.token
    )
    return apply_token


async def confirm_application(
    db: AsyncSession, token: str, email_service, now: Optional[datetime] = None
) -> JobPosting:
    """
    Forward a confirmed application to the company.

    The token must be unconfirmed, younger than 72 hours and its job live.
    If forwarding fails the token stays unconfirmed so the applicant can
    retry.
    """
    now = now or datetime.utcnow()
    result = await db.execute(
        select(ApplyToken, JobPosting)
        .join(JobPosting, JobPosting.id == ApplyToken.job_id)
        .where(
            and_(
                ApplyToken.token == token,
                ApplyToken.confirmed_at.is_(None),
                ApplyToken.created_at > now - APPLY_TOKEN_TTL,
                JobPosting.approved_at.is_not(None),
            )
        )
    )
    row = result.one_or_none()
    if row is None:
        raise NotFoundError("This application is no longer valid")
    apply_token, job = row

    await email_service.forward_application(
        job.how_to_apply, apply_token.email, job.title, job.company,
        job.location, job.slug, apply_token.cv,
    )

    result = await db.execute(
        update(ApplyToken)
        .where(and_(ApplyToken.token == token, ApplyToken.confirmed_at.is_(None)))
        .values(confirmed_at=now)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        await db.rollback()
        raise DataIntegrityError("confirm application", 1, result.rowcount)
    await db.commit()

    logger.info(f"Forwarded application for job {job.id}", extra={"job_id": job.id})
    return job


async def cleanup_expired_apply_tokens(db: AsyncSession, now: Optional[datetime] = None) -> int:
    """Delete apply tokens (and their CVs) once confirmed or older than 72 hours."""
    now = now or datetime.utcnow()
    result = await db.execute(
        delete(ApplyToken)
        .where(
            or_(
                ApplyToken.created_at < now - APPLY_TOKEN_TTL,
                ApplyToken.confirmed_at.is_not(None),
            )
        )
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    if result.rowcount:
        logger.info(f"Removed {result.rowcount} expired or confirmed apply token(s)")
    return result.rowcount
