"""
Ad lifecycle state machine for job postings.
ALL approval, tier and deletion changes to a job go through this module.

A job's state is derived from its row (approved_at, ad_tier, submitted_at)
plus whether a purchase is still open; it is never stored.
"""
import logging
import re
import unicodedata
from datetime import datetime
from enum import Enum
from typing import Dict, Optional
from uuid import uuid4

from sqlalchemy import select, update, delete, exists, and_
from sqlalchemy.ext.asyncio import AsyncSession

from jobboard.exceptions import NotFoundError, ValidationError, UpstreamError
from jobboard.models.apply_token import ApplyToken
from jobboard.models.edit_token import EditToken
from jobboard.models.job_event import JobEvent
from jobboard.models.job_posting import JobPosting, AdTier, PIN_DURATIONS
from jobboard.models.purchase_event import PurchaseEvent
from jobboard.schemas.job import JobDraft
from jobboard.services.payment_gateway import (
    PaymentGateway,
    normalize_currency,
    price_for,
    description_for,
)

logger = logging.getLogger(__name__)


class AdState(str, Enum):
    DRAFT = "DRAFT"
    PAYMENT_PENDING = "PAYMENT_PENDING"
    PENDING_APPROVAL = "PENDING_APPROVAL"
    APPROVED = "APPROVED"
    PROMOTED = "PROMOTED"


ALLOWED_TRANSITIONS: Dict[AdState, list[AdState]] = {
    AdState.DRAFT: [
        AdState.PENDING_APPROVAL,
        AdState.PAYMENT_PENDING,
        AdState.APPROVED,
        AdState.PROMOTED,
    ],
    AdState.PAYMENT_PENDING: [
        AdState.PAYMENT_PENDING,  # another checkout opened before the first completed
        AdState.APPROVED,
        AdState.PROMOTED,
    ],
    AdState.PENDING_APPROVAL: [
        AdState.PAYMENT_PENDING,
        AdState.APPROVED,
        AdState.PROMOTED,
    ],
    AdState.APPROVED: [
        AdState.APPROVED,  # upsell to a non-pinned tier
        AdState.PROMOTED,
        AdState.PENDING_APPROVAL,  # disapproved
        AdState.PAYMENT_PENDING,  # disapproved with a checkout still open
        AdState.DRAFT,  # disapproved before ever being submitted
    ],
    AdState.PROMOTED: [
        AdState.PROMOTED,  # 7 day pin upgraded to 30 days
        AdState.APPROVED,  # demoted
        AdState.PENDING_APPROVAL,
        AdState.PAYMENT_PENDING,
        AdState.DRAFT,
    ],
}


class InvalidTransitionError(Exception):
    """Raised when an invalid state transition is attempted"""
    pass


RUPEE = "₹"
SALARY_CURRENCIES = ("$", "€", "£", RUPEE)


def format_salary_range(salary_min: int, salary_max: int, currency: str) -> str:
    """
    Build the denormalized salary display string.

    Rupee amounts above 100,000 are shown in lakhs ("3L"), every other
    currency shows amounts above 1,000 in thousands ("2k"). Division
    truncates.
    """
    def display(value: int) -> str:
        if currency == RUPEE:
            return f"{value // 100000}L" if value > 100000 else str(value)
        return f"{value // 1000}k" if value > 1000 else str(value)

    return f"{currency}{display(salary_min)} - {currency}{display(salary_max)}"


def slugify(value: str) -> str:
    normalized = unicodedata.normalize("NFKD", value).encode("ascii", "ignore").decode("ascii")
    normalized = normalized.lower()
    normalized = re.sub(r"[^a-z0-9]+", "-", normalized)
    return normalized.strip("-")


def new_token() -> str:
    return uuid4().hex


def derive_state(job: JobPosting, payment_pending: bool = False) -> AdState:
    if job.approved_at is not None:
        return AdState.PROMOTED if job.is_pinned else AdState.APPROVED
    if payment_pending:
        return AdState.PAYMENT_PENDING
    if job.submitted_at is not None:
        return AdState.PENDING_APPROVAL
    return AdState.DRAFT


async def get_job_state(db: AsyncSession, job: JobPosting) -> AdState:
    result = await db.execute(
        select(
            exists().where(
                and_(
                    PurchaseEvent.job_id == job.id,
                    PurchaseEvent.completed_at.is_(None),
                )
            )
        )
    )
    return derive_state(job, payment_pending=bool(result.scalar()))


def can_transition(from_state: AdState, to_state: AdState) -> bool:
    """Check if a transition is allowed without modifying the database"""
    return to_state in ALLOWED_TRANSITIONS.get(from_state, [])


def _check_transition(job_id: int, from_state: AdState, to_state: AdState) -> None:
    if not can_transition(from_state, to_state):
        raise InvalidTransitionError(
            f"Invalid transition for job {job_id} from {from_state.value} to {to_state.value}"
        )


def _log_transition(job: JobPosting, from_state: AdState, to_state: AdState, **extra) -> None:
    log_data = {
        "job_id": job.id,
        "from_state": from_state.value,
        "to_state": to_state.value,
        "ad_tier": AdTier(job.ad_tier).name,
    }
    log_data.update(extra)
    logger.info(f"Job state transition: {from_state.value} → {to_state.value}", extra=log_data)


# ============================================================
# LOOKUPS
# ============================================================

async def get_job_by_token(db: AsyncSession, token: str) -> JobPosting:
    result = await db.execute(
        select(JobPosting)
        .join(EditToken, EditToken.job_id == JobPosting.id)
        .where(EditToken.token == token)
    )
    job = result.scalar_one_or_none()
    if not job:
        raise NotFoundError(f"No job found for edit token {token}")
    return job


async def token_for_job(db: AsyncSession, job_id: int) -> Optional[str]:
    result = await db.execute(
        select(EditToken.token)
        .where(EditToken.job_id == job_id)
        .order_by(EditToken.created_at.asc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def get_job_by_slug(db: AsyncSession, slug: str) -> JobPosting:
    """Only live jobs are reachable by slug."""
    result = await db.execute(
        select(JobPosting).where(
            and_(JobPosting.slug == slug, JobPosting.approved_at.is_not(None))
        )
    )
    job = result.scalar_one_or_none()
    if not job:
        raise NotFoundError(f"Job {slug} not found")
    return job


async def get_job_by_external_id(
    db: AsyncSession, external_id: str, approved_only: bool = False
) -> JobPosting:
    query = select(JobPosting).where(JobPosting.external_id == external_id)
    if approved_only:
        query = query.where(JobPosting.approved_at.is_not(None))
    result = await db.execute(query)
    job = result.scalar_one_or_none()
    if not job:
        raise NotFoundError(f"Job {external_id} not found")
    return job


async def list_purchase_events(db: AsyncSession, job_id: int) -> list[PurchaseEvent]:
    result = await db.execute(
        select(PurchaseEvent)
        .where(PurchaseEvent.job_id == job_id)
        .order_by(PurchaseEvent.created_at.desc())
    )
    return list(result.scalars().all())


# ============================================================
# DRAFTS
# ============================================================

REQUIRED_TEXT_FIELDS = ("title", "company", "company_email", "location", "description", "how_to_apply")


def _parse_salary(field: str, raw: str) -> int:
    try:
        value = int(raw.strip())
    except (ValueError, AttributeError):
        raise ValidationError(field, f"'{raw}' is not a whole number")
    if value < 0:
        raise ValidationError(field, "must not be negative")
    return value


def validate_draft(draft: JobDraft) -> tuple[int, int]:
    """
    Check a draft before anything is written.

    Returns:
        (salary_min, salary_max) as integers

    Raises:
        ValidationError: On blank required text, malformed salary or unknown currency
    """
    for field in REQUIRED_TEXT_FIELDS:
        if not getattr(draft, field).strip():
            raise ValidationError(field, "must not be blank")

    if draft.salary_currency not in SALARY_CURRENCIES:
        raise ValidationError(
            "salary_currency",
            f"'{draft.salary_currency}' is not one of {', '.join(SALARY_CURRENCIES)}",
        )

    salary_min = _parse_salary("salary_min", draft.salary_min)
    salary_max = _parse_salary("salary_max", draft.salary_max)
    if salary_min > salary_max:
        raise ValidationError("salary_min", "must not be greater than salary_max")

    return salary_min, salary_max


async def _unique_slug(db: AsyncSession, base: str) -> str:
    candidate = base
    suffix = 1
    while True:
        result = await db.execute(select(exists().where(JobPosting.slug == candidate)))
        if not result.scalar():
            return candidate
        suffix += 1
        candidate = f"{base}-{suffix}"


async def save_draft(db: AsyncSession, draft: JobDraft) -> tuple[JobPosting, str]:
    """
    Create a job posting in DRAFT state together with its edit token.

    Drafts always start at BASIC. The requested tier only reaches the job
    through a confirmed purchase (see apply_tier_change).

    Both rows are committed in one transaction, so a failed save never
    leaves an orphaned token behind.

    Returns:
        (job, edit_token)
    """
    salary_min, salary_max = validate_draft(draft)

    created_at = datetime.utcnow()
    slug = await _unique_slug(
        db, slugify(f"{draft.title} {draft.company} {int(created_at.timestamp())}")
    )

    job = JobPosting(
        external_id=new_token(),
        slug=slug,
        title=draft.title.strip(),
        company=draft.company.strip(),
        company_url=draft.company_url,
        company_email=draft.company_email.strip(),
        location=draft.location.strip(),
        description=draft.description,
        perks=draft.perks,
        interview_process=draft.interview_process,
        how_to_apply=draft.how_to_apply.strip(),
        company_icon_id=draft.company_icon_id,
        salary_min=salary_min,
        salary_max=salary_max,
        salary_currency=draft.salary_currency,
        salary_range=format_salary_range(salary_min, salary_max, draft.salary_currency),
        ad_tier=AdTier.BASIC,
        created_at=created_at,
    )
    db.add(job)

    try:
        await db.flush()
        token = new_token()
        db.add(EditToken(token=token, job_id=job.id, created_at=created_at))
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    await db.refresh(job)
    logger.info(f"Saved draft job {job.id}: {job.title} at {job.company}", extra={"job_id": job.id})
    return job, token


async def submit_job_post(
    db: AsyncSession, draft: JobDraft, email_service=None
) -> tuple[JobPosting, str]:
    """
    Save a draft and put it in the admin approval queue (DRAFT → PENDING_APPROVAL).

    The admin notification is best effort.
    """
    job, token = await save_draft(db, draft)

    _check_transition(job.id, AdState.DRAFT, AdState.PENDING_APPROVAL)
    job.submitted_at = datetime.utcnow()
    await db.commit()
    await db.refresh(job)
    _log_transition(job, AdState.DRAFT, AdState.PENDING_APPROVAL)

    if email_service is not None:
        try:
            await email_service.send_new_job_notice(job.company_email, token)
        except UpstreamError as e:
            logger.error(f"Unable to notify admin about job {job.id}: {e.message}")

    return job, token


async def submit_paid_job_post(
    db: AsyncSession, draft: JobDraft, gateway: PaymentGateway
) -> tuple[JobPosting, str, PurchaseEvent]:
    """
    Save a draft and open checkout for the requested tier (DRAFT → PAYMENT_PENDING).

    If the gateway cannot open a session the draft and its token are
    deleted again before the error propagates.
    """
    job, token = await save_draft(db, draft)
    try:
        event = await initiate_payment(
            db, token, draft.ad_tier, draft.currency_code, draft.company_email, gateway
        )
    except UpstreamError:
        logger.error(f"Checkout failed for draft job {job.id}, discarding it", extra={"job_id": job.id})
        await permanent_delete(db, job.id)
        raise
    return job, token, event


async def update_job(db: AsyncSession, token: str, draft: JobDraft) -> JobPosting:
    """
    Edit a job through its edit token. Slug, tier and approval are untouched.
    """
    salary_min, salary_max = validate_draft(draft)
    job = await get_job_by_token(db, token)

    job.title = draft.title.strip()
    job.company = draft.company.strip()
    job.company_url = draft.company_url
    job.company_email = draft.company_email.strip()
    job.location = draft.location.strip()
    job.description = draft.description
    job.perks = draft.perks
    job.interview_process = draft.interview_process
    job.how_to_apply = draft.how_to_apply.strip()
    job.company_icon_id = draft.company_icon_id
    job.salary_min = salary_min
    job.salary_max = salary_max
    job.salary_currency = draft.salary_currency
    job.salary_range = format_salary_range(salary_min, salary_max, draft.salary_currency)

    await db.commit()
    await db.refresh(job)
    logger.info(f"Updated job {job.id}", extra={"job_id": job.id})
    return job


# ============================================================
# PAYMENTS & TIERS
# ============================================================

async def initiate_payment(
    db: AsyncSession,
    token: str,
    tier: AdTier,
    currency_code: Optional[str],
    email: str,
    gateway: PaymentGateway,
) -> PurchaseEvent:
    """
    Open a checkout session and record the pending purchase.

    The job itself is not modified; the tier only changes once the
    gateway confirms the payment.
    """
    job = await get_job_by_token(db, token)
    from_state = await get_job_state(db, job)
    currency = normalize_currency(currency_code)

    session_id = await gateway.create_checkout_session(tier, currency, email, token)

    event = PurchaseEvent(
        session_id=session_id,
        amount=price_for(tier),
        currency=currency,
        description=description_for(tier),
        ad_tier=tier,
        email=email,
        job_id=job.id,
    )
    db.add(event)
    await db.commit()
    await db.refresh(event)

    to_state = derive_state(job, payment_pending=True)
    _log_transition(job, from_state, to_state, session_id=session_id, target_tier=tier.name)
    return event


async def apply_tier_change(
    db: AsyncSession, job: JobPosting, tier: AdTier, now: Optional[datetime] = None
) -> bool:
    """
    Apply a purchased tier to a job.

    The tier is written with a compare-and-swap on rank: the row only
    changes if its current tier ranks strictly below the new one, so a
    replayed or late confirmation can neither downgrade nor re-apply.
    A job that is not live yet is approved at the same time.

    Returns:
        True if the tier changed
    """
    now = now or datetime.utcnow()
    from_state = derive_state(job)
    previous_tier = AdTier(job.ad_tier)

    lower_tiers = [t for t in AdTier if tier.outranks(t)]
    upgraded = False
    if lower_tiers:
        result = await db.execute(
            update(JobPosting)
            .where(and_(JobPosting.id == job.id, JobPosting.ad_tier.in_(lower_tiers)))
            .values(ad_tier=tier)
            .execution_options(synchronize_session=False)
        )
        upgraded = result.rowcount == 1

    result = await db.execute(
        update(JobPosting)
        .where(and_(JobPosting.id == job.id, JobPosting.approved_at.is_(None)))
        .values(approved_at=now)
        .execution_options(synchronize_session=False)
    )
    approved = result.rowcount == 1

    await db.commit()
    await db.refresh(job)

    to_state = derive_state(job)
    if upgraded or approved:
        _check_transition(job.id, from_state, to_state)
        _log_transition(
            job, from_state, to_state,
            previous_tier=previous_tier.name, upgraded=upgraded, approved=approved,
        )
    else:
        logger.info(
            f"Tier {tier.name} not applied to job {job.id}: already at {previous_tier.name}",
            extra={"job_id": job.id},
        )
    return upgraded


# ============================================================
# ADMIN ACTIONS
# ============================================================

async def approve_job(db: AsyncSession, token: str, email_service=None) -> JobPosting:
    """Make a job live. Approval notification is best effort."""
    job = await get_job_by_token(db, token)
    from_state = await get_job_state(db, job)
    to_state = AdState.PROMOTED if job.is_pinned else AdState.APPROVED
    if from_state in (AdState.APPROVED, AdState.PROMOTED):
        raise InvalidTransitionError(f"Job {job.id} is already approved")
    _check_transition(job.id, from_state, to_state)

    job.approved_at = datetime.utcnow()
    await db.commit()
    await db.refresh(job)
    _log_transition(job, from_state, to_state)

    if email_service is not None:
        try:
            await email_service.send_approval_notice(job.company_email, token)
        except UpstreamError as e:
            logger.error(f"Unable to send approval email for job {job.id}: {e.message}")

    return job


async def disapprove_job(db: AsyncSession, token: str) -> JobPosting:
    """Take a job offline. The purchased tier is kept."""
    job = await get_job_by_token(db, token)
    from_state = derive_state(job)
    if from_state not in (AdState.APPROVED, AdState.PROMOTED):
        raise InvalidTransitionError(f"Job {job.id} is not approved")

    job.approved_at = None
    await db.commit()
    await db.refresh(job)

    to_state = await get_job_state(db, job)
    _check_transition(job.id, from_state, to_state)
    _log_transition(job, from_state, to_state)
    return job


async def demote_expired(db: AsyncSession, now: Optional[datetime] = None) -> int:
    """
    Reset timed-pinned jobs whose pin window has elapsed back to BASIC.

    Runs as one batch UPDATE per pinned tier.

    Returns:
        Number of jobs demoted
    """
    now = now or datetime.utcnow()
    demoted = 0
    for tier, duration in PIN_DURATIONS.items():
        result = await db.execute(
            update(JobPosting)
            .where(
                and_(
                    JobPosting.ad_tier == tier,
                    JobPosting.approved_at <= now - duration,
                )
            )
            .values(ad_tier=AdTier.BASIC)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount:
            logger.info(f"Demoted {result.rowcount} {tier.name} job ad(s) to BASIC")
        demoted += result.rowcount
    await db.commit()
    return demoted


async def permanent_delete(db: AsyncSession, job_id: int) -> None:
    """
    Irreversibly delete a job and everything that references it.

    Dependents go first to satisfy foreign keys. Purchase events are kept
    for accounting and only detached from the job.
    """
    result = await db.execute(select(JobPosting.id).where(JobPosting.id == job_id))
    if result.scalar_one_or_none() is None:
        raise NotFoundError(f"Job {job_id} not found")

    try:
        await db.execute(delete(EditToken).where(EditToken.job_id == job_id))
        await db.execute(delete(ApplyToken).where(ApplyToken.job_id == job_id))
        await db.execute(delete(JobEvent).where(JobEvent.job_id == job_id))
        await db.execute(
            update(PurchaseEvent)
            .where(PurchaseEvent.job_id == job_id)
            .values(job_id=None)
            .execution_options(synchronize_session=False)
        )
        await db.execute(delete(JobPosting).where(JobPosting.id == job_id))
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.warning(f"Permanently deleted job {job_id}", extra={"job_id": job_id})
