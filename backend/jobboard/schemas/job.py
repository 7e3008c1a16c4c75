"""Job-related Pydantic schemas."""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict

from jobboard.models.job_posting import AdTier
from jobboard.schemas.payment import PurchaseEventResponse


class JobDraft(BaseModel):
    """Job post as submitted (salary values arrive as raw form strings)."""
    title: str
    company: str
    company_email: str
    location: str
    salary_min: str
    salary_max: str
    salary_currency: str = "$"
    description: str
    how_to_apply: str
    company_url: Optional[str] = None
    perks: Optional[str] = None
    interview_process: Optional[str] = None
    company_icon_id: Optional[str] = None
    ad_tier: AdTier = AdTier.BASIC
    currency_code: str = "USD"  # currency the ad is paid in


class JobResponse(BaseModel):
    """Public view of a live job posting."""
    external_id: str
    slug: str
    title: str
    company: str
    company_url: Optional[str] = None
    location: str
    salary_range: str
    salary_min: int
    salary_max: int
    salary_currency: str
    description: str
    perks: Optional[str] = None
    interview_process: Optional[str] = None
    how_to_apply: str
    company_icon_id: Optional[str] = None
    ad_tier: AdTier
    created_at: datetime
    is_quick_apply: bool = False

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def from_job(cls, job, quick_apply: bool = False) -> "JobResponse":
        return cls.model_validate(job).model_copy(update={"is_quick_apply": quick_apply})


class JobListResponse(BaseModel):
    """One listing page: pinned ads above the paginated search results."""
    jobs: list[JobResponse]
    pinned_jobs: list[JobResponse]
    total: int
    page: int
    page_size: int
    pages: list[int]
    location_filter: str
    skill_filter: str
    complementary_remote: bool


class JobSubmitResponse(BaseModel):
    token: str
    external_id: str
    session_id: Optional[str] = None


class JobStats(BaseModel):
    views: int
    clickouts: int
    conversion_rate: str


class ManagedJobResponse(BaseModel):
    """Submitter/admin view of a job, reached through its edit token."""
    id: int
    external_id: str
    slug: str
    title: str
    company: str
    company_email: str
    company_url: Optional[str] = None
    location: str
    salary_min: int
    salary_max: int
    salary_currency: str
    salary_range: str
    description: str
    perks: Optional[str] = None
    interview_process: Optional[str] = None
    how_to_apply: str
    company_icon_id: Optional[str] = None
    ad_tier: AdTier
    created_at: datetime
    submitted_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    state: str
    is_pinned: bool

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def from_job(cls, job, state: str) -> "ManagedJobResponse":
        data = {name: getattr(job, name) for name in cls.model_fields if name != "state"}
        return cls(**data, state=state)


class ManageResponse(BaseModel):
    job: ManagedJobResponse
    stats: JobStats
    purchases: list[PurchaseEventResponse]
