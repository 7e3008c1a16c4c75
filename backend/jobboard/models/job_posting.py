from datetime import datetime, timedelta
from enum import IntEnum

from sqlalchemy import Column, String, Integer, Text, DateTime, Index

from jobboard.database import Base
from jobboard.database_types import IntEnumType


class AdTier(IntEnum):
    """Promotion level purchased for a job posting (stored values are fixed)."""
    BASIC = 0
    SPONSORED_BACKGROUND = 1
    SPONSORED_PINNED_30_DAYS = 2
    SPONSORED_PINNED_7_DAYS = 3
    WITH_COMPANY_LOGO = 4

    @property
    def rank(self) -> int:
        return TIER_RANK[self]

    @property
    def is_pinned(self) -> bool:
        return self in PINNED_TIERS

    def outranks(self, other: "AdTier") -> bool:
        return self.rank > other.rank


# Total order used for every upgrade decision: pinned-30d > pinned-7d > others
TIER_RANK: dict[AdTier, int] = {
    AdTier.BASIC: 0,
    AdTier.WITH_COMPANY_LOGO: 1,
    AdTier.SPONSORED_BACKGROUND: 2,
    AdTier.SPONSORED_PINNED_7_DAYS: 3,
    AdTier.SPONSORED_PINNED_30_DAYS: 4,
}

PIN_DURATIONS: dict[AdTier, timedelta] = {
    AdTier.SPONSORED_PINNED_30_DAYS: timedelta(days=30),
    AdTier.SPONSORED_PINNED_7_DAYS: timedelta(days=7),
}

PINNED_TIERS = frozenset(PIN_DURATIONS)


class JobPosting(Base):
    __tablename__ = "job"

    id = Column(Integer, primary_key=True, autoincrement=True)
    external_id = Column(String(32), nullable=False, unique=True)
    slug = Column(String(256), nullable=False, unique=True)

    # Job details
    title = Column(String(128), nullable=False)
    company = Column(String(128), nullable=False)
    company_url = Column(String(128), nullable=True)
    company_email = Column(String(128), nullable=False)
    location = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    perks = Column(Text, nullable=True)
    interview_process = Column(Text, nullable=True)
    how_to_apply = Column(String(512), nullable=False)
    company_icon_id = Column(String(255), nullable=True)

    # Salary (salary_range is denormalized for fast listing)
    salary_min = Column(Integer, nullable=False)
    salary_max = Column(Integer, nullable=False)
    salary_currency = Column(String(4), nullable=False, default="$")
    salary_range = Column(String(100), nullable=False)

    # Promotion
    ad_tier = Column(IntEnumType(AdTier), nullable=False, default=AdTier.BASIC)

    # Lifecycle timestamps (approved_at NULL means not live)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    submitted_at = Column(DateTime, nullable=True)
    approved_at = Column(DateTime, nullable=True)

    __table_args__ = (
        Index("idx_job_listing", "approved_at", "ad_tier", "created_at"),
    )

    @property
    def is_publicly_visible(self) -> bool:
        return self.approved_at is not None

    @property
    def is_pinned(self) -> bool:
        return AdTier(self.ad_tier).is_pinned
