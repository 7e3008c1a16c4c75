"""
Job search and ranking.

A request is sanitized once, turned into a single QuerySpec and
run through one execution path. Pinned ads are never part of the paginated
result; they are listed separately by get_pinned_jobs.
"""
import logging
import re
from dataclasses import dataclass, field
from typing import Optional, Union

from sqlalchemy import select, func, case, or_, and_, literal
from sqlalchemy.ext.asyncio import AsyncSession

from jobboard.models.job_posting import JobPosting, PINNED_TIERS

logger = logging.getLogger(__name__)


REMOTE_LOCATION = "Remote"
PAGE_LINKS_PER_PAGE = 8
PAGE_LINK_SHIFT = PAGE_LINKS_PER_PAGE // 2 + 1

QUICK_APPLY_EMAIL_RE = re.compile(
    r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+@[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)*$"
)


# ============================================================
# QUERY SPECS
# ============================================================

@dataclass(frozen=True)
class Unfiltered:
    pass


@dataclass(frozen=True)
class ByLocation:
    location: str


@dataclass(frozen=True)
class BySkill:
    terms: tuple[str, ...]


@dataclass(frozen=True)
class ByLocationAndSkill:
    location: str
    terms: tuple[str, ...]


QuerySpec = Union[Unfiltered, ByLocation, BySkill, ByLocationAndSkill]


@dataclass
class SearchResult:
    jobs: list[JobPosting]
    total: int
    page: int
    page_size: int
    used_remote_fallback: bool = False
    pinned_jobs: list[JobPosting] = field(default_factory=list)


def sanitize(value: Optional[str]) -> str:
    """
    Reduce user input to letters, digits and single spaces.

    `|` separates skill terms, so it becomes a space before everything
    else that is not alphanumeric or whitespace is dropped.
    """
    if not value:
        return ""
    value = value.replace("|", " ")
    value = "".join(ch for ch in value if ch.isalnum() or ch.isspace())
    return " ".join(value.split())


def build_query_spec(location: Optional[str], skill: Optional[str]) -> QuerySpec:
    location = sanitize(location)
    terms = tuple(sanitize(skill).split())

    if location and terms:
        return ByLocationAndSkill(location=location, terms=terms)
    if terms:
        return BySkill(terms=terms)
    if location:
        return ByLocation(location=location)
    return Unfiltered()


def parse_page(raw) -> int:
    """Anything that is not a positive integer means page 1."""
    try:
        page = int(raw)
    except (TypeError, ValueError):
        return 1
    return page if page >= 1 else 1


def page_links(page: int, total: int, page_size: int) -> list[int]:
    first_page = page - PAGE_LINK_SHIFT if page - PAGE_LINK_SHIFT > 0 else 1
    last_page = total // page_size + 1
    return list(range(first_page, last_page + 1))[:PAGE_LINKS_PER_PAGE]


def is_quick_apply(how_to_apply: Optional[str]) -> bool:
    return bool(how_to_apply) and QUICK_APPLY_EMAIL_RE.match(how_to_apply) is not None


# ============================================================
# EXECUTION
# ============================================================

def _relevance(dialect: str, terms: tuple[str, ...]):
    """
    Returns (match condition, relevance score) for the skill terms.

    PostgreSQL ranks with its full text engine; other backends count how
    many terms appear anywhere in title, company or description.
    """
    if dialect == "postgresql":
        document = (
            func.to_tsvector(JobPosting.title)
            .op("||")(func.to_tsvector(JobPosting.company))
            .op("||")(func.to_tsvector(JobPosting.description))
        )
        query = func.to_tsquery(" | ".join(terms))
        return document.op("@@")(query), func.ts_rank(document, query)

    score = literal(0)
    for term in terms:
        pattern = f"%{term}%"
        score = score + case(
            (
                or_(
                    JobPosting.title.ilike(pattern),
                    JobPosting.company.ilike(pattern),
                    JobPosting.description.ilike(pattern),
                ),
                1,
            ),
            else_=0,
        )
    return score > 0, score


async def execute_query_spec(
    db: AsyncSession, spec: QuerySpec, page: int, page_size: int
) -> tuple[list[JobPosting], int]:
    """
    Run one QuerySpec.

    The total is a window count over the filtered set, computed in the
    same query as the page.

    Returns:
        (jobs on the requested page, total matching jobs)
    """
    total = func.count().over().label("total")
    query = select(JobPosting, total).where(
        and_(
            JobPosting.approved_at.is_not(None),
            JobPosting.ad_tier.not_in(sorted(PINNED_TIERS)),
        )
    )

    if isinstance(spec, (ByLocation, ByLocationAndSkill)):
        query = query.where(JobPosting.location.ilike(f"%{spec.location}%"))

    if isinstance(spec, (BySkill, ByLocationAndSkill)):
        matches, relevance = _relevance(db.get_bind().dialect.name, spec.terms)
        query = query.where(matches).order_by(
            relevance.desc(), JobPosting.created_at.desc(), JobPosting.id.desc()
        )
    else:
        query = query.order_by(JobPosting.created_at.desc(), JobPosting.id.desc())

    query = query.offset(page * page_size - page_size).limit(page_size)

    result = await db.execute(query)
    rows = result.all()
    if not rows:
        return [], 0
    return [row[0] for row in rows], rows[0].total


async def get_pinned_jobs(db: AsyncSession) -> list[JobPosting]:
    result = await db.execute(
        select(JobPosting)
        .where(
            and_(
                JobPosting.approved_at.is_not(None),
                JobPosting.ad_tier.in_(sorted(PINNED_TIERS)),
            )
        )
        .order_by(JobPosting.created_at.desc(), JobPosting.id.desc())
    )
    return list(result.scalars().all())


async def search_jobs(
    db: AsyncSession,
    location: Optional[str],
    skill: Optional[str],
    page: int,
    page_size: int,
) -> SearchResult:
    """
    Search live, non-pinned jobs with the remote fallback.

    If the requested page is empty, the same skill is retried in Remote
    jobs, then Remote jobs without any skill. Each fallback level replaces
    the previous result entirely.
    """
    page = parse_page(page)
    spec = build_query_spec(location, skill)
    jobs, total = await execute_query_spec(db, spec, page, page_size)

    used_remote_fallback = False
    if not jobs:
        used_remote_fallback = True
        logger.info(f"No jobs for {spec}, falling back to {REMOTE_LOCATION}")
        jobs, total = await execute_query_spec(
            db, build_query_spec(REMOTE_LOCATION, skill), page, page_size
        )
        if not jobs:
            jobs, total = await execute_query_spec(
                db, build_query_spec(REMOTE_LOCATION, None), page, page_size
            )

    pinned_jobs = await get_pinned_jobs(db)

    return SearchResult(
        jobs=jobs,
        total=total,
        page=page,
        page_size=page_size,
        used_remote_fallback=used_remote_fallback,
        pinned_jobs=pinned_jobs,
    )
