"""
Pytest fixtures for testing.
"""
import json
import os

# Set test environment variables before importing app modules
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ADMIN_TOKEN", "test-admin-token")
os.environ.setdefault("EMAIL_MODE", "dev")
os.environ.setdefault("SWEEPS_ENABLED", "false")

import pytest
import pytest_asyncio
from datetime import datetime
from typing import AsyncGenerator, Optional

from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

# Import database module BEFORE app to allow override
import jobboard.database
from jobboard.database import Base
from jobboard.exceptions import UpstreamError
# Import ALL models so Base.metadata knows about all tables
from jobboard.models import JobPosting, AdTier, EditToken
from jobboard.services.email import EmailService, get_email_service
from jobboard.services.lifecycle import format_salary_range, new_token, slugify
from jobboard.services.payment_gateway import CHECKOUT_COMPLETED_EVENT, get_payment_gateway

# Now import app (after we can override database)
from jobboard.main import app as fastapi_app


# Test database URL (use in-memory SQLite for fast tests)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

ADMIN_TOKEN = os.environ["ADMIN_TOKEN"]
VALID_SIGNATURE = "valid-signature"


class FakeEmailService(EmailService):
    """Records every email instead of sending it; can be told to fail."""

    def __init__(self):
        super().__init__(mode="dev")
        self.sent = []
        self.fail = False

    async def send(self, from_email, to_email, subject, body, attachment=None, attachment_name="cv.pdf"):
        if self.fail:
            raise UpstreamError("email", "provider unavailable")
        self.sent.append({
            "from": from_email,
            "to": to_email,
            "subject": subject,
            "body": body,
            "attachment": attachment,
        })


class FakePaymentGateway:
    """
    Checkout sessions are numbered; confirmations are JSON payloads
    {"type": ..., "session_id": ...} signed with VALID_SIGNATURE.
    """

    def __init__(self):
        self.sessions = []
        self.fail = False

    async def create_checkout_session(self, tier, currency, email, edit_token):
        if self.fail:
            raise UpstreamError("stripe", "card network down")
        session_id = f"cs_test_{len(self.sessions) + 1}"
        self.sessions.append({
            "session_id": session_id,
            "tier": tier,
            "currency": currency,
            "email": email,
            "edit_token": edit_token,
        })
        return session_id

    def verify_and_parse_confirmation(self, payload, signature):
        if signature != VALID_SIGNATURE:
            raise ValueError("invalid signature")
        try:
            event = json.loads(payload)
        except json.JSONDecodeError as e:
            raise ValueError("malformed payload") from e
        if event.get("type") != CHECKOUT_COMPLETED_EVENT:
            return None
        return event["session_id"]


@pytest_asyncio.fixture
async def db() -> AsyncGenerator[AsyncSession, None]:
    """
    Create a fresh database for each test.
    Ensures cleanup happens even if test fails.
    """
    # Use StaticPool to keep single connection alive and reuse it
    # This ensures all sessions see the same in-memory database
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Create all tables FIRST
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    # THEN replace the app's engine and sessionmaker
    # This ensures get_db() and the sweeps use sessions connected to DB with tables
    original_engine = jobboard.database.engine
    original_sessionmaker = jobboard.database.AsyncSessionLocal

    jobboard.database.engine = test_engine
    jobboard.database.AsyncSessionLocal = async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False
    )

    async_session = async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False
    )
    session = async_session()

    try:
        yield session
    finally:
        try:
            await session.close()
        except Exception as e:
            print(f"Warning: Failed to close session: {e}")

        try:
            async with test_engine.begin() as conn:
                await conn.run_sync(Base.metadata.drop_all)
        except Exception as e:
            print(f"Warning: Failed to drop tables: {e}")

        try:
            await test_engine.dispose()
        except Exception as e:
            print(f"Warning: Failed to dispose engine: {e}")

        jobboard.database.engine = original_engine
        jobboard.database.AsyncSessionLocal = original_sessionmaker


@pytest.fixture
def email_service() -> FakeEmailService:
    return FakeEmailService()


@pytest.fixture
def gateway() -> FakePaymentGateway:
    return FakePaymentGateway()


@pytest_asyncio.fixture
async def async_client(
    db: AsyncSession,
    email_service: FakeEmailService,
    gateway: FakePaymentGateway,
) -> AsyncGenerator[AsyncClient, None]:
    """
    Async HTTP client for testing endpoints.

    The db fixture already replaced jobboard.database.engine with the test
    engine; email and payments go to the fakes above.
    """
    fastapi_app.dependency_overrides[get_email_service] = lambda: email_service
    fastapi_app.dependency_overrides[get_payment_gateway] = lambda: gateway

    transport = ASGITransport(app=fastapi_app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        follow_redirects=True  # Follow 307 redirects for trailing slashes
    ) as client:
        yield client

    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def admin_headers() -> dict:
    return {"X-Admin-Token": ADMIN_TOKEN}


@pytest.fixture
def draft_data() -> dict:
    """A valid job post as the submission form sends it."""
    return {
        "title": "Senior Backend Engineer",
        "company": "Acme",
        "company_email": "hr@acme.example",
        "location": "Berlin",
        "salary_min": "1500",
        "salary_max": "2000",
        "salary_currency": "$",
        "description": "Build APIs in Python.",
        "how_to_apply": "https://acme.example/careers",
    }


@pytest.fixture
def make_job(db: AsyncSession):
    """
    Factory inserting a job (and its edit token) directly.

    Returns the job; its edit token is available as job.edit_token.
    """
    counter = {"n": 0}

    async def _make_job(
        title: str = "Backend Engineer",
        company: str = "Acme",
        description: str = "Build APIs.",
        location: str = "Berlin",
        ad_tier: AdTier = AdTier.BASIC,
        approved: bool = True,
        approved_at: Optional[datetime] = None,
        created_at: Optional[datetime] = None,
        submitted_at: Optional[datetime] = None,
        how_to_apply: str = "https://acme.example/careers",
        salary_min: int = 50000,
        salary_max: int = 70000,
        salary_currency: str = "$",
        company_email: str = "hr@acme.example",
    ) -> JobPosting:
        counter["n"] += 1
        created_at = created_at or datetime.utcnow()
        if approved and approved_at is None:
            approved_at = created_at
        job = JobPosting(
            external_id=new_token(),
            slug=f"{slugify(title + ' ' + company)}-{counter['n']}",
            title=title,
            company=company,
            company_email=company_email,
            location=location,
            description=description,
            how_to_apply=how_to_apply,
            salary_min=salary_min,
            salary_max=salary_max,
            salary_currency=salary_currency,
            salary_range=format_salary_range(salary_min, salary_max, salary_currency),
            ad_tier=ad_tier,
            created_at=created_at,
            submitted_at=submitted_at,
            approved_at=approved_at,
        )
        db.add(job)
        await db.flush()
        token = new_token()
        db.add(EditToken(token=token, job_id=job.id, created_at=created_at))
        await db.commit()
        await db.refresh(job)
        job.edit_token = token
        return job

    return _make_job
