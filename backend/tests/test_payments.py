"""
Tests for payment reconciliation.
"""
import pytest
from datetime import datetime
from sqlalchemy import select
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from jobboard.exceptions import NotFoundError
from jobboard.models import AdTier, PurchaseEvent
from jobboard.services import payments
from jobboard.services.lifecycle import apply_tier_change, initiate_payment, permanent_delete
from jobboard.services.payment_gateway import normalize_currency, price_for, AD_TIER_PRICES
from jobboard.services.payments import confirm_payment


def test_every_tier_has_a_price():
    assert set(AD_TIER_PRICES) == set(AdTier)
    assert price_for(AdTier.BASIC) == 0


@pytest.mark.parametrize("raw,expected", [
    ("usd", "USD"),
    (" gbp ", "GBP"),
    ("EUR", "EUR"),
    ("JPY", "USD"),
    ("", "USD"),
    (None, "USD"),
])
def test_normalize_currency(raw, expected):
    assert normalize_currency(raw) == expected


@pytest.mark.asyncio
async def test_confirm_payment_upgrades_approved_job_once(
    db: AsyncSession, make_job, gateway, email_service
):
    job = await make_job(ad_tier=AdTier.BASIC)
    event = await initiate_payment(
        db, job.edit_token, AdTier.SPONSORED_PINNED_30_DAYS, "USD", "buyer@acme.example", gateway
    )

    first = await confirm_payment(db, event.session_id, email_service)

    await db.refresh(job)
    assert job.ad_tier == AdTier.SPONSORED_PINNED_30_DAYS
    assert first.upgraded is True
    assert first.already_processed is False
    assert first.previous_tier == AdTier.BASIC
    assert first.current_tier == AdTier.SPONSORED_PINNED_30_DAYS
    assert len(email_service.sent) == 1
    assert email_service.sent[0]["to"] == "buyer@acme.example"
    assert job.edit_token in email_service.sent[0]["body"]

    second = await confirm_payment(db, event.session_id, email_service)

    await db.refresh(job)
    assert job.ad_tier == AdTier.SPONSORED_PINNED_30_DAYS
    assert second.already_processed is True
    assert second.upgraded is False
    assert len(email_service.sent) == 1


@pytest.mark.asyncio
async def test_confirm_payment_approves_draft(db: AsyncSession, make_job, gateway, email_service):
    job = await make_job(approved=False)
    event = await initiate_payment(
        db, job.edit_token, AdTier.SPONSORED_BACKGROUND, "EUR", "buyer@acme.example", gateway
    )

    result = await confirm_payment(db, event.session_id, email_service)

    await db.refresh(job)
    assert result.upgraded is True
    assert job.approved_at is not None
    assert job.ad_tier == AdTier.SPONSORED_BACKGROUND


@pytest.mark.asyncio
async def test_confirm_payment_marks_event_completed(db: AsyncSession, make_job, gateway):
    job = await make_job()
    event = await initiate_payment(db, job.edit_token, AdTier.WITH_COMPANY_LOGO, "USD", "a@b.example", gateway)

    await confirm_payment(db, event.session_id)

    result = await db.execute(select(PurchaseEvent).where(PurchaseEvent.session_id == event.session_id))
    stored = result.scalar_one()
    await db.refresh(stored)
    assert stored.completed_at is not None
    assert stored.is_completed


@pytest.mark.asyncio
async def test_confirm_payment_lower_tier_does_not_downgrade(
    db: AsyncSession, make_job, gateway, email_service
):
    job = await make_job(ad_tier=AdTier.SPONSORED_PINNED_30_DAYS)
    event = await initiate_payment(
        db, job.edit_token, AdTier.SPONSORED_PINNED_7_DAYS, "USD", "buyer@acme.example", gateway
    )

    result = await confirm_payment(db, event.session_id, email_service)

    await db.refresh(job)
    assert result.upgraded is False
    assert result.already_processed is False
    assert job.ad_tier == AdTier.SPONSORED_PINNED_30_DAYS


@pytest.mark.asyncio
async def test_confirm_unknown_session_is_not_found(db: AsyncSession):
    with pytest.raises(NotFoundError):
        await confirm_payment(db, "cs_unknown")


@pytest.mark.asyncio
async def test_confirm_payment_for_deleted_job(db: AsyncSession, make_job, gateway):
    job = await make_job()
    event = await initiate_payment(db, job.edit_token, AdTier.WITH_COMPANY_LOGO, "USD", "a@b.example", gateway)
    await permanent_delete(db, job.id)

    with pytest.raises(NotFoundError):
        await confirm_payment(db, event.session_id)

    # The completion was recorded before the job lookup failed
    result = await db.execute(select(PurchaseEvent).where(PurchaseEvent.session_id == event.session_id))
    stored = result.scalar_one()
    await db.refresh(stored)
    assert stored.completed_at is not None


@pytest.mark.asyncio
async def test_email_failure_does_not_undo_upgrade(db: AsyncSession, make_job, gateway, email_service):
    job = await make_job()
    event = await initiate_payment(
        db, job.edit_token, AdTier.SPONSORED_PINNED_7_DAYS, "USD", "buyer@acme.example", gateway
    )
    email_service.fail = True

    result = await confirm_payment(db, event.session_id, email_service)

    await db.refresh(job)
    assert result.upgraded is True
    assert job.ad_tier == AdTier.SPONSORED_PINNED_7_DAYS


@pytest.mark.asyncio
async def test_concurrent_purchases_keep_highest_tier(db: AsyncSession, make_job, gateway):
    job = await make_job()
    pin_30 = await initiate_payment(
        db, job.edit_token, AdTier.SPONSORED_PINNED_30_DAYS, "USD", "a@b.example", gateway
    )
    pin_7 = await initiate_payment(
        db, job.edit_token, AdTier.SPONSORED_PINNED_7_DAYS, "USD", "a@b.example", gateway
    )

    await confirm_payment(db, pin_30.session_id)
    late = await confirm_payment(db, pin_7.session_id)

    await db.refresh(job)
    assert late.upgraded is False
    assert job.ad_tier == AdTier.SPONSORED_PINNED_30_DAYS


@pytest.mark.asyncio
async def test_replay_recovers_tier_write_that_failed_after_completion(
    db: AsyncSession, make_job, gateway, email_service, monkeypatch
):
    job = await make_job()
    event = await initiate_payment(
        db, job.edit_token, AdTier.SPONSORED_PINNED_7_DAYS, "USD", "buyer@acme.example", gateway
    )
    calls = {"n": 0}

    async def failing_once(*args, **kwargs):
        calls["n"] += 1
        if calls["n"] == 1:
            raise OperationalError("UPDATE job", {}, Exception("connection lost"))
        return await apply_tier_change(*args, **kwargs)

    monkeypatch.setattr(payments, "apply_tier_change", failing_once)

    with pytest.raises(OperationalError):
        await confirm_payment(db, event.session_id, email_service)

    await db.refresh(job)
    assert job.ad_tier == AdTier.BASIC
    assert email_service.sent == []

    retry = await confirm_payment(db, event.session_id, email_service)

    await db.refresh(job)
    assert retry.already_processed is True
    assert retry.upgraded is True
    assert retry.current_tier == AdTier.SPONSORED_PINNED_7_DAYS
    assert job.ad_tier == AdTier.SPONSORED_PINNED_7_DAYS
    assert len(email_service.sent) == 1


@pytest.mark.asyncio
async def test_replay_without_change_sends_no_email(db: AsyncSession, make_job, gateway, email_service):
    job = await make_job(ad_tier=AdTier.SPONSORED_PINNED_30_DAYS)
    event = await initiate_payment(
        db, job.edit_token, AdTier.WITH_COMPANY_LOGO, "USD", "buyer@acme.example", gateway
    )

    first = await confirm_payment(db, event.session_id, email_service)
    second = await confirm_payment(db, event.session_id, email_service)

    assert first.upgraded is False
    assert second.already_processed is True
    assert second.upgraded is False
    assert email_service.sent == []
