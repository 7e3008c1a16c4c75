"""
Payments API endpoints.
Checkout for ad upgrades and the gateway confirmation webhook.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from jobboard.database import get_db
from jobboard.exceptions import ValidationError
from jobboard.models.job_posting import AdTier
from jobboard.schemas.payment import (
    CheckoutRequest,
    CheckoutResponse,
    PaymentConfirmationResponse,
)
from jobboard.services.email import EmailService, get_email_service
from jobboard.services.lifecycle import initiate_payment
from jobboard.services.payment_gateway import PaymentGateway, get_payment_gateway
from jobboard.services.payments import confirm_payment

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/checkout", response_model=CheckoutResponse, status_code=201)
async def create_checkout(
    request: CheckoutRequest,
    db: AsyncSession = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    """Open a checkout session to upgrade an existing ad."""
    if request.ad_tier == AdTier.BASIC:
        raise ValidationError("ad_tier", "BASIC ads are free")

    event = await initiate_payment(
        db, request.token, request.ad_tier, request.currency_code, request.email, gateway
    )
    return CheckoutResponse(session_id=event.session_id)


@router.post("/webhook")
async def payment_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(default=None),
    db: AsyncSession = Depends(get_db),
    email_service: EmailService = Depends(get_email_service),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    """
    Gateway confirmation webhook.

    Returns:
        200: Confirmation applied, replayed, or event type ignored
        400: Payload or signature invalid (the gateway stops retrying)
        404: Unknown session
        500: Reconciliation failed after a valid payload (the gateway retries)
    """
    payload = await request.body()
    try:
        session_id = gateway.verify_and_parse_confirmation(payload, stripe_signature or "")
    except ValueError as e:
        logger.warning(f"Rejected payment webhook: {str(e)}")
        raise HTTPException(status_code=400, detail="Invalid payload or signature")

    if session_id is None:
        return {"status": "ignored"}

    confirmation = await confirm_payment(db, session_id, email_service)
    return PaymentConfirmationResponse(
        session_id=confirmation.session_id,
        job_id=confirmation.job_id,
        previous_tier=confirmation.previous_tier,
        current_tier=confirmation.current_tier,
        upgraded=confirmation.upgraded,
        already_processed=confirmation.already_processed,
    )
