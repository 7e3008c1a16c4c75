"""
Payment gateway collaborator.

The core only needs two things from the gateway: open a checkout session for
an ad tier, and turn a signed confirmation payload into a session id.
Signature verification is the gateway's job.
"""
import asyncio
import logging
from typing import Optional, Protocol

from jobboard.config import settings
from jobboard.exceptions import UpstreamError
from jobboard.models.job_posting import AdTier

logger = logging.getLogger(__name__)


SUPPORTED_CURRENCIES = ("USD", "EUR", "GBP")
DEFAULT_CURRENCY = "USD"

# Prices in minor units, same figure for every supported currency
AD_TIER_PRICES: dict[AdTier, int] = {
    AdTier.BASIC: 0,
    AdTier.WITH_COMPANY_LOGO: 4900,
    AdTier.SPONSORED_BACKGROUND: 7900,
    AdTier.SPONSORED_PINNED_7_DAYS: 9900,
    AdTier.SPONSORED_PINNED_30_DAYS: 19900,
}

AD_TIER_DESCRIPTIONS: dict[AdTier, str] = {
    AdTier.BASIC: "Basic job ad",
    AdTier.WITH_COMPANY_LOGO: "Job ad with company logo",
    AdTier.SPONSORED_BACKGROUND: "Sponsored job ad with highlighted background",
    AdTier.SPONSORED_PINNED_7_DAYS: "Sponsored job ad pinned for 7 days",
    AdTier.SPONSORED_PINNED_30_DAYS: "Sponsored job ad pinned for 30 days",
}

CHECKOUT_COMPLETED_EVENT = "checkout.session.completed"


def normalize_currency(currency_code: Optional[str]) -> str:
    """Unsupported or missing currency codes fall back to USD."""
    code = (currency_code or "").strip().upper()
    return code if code in SUPPORTED_CURRENCIES else DEFAULT_CURRENCY


def price_for(tier: AdTier) -> int:
    return AD_TIER_PRICES[tier]


def description_for(tier: AdTier) -> str:
    return AD_TIER_DESCRIPTIONS[tier]


class PaymentGateway(Protocol):
    async def create_checkout_session(
        self, tier: AdTier, currency: str, email: str, edit_token: str
    ) -> str:
        ...

    def verify_and_parse_confirmation(self, payload: bytes, signature: str) -> Optional[str]:
        ...


class StripeGateway:
    """Stripe Checkout implementation of PaymentGateway."""

    def __init__(self, api_key: Optional[str] = None, endpoint_secret: Optional[str] = None):
        self.api_key = api_key if api_key is not None else settings.stripe_key
        self.endpoint_secret = (
            endpoint_secret if endpoint_secret is not None else settings.stripe_endpoint_secret
        )

    async def create_checkout_session(
        self, tier: AdTier, currency: str, email: str, edit_token: str
    ) -> str:
        """
        Open a hosted checkout session for one ad tier.

        Returns:
            The session id, which keys the PurchaseEvent

        Raises:
            UpstreamError: If Stripe rejects the request
        """
        import stripe

        stripe.api_key = self.api_key
        try:
            session = await asyncio.to_thread(
                stripe.checkout.Session.create,
                payment_method_types=["card"],
                mode="payment",
                customer_email=email,
                line_items=[{
                    "price_data": {
                        "currency": currency.lower(),
                        "unit_amount": price_for(tier),
                        "product_data": {"name": description_for(tier)},
                    },
                    "quantity": 1,
                }],
                success_url=f"{settings.site_url}/edit/{edit_token}?payment=1&callback=1",
                cancel_url=f"{settings.site_url}/edit/{edit_token}?payment=0&callback=1",
            )
        except stripe.StripeError as e:
            logger.error(f"Unable to create checkout session for {email}: {str(e)}")
            raise UpstreamError("stripe", str(e)) from e

        return session.id

    def verify_and_parse_confirmation(self, payload: bytes, signature: str) -> Optional[str]:
        """
        Verify a webhook payload and extract the completed session id.

        Returns None for well-formed events that are not checkout completions.

        Raises:
            ValueError: If the payload is malformed or the signature does not match
        """
        import stripe

        try:
            event = stripe.Webhook.construct_event(payload, signature, self.endpoint_secret)
        except stripe.SignatureVerificationError as e:
            raise ValueError(f"invalid signature: {str(e)}") from e

        if event["type"] != CHECKOUT_COMPLETED_EVENT:
            logger.info(f"Ignoring payment event of type {event['type']}")
            return None

        return event["data"]["object"]["id"]


stripe_gateway = StripeGateway()


def get_payment_gateway() -> PaymentGateway:
    """FastAPI dependency; overridden in tests."""
    return stripe_gateway
