"""Payment-related Pydantic schemas."""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict

from jobboard.models.job_posting import AdTier


class CheckoutRequest(BaseModel):
    """Upgrade an existing job ad, identified by its edit token."""
    token: str
    ad_tier: AdTier
    email: str
    currency_code: str = "USD"


class CheckoutResponse(BaseModel):
    session_id: str


class PurchaseEventResponse(BaseModel):
    session_id: str
    amount: int
    currency: str
    description: Optional[str] = None
    ad_tier: AdTier
    created_at: datetime
    completed_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class PaymentConfirmationResponse(BaseModel):
    session_id: str
    job_id: Optional[int] = None
    previous_tier: Optional[AdTier] = None
    current_tier: Optional[AdTier] = None
    upgraded: bool
    already_processed: bool
