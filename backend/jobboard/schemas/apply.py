"""Quick apply schemas."""
from pydantic import BaseModel


class ApplyResponse(BaseModel):
    status: str = "pending_confirmation"


class ApplyConfirmResponse(BaseModel):
    """Returned once the CV has been forwarded to the company."""
    status: str = "forwarded"
    slug: str
    title: str
    company: str
    location: str
