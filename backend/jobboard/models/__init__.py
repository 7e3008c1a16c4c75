"""Database models"""
from jobboard.models.job_posting import JobPosting, AdTier
from jobboard.models.purchase_event import PurchaseEvent
from jobboard.models.edit_token import EditToken
from jobboard.models.apply_token import ApplyToken
from jobboard.models.job_event import JobEvent, JobEventType

__all__ = [
    "JobPosting",
    "AdTier",
    "PurchaseEvent",
    "EditToken",
    "ApplyToken",
    "JobEvent",
    "JobEventType",
]
