from datetime import datetime

from sqlalchemy import Column, String, Integer, DateTime, ForeignKey

from jobboard.database import Base
from jobboard.database_types import IntEnumType
from jobboard.models.job_posting import AdTier


class PurchaseEvent(Base):
    """One payment attempt, keyed 1:1 by the gateway checkout session id."""
    __tablename__ = "purchase_event"

    id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(String(255), nullable=False, unique=True)

    amount = Column(Integer, nullable=False)  # minor units (cents)
    currency = Column(String(3), nullable=False)
    description = Column(String(255), nullable=True)
    ad_tier = Column(IntEnumType(AdTier), nullable=False)
    email = Column(String(255), nullable=False)

    # Nullable so payment records survive a permanent job delete
    job_id = Column(Integer, ForeignKey("job.id"), nullable=True, index=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    completed_at = Column(DateTime, nullable=True)

    @property
    def is_completed(self) -> bool:
        return self.completed_at is not None
