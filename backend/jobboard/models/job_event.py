from datetime import datetime
from enum import Enum

from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Index

from jobboard.database import Base


class JobEventType(str, Enum):
    PAGE_VIEW = "page_view"
    CLICKOUT = "clickout"


class JobEvent(Base):
    """Append-only engagement log."""
    __tablename__ = "job_event"

    id = Column(Integer, primary_key=True, autoincrement=True)
    event_type = Column(String(128), nullable=False)
    job_id = Column(Integer, ForeignKey("job.id"), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index("idx_job_event_job", "job_id", "event_type"),
    )
