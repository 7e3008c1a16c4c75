from datetime import datetime

from sqlalchemy import Column, String, Integer, DateTime, ForeignKey

from jobboard.database import Base


class EditToken(Base):
    """Capability token: whoever holds it can edit and manage one job posting."""
    __tablename__ = "edit_token"

    token = Column(String(32), primary_key=True)
    job_id = Column(Integer, ForeignKey("job.id"), nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
