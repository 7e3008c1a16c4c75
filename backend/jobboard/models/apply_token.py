from datetime import datetime, timedelta

from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, LargeBinary

from jobboard.database import Base


APPLY_TOKEN_TTL = timedelta(hours=72)


class ApplyToken(Base):
    """Pending quick-apply application, holding the applicant's CV until confirmed."""
    __tablename__ = "apply_token"

    token = Column(String(32), primary_key=True)
    job_id = Column(Integer, ForeignKey("job.id"), nullable=False, index=True)
    email = Column(String(255), nullable=False)
    cv = Column(LargeBinary, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    confirmed_at = Column(DateTime, nullable=True)
