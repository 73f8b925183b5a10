from sqlalchemy import Column, Integer, String, DateTime, Text
from datetime import datetime
import uuid
from collectibles.database import Base
from collectibles.models.status_enums import MatchJobStatus


class MatchJob(Base):
    __tablename__ = "pending_match_jobs"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    job_type = Column(String(50), nullable=False)  # match_listing, match_wishlist
    reference_id = Column(String(36), nullable=False)
    status = Column(String(20), default=MatchJobStatus.PENDING.value, index=True)  # pending, processing, completed, failed, dead
    error_message = Column(Text)
    attempts = Column(Integer, default=0, nullable=False)
    retry_at = Column(DateTime)
    claimed_at = Column(DateTime)
    claimed_by = Column(String(100))
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    processed_at = Column(DateTime)

    def __repr__(self):
        return f"<MatchJob(id={self.id}, type='{self.job_type}', ref={self.reference_id}, status='{self.status}')>"
