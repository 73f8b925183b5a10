from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional
from collectibles.models.status_enums import MatchJobType


class MatchJobCreate(BaseModel):
    job_type: MatchJobType
    reference_id: str = Field(min_length=1)


class MatchJobResponse(BaseModel):
    id: str
    job_type: str
    reference_id: str
    status: str
    error_message: Optional[str]
    attempts: int
    retry_at: Optional[datetime]
    created_at: datetime
    processed_at: Optional[datetime]

    class Config:
        from_attributes = True
