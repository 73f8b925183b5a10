"""Jobs endpoint for enqueueing match jobs and monitoring their status"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from collectibles.auth import get_current_user_id
from collectibles.database import get_db
from collectibles.exceptions import NotFoundError
from collectibles.models import MatchJob
from collectibles.models.status_enums import MatchJobStatus
from collectibles.schemas import MatchJobCreate, MatchJobResponse
from collectibles.tasks.celery_tasks import wake_match_processor

router = APIRouter()


@router.post("/match-jobs", response_model=MatchJobResponse, status_code=201)
def enqueue_match_job(
    request: MatchJobCreate,
    caller_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Queue a matcher run for a listing or wishlist item and wake the processor"""
    job = MatchJob(
        job_type=request.job_type.value,
        reference_id=request.reference_id,
        status=MatchJobStatus.PENDING.value,
    )
    db.add(job)
    db.commit()
    db.refresh(job)

    # The beat schedule picks the job up anyway if the wakeup cannot be sent
    wake_match_processor()

    return job


@router.get("/match-jobs/{job_id}", response_model=MatchJobResponse)
def get_job_status(job_id: str, caller_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
    """Get the status of a match job"""
    job = db.query(MatchJob).filter(MatchJob.id == job_id).first()

    if not job:
        raise NotFoundError("Job not found")

    return job
