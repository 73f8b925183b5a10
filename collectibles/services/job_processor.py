"""Match job queue processor

Each poll cycle selects up to `batch_size` claimable jobs, oldest first, and
for each one:
1. Claims it with a conditional update (only one worker wins a job)
2. Invokes the wishlist matcher over HTTP
3. Marks it completed, or failed/dead depending on the error and attempts

Claimable jobs are pending jobs, failed jobs whose retry_at has passed, and
processing jobs whose claim is older than the lease.

With the default `match_job_max_attempts` of 1 nothing is retried: every
failure leaves the job in the terminal `failed` state. A larger value turns on
backoff retries for network errors and 5xx responses, and a job that still
fails on its last attempt becomes `dead`.
"""
from sqlalchemy import and_, or_
from sqlalchemy.engine import Row
from sqlalchemy.orm import Session
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional
import logging
import os
import socket
import threading
from collectibles.config import get_settings
from collectibles.database import SessionLocal
from collectibles.exceptions import MatcherInvocationError
from collectibles.models import MatchJob
from collectibles.models.status_enums import MatchJobStatus
from collectibles.services.matcher_client import MatcherClient

logger = logging.getLogger(__name__)


class MatchJobProcessor:
    """Drains the match job queue; overlapping polls in one process are no-ops"""

    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        client: Optional[MatcherClient] = None,
        batch_size: Optional[int] = None,
        max_attempts: Optional[int] = None,
        retry_base_seconds: Optional[float] = None,
        retry_max_seconds: Optional[float] = None,
        lease_seconds: Optional[int] = None,
        worker_id: Optional[str] = None,
    ):
        settings = get_settings()
        self.session_factory = session_factory
        self.client = client or MatcherClient()
        self.batch_size = batch_size or settings.match_job_batch_size
        self.max_attempts = max_attempts or settings.match_job_max_attempts
        self.retry_base_seconds = retry_base_seconds or settings.match_job_retry_base_seconds
        self.retry_max_seconds = retry_max_seconds or settings.match_job_retry_max_seconds
        self.lease_seconds = lease_seconds or settings.match_job_lease_seconds
        self.worker_id = worker_id or f"{socket.gethostname()}:{os.getpid()}"
        self._poll_lock = threading.Lock()

    @property
    def is_processing(self) -> bool:
        return self._poll_lock.locked()

    @property
    def retries_enabled(self) -> bool:
        return self.max_attempts > 1

    def process_jobs(self) -> Dict[str, Any]:
        """Run one poll cycle. Never raises."""
        stats = {"claimed": 0, "completed": 0, "failed": 0, "dead": 0, "skipped": False}

        if not self._poll_lock.acquire(blocking=False):
            logger.debug("Match job poll already running, skipping this trigger")
            stats["skipped"] = True
            return stats

        db = None

        try:
            db = self.session_factory()
            for snapshot in self.select_jobs(db):
                try:
                    job = self.claim_job(db, snapshot)
                    if job is None:
                        continue
                    stats["claimed"] += 1
                    outcome = self._run_job(db, job)
                    stats[outcome] += 1
                except Exception as e:
                    db.rollback()
                    logger.error(f"Error handling match job {snapshot.id}: {e}", exc_info=True)

        except Exception as e:
            if db is not None:
                db.rollback()
            logger.error(f"Error processing match jobs: {e}", exc_info=True)

        finally:
            if db is not None:
                db.close()
            self._poll_lock.release()

        if stats["claimed"]:
            logger.info(f"Match job poll finished: {stats}")

        return stats

    def select_jobs(self, db: Session, now: Optional[datetime] = None) -> List[Row]:
        """
        Claimable jobs, oldest first, as (id, status, attempts) rows.
        The rows are plain values, so commits later in the cycle cannot refresh
        them with another worker's claim.
        """
        now = now or datetime.utcnow()
        lease_cutoff = now - timedelta(seconds=self.lease_seconds)

        return db.query(MatchJob.id, MatchJob.status, MatchJob.attempts).filter(or_(
            MatchJob.status == MatchJobStatus.PENDING.value,
            and_(
                MatchJob.status == MatchJobStatus.FAILED.value,
                MatchJob.retry_at.isnot(None),
                MatchJob.retry_at <= now,
            ),
            and_(
                MatchJob.status == MatchJobStatus.PROCESSING.value,
                or_(MatchJob.claimed_at.is_(None), MatchJob.claimed_at < lease_cutoff),
            ),
        )).order_by(MatchJob.created_at.asc()).limit(self.batch_size).all()

    def claim_job(self, db: Session, snapshot: Row) -> Optional[MatchJob]:
        """
        Move the job to processing if nobody else changed it since it was selected.
        Every claim bumps attempts, so the (status, attempts) pair works as a version.
        Returns the claimed job, or None if another worker got there first.
        """
        updated = db.query(MatchJob).filter(
            MatchJob.id == snapshot.id,
            MatchJob.status == snapshot.status,
            MatchJob.attempts == snapshot.attempts,
        ).update({
            MatchJob.status: MatchJobStatus.PROCESSING.value,
            MatchJob.attempts: snapshot.attempts + 1,
            MatchJob.claimed_at: datetime.utcnow(),
            MatchJob.claimed_by: self.worker_id,
            MatchJob.retry_at: None,
        }, synchronize_session=False)
        db.commit()

        if updated != 1:
            logger.info(f"Match job {snapshot.id} was claimed by another worker")
            return None

        logger.info(f"Claimed match job {snapshot.id} (attempt {snapshot.attempts + 1})")
        return db.get(MatchJob, snapshot.id)

    def _run_job(self, db: Session, job: MatchJob) -> str:
        try:
            self.client.run_job(job.job_type, job.reference_id)
        except Exception as e:
            return self._record_failure(db, job, e)

        job.status = MatchJobStatus.COMPLETED.value
        job.error_message = None
        job.processed_at = datetime.utcnow()
        db.commit()

        logger.info(f"Match job {job.id} completed")
        return "completed"

    def _record_failure(self, db: Session, job: MatchJob, error: Exception) -> str:
        now = datetime.utcnow()
        message = getattr(error, "message", None) or str(error) or error.__class__.__name__
        retryable = (
            self.retries_enabled
            and isinstance(error, MatcherInvocationError)
            and error.retryable
        )

        job.error_message = message
        job.processed_at = now
        job.retry_at = None

        if retryable and job.attempts >= self.max_attempts:
            job.status = MatchJobStatus.DEAD.value
            outcome = "dead"
        else:
            job.status = MatchJobStatus.FAILED.value
            if retryable:
                job.retry_at = now + self.retry_delay(job.attempts)
            outcome = "failed"

        db.commit()

        logger.warning(f"Match job {job.id} {outcome} after attempt {job.attempts}: {message}")
        return outcome

    def retry_delay(self, attempts: int) -> timedelta:
        """Exponential backoff: base, 2*base, 4*base, ... capped at retry_max_seconds"""
        seconds = self.retry_base_seconds * (2 ** max(attempts - 1, 0))
        return timedelta(seconds=min(seconds, self.retry_max_seconds))
