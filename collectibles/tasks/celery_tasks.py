"""Celery background tasks for draining the match job queue"""
from celery import Celery
from celery.signals import worker_ready
from kombu.exceptions import OperationalError
from typing import Optional
import logging
from collectibles.config import get_settings
from collectibles.services.job_processor import MatchJobProcessor

settings = get_settings()
logger = logging.getLogger(__name__)

# Initialize Celery
celery_app = Celery(
    "collectibles_tasks",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend
)

celery_app.conf.task_routes = {
    "process_match_jobs_task": {"queue": "matching"}
}

# Interval trigger; push wakeups come from wake_match_processor()
celery_app.conf.beat_schedule = {
    "poll-match-jobs": {
        "task": "process_match_jobs_task",
        "schedule": settings.match_poll_interval_seconds,
        "options": {"expires": settings.match_poll_interval_seconds},
    },
}

# One processor per worker process so its reentrancy flag covers every trigger
_processor: Optional[MatchJobProcessor] = None


def get_processor() -> MatchJobProcessor:
    global _processor
    if _processor is None:
        _processor = MatchJobProcessor()
    return _processor


@celery_app.task(name="process_match_jobs_task", ignore_result=True)
def process_match_jobs_task():
    """Run one poll cycle; a no-op if this worker is already mid-cycle"""
    return get_processor().process_jobs()


@worker_ready.connect
def run_initial_poll(sender=None, **kwargs):
    """Drain the queue once as soon as a worker comes up"""
    logger.info("Worker ready, running initial match job poll")
    wake_match_processor()


def wake_match_processor() -> bool:
    """Ask a worker to poll now. Returns False if the broker is unreachable."""
    try:
        process_match_jobs_task.delay()
        return True
    except OperationalError as e:
        logger.warning(f"Could not wake match processor, waiting for next scheduled poll: {e}")
        return False
