import threading
import time
from datetime import datetime, timedelta

import pytest

from collectibles.exceptions import MatcherInvocationError
from collectibles.models import MatchJob
from collectibles.models.status_enums import MatchJobStatus, MatchJobType
from collectibles.services.job_processor import MatchJobProcessor


class FakeClient:
    """Records invocations and raises whatever is registered for a reference id"""

    def __init__(self, errors=None):
        self.calls = []
        self.errors = errors or {}

    def run_job(self, job_type, reference_id):
        self.calls.append((job_type, reference_id))
        error = self.errors.get(reference_id)
        if error:
            raise error
        return {"success": True, "matchesCreated": 0, "matches": []}


@pytest.fixture
def fake_client():
    return FakeClient()


@pytest.fixture
def processor(session_factory, fake_client):
    return MatchJobProcessor(
        session_factory=session_factory,
        client=fake_client,
        batch_size=5,
        max_attempts=3,
        retry_base_seconds=30,
        retry_max_seconds=600,
        lease_seconds=600,
        worker_id="test-worker",
    )


@pytest.fixture
def make_job(db):
    def _make(reference_id="listing-1", job_type=MatchJobType.MATCH_LISTING.value, **fields):
        job = MatchJob(job_type=job_type, reference_id=reference_id, **fields)
        db.add(job)
        db.commit()
        db.refresh(job)
        return job

    return _make


def reload(db, job_id):
    db.expire_all()
    return db.get(MatchJob, job_id)


def test_successful_job_completes(db, processor, fake_client, make_job):
    job = make_job("wish-1", job_type=MatchJobType.MATCH_WISHLIST.value)

    stats = processor.process_jobs()

    assert stats == {"claimed": 1, "completed": 1, "failed": 0, "dead": 0, "skipped": False}
    assert fake_client.calls == [("match_wishlist", "wish-1")]
    job = reload(db, job.id)
    assert job.status == MatchJobStatus.COMPLETED.value
    assert job.processed_at is not None
    assert job.error_message is None
    assert job.attempts == 1
    assert job.claimed_by == "test-worker"


def test_client_error_fails_without_retry(db, processor, fake_client, make_job):
    fake_client.errors["listing-1"] = MatcherInvocationError("Listing not found", status_code=404)
    job = make_job("listing-1")

    stats = processor.process_jobs()

    assert stats["failed"] == 1
    job = reload(db, job.id)
    assert job.status == MatchJobStatus.FAILED.value
    assert job.error_message == "Listing not found"
    assert job.retry_at is None
    assert job.processed_at is not None


def test_unexpected_error_fails_with_message(db, processor, fake_client, make_job):
    fake_client.errors["listing-1"] = RuntimeError("boom")
    job = make_job("listing-1")

    processor.process_jobs()

    job = reload(db, job.id)
    assert job.status == MatchJobStatus.FAILED.value
    assert job.error_message == "boom"
    assert job.retry_at is None


def test_server_error_schedules_retry_with_backoff(db, processor, fake_client, make_job):
    fake_client.errors["listing-1"] = MatcherInvocationError("upstream unavailable", status_code=503)
    job = make_job("listing-1")
    before = datetime.utcnow()

    processor.process_jobs()

    job = reload(db, job.id)
    assert job.status == MatchJobStatus.FAILED.value
    assert job.attempts == 1
    assert before + timedelta(seconds=29) <= job.retry_at <= datetime.utcnow() + timedelta(seconds=31)


def test_failed_job_is_not_retried_before_retry_at(db, processor, fake_client, make_job):
    make_job("listing-1", status=MatchJobStatus.FAILED.value, attempts=1,
             retry_at=datetime.utcnow() + timedelta(minutes=5))
    make_job("listing-2", status=MatchJobStatus.FAILED.value, attempts=1, retry_at=None)

    stats = processor.process_jobs()

    assert stats["claimed"] == 0
    assert fake_client.calls == []


def test_due_retry_is_picked_up(db, processor, fake_client, make_job):
    job = make_job("listing-1", status=MatchJobStatus.FAILED.value, attempts=1,
                   retry_at=datetime.utcnow() - timedelta(seconds=1))

    processor.process_jobs()

    job = reload(db, job.id)
    assert job.status == MatchJobStatus.COMPLETED.value
    assert job.attempts == 2


def test_retry_exhaustion_moves_job_to_dead(db, processor, fake_client, make_job):
    fake_client.errors["listing-1"] = MatcherInvocationError("Matcher request failed: connection refused")
    job = make_job("listing-1", status=MatchJobStatus.FAILED.value, attempts=2,
                   retry_at=datetime.utcnow() - timedelta(seconds=1))

    stats = processor.process_jobs()

    assert stats["dead"] == 1
    job = reload(db, job.id)
    assert job.status == MatchJobStatus.DEAD.value
    assert job.attempts == 3
    assert job.retry_at is None
    assert "connection refused" in job.error_message


def test_retry_delay_doubles_and_caps(processor):
    assert processor.retry_delay(1) == timedelta(seconds=30)
    assert processor.retry_delay(2) == timedelta(seconds=60)
    assert processor.retry_delay(3) == timedelta(seconds=120)
    assert processor.retry_delay(10) == timedelta(seconds=600)


def test_batch_is_fifo_and_bounded(db, processor, fake_client, make_job):
    start = datetime.utcnow() - timedelta(minutes=10)
    for index in reversed(range(7)):
        make_job(f"listing-{index}", created_at=start + timedelta(seconds=index))

    stats = processor.process_jobs()

    assert stats["claimed"] == 5
    assert [reference for _, reference in fake_client.calls] == [f"listing-{i}" for i in range(5)]
    assert db.query(MatchJob).filter(MatchJob.status == MatchJobStatus.PENDING.value).count() == 2


def test_failure_does_not_stop_the_batch(db, processor, fake_client, make_job):
    start = datetime.utcnow() - timedelta(minutes=1)
    fake_client.errors["listing-1"] = RuntimeError("boom")
    first = make_job("listing-1", created_at=start)
    second = make_job("listing-2", created_at=start + timedelta(seconds=1))

    stats = processor.process_jobs()

    assert stats["failed"] == 1
    assert stats["completed"] == 1
    assert reload(db, first.id).status == MatchJobStatus.FAILED.value
    assert reload(db, second.id).status == MatchJobStatus.COMPLETED.value


def claim_elsewhere(session_factory, job_id, worker_id="other-worker"):
    """Claim a job the way a second worker process would"""
    other = session_factory()
    other.query(MatchJob).filter(MatchJob.id == job_id).update({
        MatchJob.status: MatchJobStatus.PROCESSING.value,
        MatchJob.attempts: MatchJob.attempts + 1,
        MatchJob.claimed_at: datetime.utcnow(),
        MatchJob.claimed_by: worker_id,
    }, synchronize_session=False)
    other.commit()
    other.close()


def test_claim_loses_when_job_changed_since_read(db, session_factory, processor, make_job):
    make_job("listing-1")
    snapshot = processor.select_jobs(db)[0]

    claim_elsewhere(session_factory, snapshot.id)

    assert processor.claim_job(db, snapshot) is None
    assert reload(db, snapshot.id).claimed_by == "other-worker"


def test_job_claimed_elsewhere_mid_batch_is_left_alone(db, session_factory, make_job):
    start = datetime.utcnow() - timedelta(minutes=1)
    first = make_job("listing-1", created_at=start)
    second = make_job("listing-2", created_at=start + timedelta(seconds=1))
    second_id = second.id

    class RacingClient(FakeClient):
        def run_job(self, job_type, reference_id):
            if reference_id == "listing-1":
                claim_elsewhere(session_factory, second_id)
            return super().run_job(job_type, reference_id)

    client = RacingClient()
    processor = MatchJobProcessor(session_factory=session_factory, client=client, worker_id="worker-a")

    stats = processor.process_jobs()

    assert stats["claimed"] == 1
    assert stats["completed"] == 1
    assert client.calls == [("match_listing", "listing-1")]
    assert reload(db, first.id).status == MatchJobStatus.COMPLETED.value
    second = reload(db, second_id)
    assert second.status == MatchJobStatus.PROCESSING.value
    assert second.claimed_by == "other-worker"
    assert second.attempts == 1


def test_stale_processing_job_is_reclaimed(db, processor, fake_client, make_job):
    stale = make_job("listing-1", status=MatchJobStatus.PROCESSING.value, attempts=1,
                     claimed_at=datetime.utcnow() - timedelta(seconds=700), claimed_by="crashed-worker")
    fresh = make_job("listing-2", status=MatchJobStatus.PROCESSING.value, attempts=1,
                     claimed_at=datetime.utcnow(), claimed_by="busy-worker")

    stats = processor.process_jobs()

    assert stats["claimed"] == 1
    assert fake_client.calls == [("match_listing", "listing-1")]
    stale = reload(db, stale.id)
    assert stale.status == MatchJobStatus.COMPLETED.value
    assert stale.claimed_by == "test-worker"
    assert reload(db, fresh.id).status == MatchJobStatus.PROCESSING.value


def test_overlapping_poll_is_skipped(session_factory, make_job):
    started = threading.Event()
    release = threading.Event()

    class BlockingClient(FakeClient):
        def run_job(self, job_type, reference_id):
            started.set()
            release.wait(timeout=5)
            return super().run_job(job_type, reference_id)

    processor = MatchJobProcessor(session_factory=session_factory, client=BlockingClient(), worker_id="w")
    make_job("listing-1")

    results = {}
    worker = threading.Thread(target=lambda: results.setdefault("first", processor.process_jobs()))
    worker.start()
    try:
        assert started.wait(timeout=5)
        assert processor.is_processing

        skipped = processor.process_jobs()

        assert skipped["skipped"] is True
        assert skipped["claimed"] == 0
    finally:
        release.set()
        worker.join(timeout=5)

    assert results["first"]["completed"] == 1
    assert processor.is_processing is False


def test_session_errors_never_escape(fake_client):
    def broken_factory():
        raise RuntimeError("database unavailable")

    processor = MatchJobProcessor(session_factory=broken_factory, client=fake_client, worker_id="w")

    stats = processor.process_jobs()

    assert stats["claimed"] == 0
    assert processor.is_processing is False


def test_default_config_leaves_transient_failures_failed(db, session_factory, fake_client, make_job):
    fake_client.errors["listing-1"] = MatcherInvocationError("upstream unavailable", status_code=503)
    job = make_job("listing-1")
    processor = MatchJobProcessor(session_factory=session_factory, client=fake_client, worker_id="w")

    assert processor.retries_enabled is False

    first = processor.process_jobs()
    job = reload(db, job.id)

    assert first["failed"] == 1
    assert first["dead"] == 0
    assert job.status == MatchJobStatus.FAILED.value
    assert job.retry_at is None
    assert job.error_message == "upstream unavailable"

    second = processor.process_jobs()

    assert second["claimed"] == 0
    assert fake_client.calls == [("match_listing", "listing-1")]
    assert reload(db, job.id).status == MatchJobStatus.FAILED.value


def test_concurrent_polls_run_one_cycle(session_factory, make_job):
    started = threading.Event()
    release = threading.Event()

    class BlockingClient(FakeClient):
        def run_job(self, job_type, reference_id):
            started.set()
            release.wait(timeout=5)
            return super().run_job(job_type, reference_id)

    client = BlockingClient()
    processor = MatchJobProcessor(session_factory=session_factory, client=client, worker_id="w")
    make_job("listing-1")

    thread_count = 8
    barrier = threading.Barrier(thread_count)
    results = []
    results_lock = threading.Lock()

    def poll():
        barrier.wait(timeout=5)
        stats = processor.process_jobs()
        with results_lock:
            results.append(stats)

    threads = [threading.Thread(target=poll) for _ in range(thread_count)]
    for thread in threads:
        thread.start()
    try:
        assert started.wait(timeout=5)
        # Every poll except the one blocked in the client returns straight away
        for _ in range(500):
            with results_lock:
                if len(results) == thread_count - 1:
                    break
            time.sleep(0.01)
    finally:
        release.set()
        for thread in threads:
            thread.join(timeout=5)

    assert len(results) == thread_count
    assert sum(1 for stats in results if not stats["skipped"]) == 1
    assert client.calls == [("match_listing", "listing-1")]
