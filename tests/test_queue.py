import fakeredis
import pytest
from rq import SimpleWorker
from rq.job import Job, JobStatus

from chauffeur_booking.jobs.queue import JOB_FUNCTIONS, JobQueue, retry_policy

CALLS = []


def record(data):
    CALLS.append(data)
    return {"seen": data["booking_id"]}


def explode(data):
    raise RuntimeError("db down")


@pytest.fixture
def connection():
    return fakeredis.FakeStrictRedis()


@pytest.fixture
def queue(connection):
    CALLS.clear()
    return JobQueue(connection, "payouts-queue")


def run_burst(connection, queue):
    SimpleWorker([queue.rq], connection=connection).work(burst=True)


def test_retry_policy_backs_off_exponentially():
    policy = retry_policy(4, backoff_seconds=5)

    assert policy.max == 3
    assert policy.intervals == [5, 10, 20]
    assert retry_policy(1) is None


def test_named_jobs_resolve_to_handler_paths(connection, queue):
    queue.enqueue("process-payout", {"booking_id": 7}, job_id="payout-7", attempts=3)

    job = Job.fetch("payout-7", connection=connection)
    assert job.func_name == JOB_FUNCTIONS["process-payout"]
    assert job.args == ({"booking_id": 7},)
    assert job.retries_left == 2
    assert queue.rq.count == 1


def test_duplicate_job_id_is_enqueued_once(queue):
    first = queue.enqueue(record, {"booking_id": 1}, job_id="charge-1")
    second = queue.enqueue(record, {"booking_id": 1}, job_id="charge-1")

    assert first == second == "charge-1"
    assert queue.rq.count == 1


def test_failed_enqueue_releases_the_job_id(connection, queue, monkeypatch):
    def broken(*args, **kwargs):
        raise ConnectionError("reset")

    monkeypatch.setattr(queue.rq, "enqueue", broken)
    with pytest.raises(ConnectionError):
        queue.enqueue(record, {"booking_id": 1}, job_id="charge-1")
    monkeypatch.undo()

    queue.enqueue(record, {"booking_id": 1}, job_id="charge-1")
    assert queue.rq.count == 1


def test_worker_runs_the_job(connection, queue):
    queue.enqueue(record, {"booking_id": 3}, job_id="job-3")

    run_burst(connection, queue)

    assert CALLS == [{"booking_id": 3}]
    assert Job.fetch("job-3", connection=connection).get_status() == JobStatus.FINISHED


def test_raising_job_is_parked_for_a_retry(connection, queue):
    queue.enqueue(explode, {"booking_id": 4}, job_id="job-4", attempts=3)

    run_burst(connection, queue)

    job = Job.fetch("job-4", connection=connection)
    assert job.retries_left == 1
    assert job.get_status() == JobStatus.SCHEDULED
    assert "job-4" in queue.rq.scheduled_job_registry.get_job_ids()


def test_job_without_retries_fails(connection, queue):
    queue.enqueue(explode, {"booking_id": 5}, job_id="job-5")

    run_burst(connection, queue)

    assert Job.fetch("job-5", connection=connection).get_status() == JobStatus.FAILED
    assert "job-5" in queue.rq.failed_job_registry.get_job_ids()


def test_queue_without_redis_refuses_jobs():
    with pytest.raises(RuntimeError):
        JobQueue(None, "payouts-queue").enqueue("process-payout", {"booking_id": 1})
