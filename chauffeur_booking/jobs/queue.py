"""Job queue on top of rq.

Jobs are addressed by a short name (``charge-completed``, ``process-payout``
...) which maps to the dotted path rq imports in the worker. rq keeps the
reservation bookkeeping: a job whose worker dies stays in the started
registry until its heartbeat lapses, then it is retried (or failed once its
retries are spent) by the next worker that cleans the registries.

Enqueue is deduplicated on job id with a ``SET NX`` marker that outlives the
job (``JOB_DEDUP_TTL_SECONDS``), so a replayed webhook or a retried trigger
enqueue does not run twice.
"""

import uuid
from rq import Queue, Retry

from chauffeur_booking.core.config import (
    ACTIVE_TO_COMPLETED,
    CHARGE_COMPLETED_JOB,
    CONFIRMED_TO_ACTIVE,
    JOB_BACKOFF_DELAY_SECONDS,
    JOB_DEDUP_TTL_SECONDS,
    JOB_FAILURE_TTL_SECONDS,
    JOB_TIMEOUT_SECONDS,
    NOTIFICATION_TASK,
    PROCESS_PAYOUT_JOB,
    SEND_NOTIFICATION_JOB,
)
from chauffeur_booking.core.logging_config import get_logger

logger = get_logger("scheduler")

DEDUP_PREFIX = "jobs:dedup"

JOB_FUNCTIONS = {
    CONFIRMED_TO_ACTIVE: "chauffeur_booking.jobs.handlers.handle_confirmed_to_active",
    ACTIVE_TO_COMPLETED: "chauffeur_booking.jobs.handlers.handle_active_to_completed",
    CHARGE_COMPLETED_JOB: "chauffeur_booking.jobs.handlers.handle_charge_completed",
    PROCESS_PAYOUT_JOB: "chauffeur_booking.jobs.handlers.handle_process_payout",
    SEND_NOTIFICATION_JOB: NOTIFICATION_TASK,
}


def retry_policy(attempts: int, backoff_seconds: float = JOB_BACKOFF_DELAY_SECONDS) -> Retry | None:
    """``attempts`` counts the first run; retries wait 5s, 10s, 20s ..."""
    retries = attempts - 1
    if retries < 1:
        return None
    return Retry(max=retries, interval=[int(backoff_seconds * 2 ** n) for n in range(retries)])


class JobQueue:
    def __init__(self, client, name: str):
        self.client = client
        self.name = name
        self.rq = Queue(name, connection=client) if client is not None else None

    def _dedup_key(self, job_id: str) -> str:
        return f"{DEDUP_PREFIX}:{job_id}"

    def enqueue(
        self,
        job_name: str,
        data: dict,
        job_id: str | None = None,
        attempts: int = 1,
        backoff_seconds: float = JOB_BACKOFF_DELAY_SECONDS,
    ) -> str:
        if self.rq is None:
            raise RuntimeError(f"Queue {self.name} has no Redis connection")

        job_id = job_id or uuid.uuid4().hex
        dedup_key = self._dedup_key(job_id)

        if not self.client.set(dedup_key, self.name, nx=True, ex=JOB_DEDUP_TTL_SECONDS):
            logger.info(f"Duplicate job ignored | queue={self.name} | job={job_id}")
            return job_id

        try:
            self.rq.enqueue(
                JOB_FUNCTIONS.get(job_name, job_name),
                data,
                job_id=job_id,
                retry=retry_policy(attempts, backoff_seconds),
                job_timeout=JOB_TIMEOUT_SECONDS,
                failure_ttl=JOB_FAILURE_TTL_SECONDS,
                description=job_name,
            )
        except Exception:
            # let the caller's retry through the dedup guard
            self.client.delete(dedup_key)
            raise

        logger.info(f"Job enqueued | queue={self.name} | name={job_name} | job={job_id}")
        return job_id
