import secrets
import threading
import time
from datetime import datetime, timedelta
from redis.exceptions import RedisError

from chauffeur_booking.core.config import (
    ACTIVE_TO_COMPLETED,
    CONFIRMED_TO_ACTIVE,
    JOB_ATTEMPTS,
    JOB_BACKOFF_DELAY_SECONDS,
    TRIGGER_INTERVAL_SECONDS,
)
from chauffeur_booking.core.logging_config import get_logger
from chauffeur_booking.jobs.queue import JobQueue
from chauffeur_booking.utils.clock import now_local

logger = get_logger("scheduler")

TRIGGERS = (CONFIRMED_TO_ACTIVE, ACTIVE_TO_COMPLETED)
ENQUEUE_TRIES = 3


def build_trigger_job_id(trigger: str, tick_at: datetime, suffix: str | None = None) -> str:
    return f"{trigger}-{tick_at:%Y%m%d%H%M}-{suffix or secrets.token_hex(4)}"


def seconds_until_next_tick(now: datetime, interval: int = TRIGGER_INTERVAL_SECONDS) -> float:
    """Align ticks to wall-clock boundaries (top of the hour by default)."""
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    elapsed = (now - midnight).total_seconds()
    next_boundary = midnight + timedelta(seconds=(elapsed // interval + 1) * interval)
    return (next_boundary - now).total_seconds()


class TriggerScheduler:
    """Enqueues the status-transition trigger jobs on a fixed cadence.

    Nothing runs inline here, so a slow or failing transition never delays
    the next tick.
    """

    def __init__(self, queue: JobQueue, interval: int = TRIGGER_INTERVAL_SECONDS):
        self.queue = queue
        self.interval = interval

    def tick(self, now: datetime | None = None) -> list[str]:
        now = now or now_local()
        job_ids = []
        for trigger in TRIGGERS:
            # generated once per tick so an enqueue retry reuses it
            job_id = build_trigger_job_id(trigger, now)
            if self._enqueue(trigger, job_id, now):
                job_ids.append(job_id)
        return job_ids

    def _enqueue(self, trigger: str, job_id: str, now: datetime) -> bool:
        for attempt in range(1, ENQUEUE_TRIES + 1):
            try:
                self.queue.enqueue(
                    trigger,
                    {"type": trigger, "scheduled_at": now.isoformat()},
                    job_id=job_id,
                    attempts=JOB_ATTEMPTS,
                    backoff_seconds=JOB_BACKOFF_DELAY_SECONDS,
                )
                return True
            except RedisError as e:
                logger.warning(f"Failed to schedule {trigger} (try {attempt}/{ENQUEUE_TRIES}): {e}")
                time.sleep(attempt)

        logger.error(f"Giving up scheduling {trigger} for tick {now.isoformat()}")
        return False

    def run(self, stop_event: threading.Event):
        logger.info(f"Trigger scheduler started | interval={self.interval}s")
        while not stop_event.is_set():
            wait = seconds_until_next_tick(now_local(), self.interval)
            if stop_event.wait(timeout=wait):
                break
            self.tick()
        logger.info("Trigger scheduler stopped")
