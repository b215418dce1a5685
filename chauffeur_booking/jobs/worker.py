"""Background worker: runs rq workers on the lifecycle queues plus the hourly
trigger scheduler.

Usage:
    python -m chauffeur_booking.jobs.worker
    python -m chauffeur_booking.jobs.worker --queues payments-queue --concurrency 2
    python -m chauffeur_booking.jobs.worker --no-scheduler
"""

import argparse
import sys
import threading
from rq import Queue, Worker
from rq.worker_pool import WorkerPool

from chauffeur_booking.core.config import (
    LOG_LEVEL,
    PAYMENTS_QUEUE,
    PAYOUTS_QUEUE,
    STATUS_UPDATES_QUEUE,
    WORKER_CONCURRENCY,
)
from chauffeur_booking.core.logging_config import get_logger
from chauffeur_booking.core.redis import get_queue_connection
from chauffeur_booking.jobs.queue import JobQueue
from chauffeur_booking.jobs.scheduler import TriggerScheduler

logger = get_logger("scheduler")

# notifications-queue is drained by the notification service
WORKER_QUEUES = (STATUS_UPDATES_QUEUE, PAYMENTS_QUEUE, PAYOUTS_QUEUE)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Run booking lifecycle workers")
    parser.add_argument(
        "--queues",
        nargs="+",
        default=list(WORKER_QUEUES),
        choices=list(WORKER_QUEUES),
        help="Queues to consume",
    )
    parser.add_argument("--concurrency", type=int, default=WORKER_CONCURRENCY)
    parser.add_argument(
        "--no-scheduler",
        action="store_true",
        help="Do not enqueue the hourly status triggers from this process",
    )
    return parser.parse_args(argv)


def run_workers(connection, queue_names: list[str], concurrency: int):
    """Blocks until the workers are told to stop (SIGINT/SIGTERM).

    ``with_scheduler`` is required: retries with a backoff interval are parked
    in rq's scheduled registry and only come back through its scheduler.
    """
    logger.info(f"Workers starting | queues={', '.join(queue_names)} | concurrency={concurrency}")

    if concurrency > 1:
        pool = WorkerPool(queue_names, connection=connection, num_workers=concurrency)
        pool.start(logging_level=LOG_LEVEL)
    else:
        queues = [Queue(name, connection=connection) for name in queue_names]
        Worker(queues, connection=connection).work(with_scheduler=True, logging_level=LOG_LEVEL)

    logger.info("Workers stopped")


def main(argv=None):
    args = parse_args(argv)

    connection = get_queue_connection()
    if connection is None:
        logger.error("Redis is required to run workers (set REDIS_URL)")
        sys.exit(1)

    stop_event = threading.Event()
    if not args.no_scheduler:
        scheduler = TriggerScheduler(JobQueue(connection, STATUS_UPDATES_QUEUE))
        threading.Thread(target=scheduler.run, args=(stop_event,), daemon=True).start()

    try:
        run_workers(connection, args.queues, args.concurrency)
    finally:
        stop_event.set()


if __name__ == "__main__":
    main()
