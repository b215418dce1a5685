import os
import sys
from loguru import logger

from chauffeur_booking.core.config import LOG_DIR, LOG_LEVEL, LOG_TO_STDERR

LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {extra[log_type]} | {message}"

# log_type -> file; each channel only sees records bound to its type
CHANNELS = {
    "booking": "bookings.log",      # creation, extensions, cancellation
    "payment": "payments.log",      # webhooks, reconciliation, payouts
    "scheduler": "scheduler.log",   # triggers, status changes, worker
}

os.makedirs(LOG_DIR, exist_ok=True)

logger.remove()
logger.configure(extra={"log_type": "app"})

# General application log
logger.add(
    os.path.join(LOG_DIR, "app.log"),
    rotation="1 week",
    retention="4 weeks",
    level=LOG_LEVEL,
    enqueue=True,
    format=LOG_FORMAT,
)

for log_type, filename in CHANNELS.items():
    logger.add(
        os.path.join(LOG_DIR, filename),
        rotation="1 week",
        retention="4 weeks",
        level=LOG_LEVEL,
        enqueue=True,
        filter=lambda record, log_type=log_type: record["extra"].get("log_type") == log_type,
        format=LOG_FORMAT,
    )

# Error logs
logger.add(
    os.path.join(LOG_DIR, "errors.log"),
    rotation="1 week",
    retention="8 weeks",
    level="ERROR",
    enqueue=True,
    format=LOG_FORMAT,
)

if LOG_TO_STDERR:
    logger.add(sys.stderr, level=LOG_LEVEL, format=LOG_FORMAT)


def get_logger(log_type: str | None = None):
    if log_type:
        return logger.bind(log_type=log_type)
    return logger
