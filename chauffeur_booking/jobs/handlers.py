"""Job functions rq imports by dotted path (see ``jobs.queue.JOB_FUNCTIONS``).

Each handler opens its own session and builds the services it needs; an
exception propagates to rq, which retries the job per its ``Retry`` policy.
"""

from contextlib import contextmanager

from chauffeur_booking.core.config import NOTIFICATIONS_QUEUE, PAYOUTS_QUEUE
from chauffeur_booking.core.redis import get_queue_connection
from chauffeur_booking.db.session import SessionLocal
from chauffeur_booking.jobs.queue import JobQueue
from chauffeur_booking.services.confirmation import BookingConfirmer, ExtensionConfirmer
from chauffeur_booking.services.notifications import NotificationService
from chauffeur_booking.services.payouts import PayoutService
from chauffeur_booking.services.reconciliation import ChargeCompletedEvent, ChargeCompletedHandler
from chauffeur_booking.services.status_change import StatusChangeService
from chauffeur_booking.utils.razorpay_client import RazorpayGateway

import chauffeur_booking.db.base  # noqa: F401


@contextmanager
def session_scope():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _notifications():
    return NotificationService(JobQueue(get_queue_connection(), NOTIFICATIONS_QUEUE))


def _payouts(db):
    return PayoutService(db, JobQueue(get_queue_connection(), PAYOUTS_QUEUE))


def _status_changes(db):
    return StatusChangeService(db, _notifications(), _payouts(db))


# ---------------------------------------------------------------------
# HANDLERS
# ---------------------------------------------------------------------
def handle_confirmed_to_active(data: dict):
    with session_scope() as db:
        return {"updated": _status_changes(db).update_confirmed_to_active()}


def handle_active_to_completed(data: dict):
    with session_scope() as db:
        return {"updated": _status_changes(db).update_active_to_completed()}


def handle_charge_completed(data: dict):
    with session_scope() as db:
        notifications = _notifications()
        handler = ChargeCompletedHandler(
            db,
            RazorpayGateway(),
            BookingConfirmer(db, notifications),
            ExtensionConfirmer(db, notifications),
        )
        return {"outcome": handler.handle(ChargeCompletedEvent.from_payload(data))}


def handle_process_payout(data: dict):
    with session_scope() as db:
        payout = PayoutService(db).process_payout(int(data["booking_id"]))
        return {"payout_id": payout.id if payout else None}

