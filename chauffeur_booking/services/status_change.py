"""Time-driven status transitions.

Both transitions are safe to re-run at any time: the bulk update is guarded by
the current status, so a replayed or overlapping trigger changes nothing that
already moved. Side effects run only after the status change is committed and
never undo it.
"""

from datetime import datetime
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from chauffeur_booking.core.logging_config import get_logger
from chauffeur_booking.models.booking import Booking, BookingLeg
from chauffeur_booking.models.enums import BookingStatus, ExtensionStatus, PaymentStatus
from chauffeur_booking.models.extension import Extension
from chauffeur_booking.services.notifications import NotificationService
from chauffeur_booking.services.payouts import PayoutService
from chauffeur_booking.utils.clock import now_local

logger = get_logger("scheduler")


def effective_end_date():
    """Latest paid extension end across the booking's legs, else its end date."""
    latest_extension_end = (
        select(func.max(Extension.extension_end_time))
        .join(BookingLeg, Extension.booking_leg_id == BookingLeg.id)
        .where(
            BookingLeg.booking_id == Booking.id,
            Extension.status == ExtensionStatus.ACTIVE,
            Extension.payment_status == PaymentStatus.PAID,
        )
        .correlate(Booking)
        .scalar_subquery()
    )
    return func.coalesce(latest_extension_end, Booking.end_date)


class StatusChangeService:
    def __init__(self, db: Session, notifications: NotificationService, payouts: PayoutService):
        self.db = db
        self.notifications = notifications
        self.payouts = payouts

    def update_confirmed_to_active(self, now: datetime | None = None) -> int:
        now = now or now_local()
        ids = [
            row.id
            for row in self.db.query(Booking.id).filter(
                Booking.status == BookingStatus.CONFIRMED,
                Booking.payment_status == PaymentStatus.PAID,
                Booking.start_date <= now,
            )
        ]
        return self._transition(ids, BookingStatus.CONFIRMED, BookingStatus.ACTIVE)

    def update_active_to_completed(self, now: datetime | None = None) -> int:
        now = now or now_local()
        ids = [
            row.id
            for row in self.db.query(Booking.id).filter(
                Booking.status == BookingStatus.ACTIVE,
                Booking.payment_status == PaymentStatus.PAID,
                effective_end_date() <= now,
            )
        ]
        return self._transition(ids, BookingStatus.ACTIVE, BookingStatus.COMPLETED)

    def _transition(self, ids: list[int], old: BookingStatus, new: BookingStatus) -> int:
        if not ids:
            logger.info(f"No bookings to move from {old.value} to {new.value}")
            return 0

        updated = (
            self.db.query(Booking)
            .filter(Booking.id.in_(ids), Booking.status == old)
            .update({"status": new}, synchronize_session=False)
        )
        self.db.commit()
        logger.info(f"Moved {updated} booking(s) from {old.value} to {new.value} | ids={ids}")

        for booking in self.db.query(Booking).filter(Booking.id.in_(ids), Booking.status == new).all():
            self._after_transition(booking, old, new)

        return updated

    # -------- SIDE EFFECTS --------
    def _after_transition(self, booking: Booking, old: BookingStatus, new: BookingStatus):
        try:
            self.notifications.status_changed(booking, old, new)
        except Exception as e:
            logger.error(f"Status notification failed | booking={booking.id} | error={e}")

        if new != BookingStatus.COMPLETED:
            return

        try:
            self.notifications.review_request(booking)
        except Exception as e:
            logger.error(f"Review request failed | booking={booking.id} | error={e}")

        try:
            self.payouts.queue_payout(booking.id)
        except Exception as e:
            logger.error(f"Payout queueing failed | booking={booking.id} | error={e}")
