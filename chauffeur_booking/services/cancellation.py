from sqlalchemy.orm import Session

from chauffeur_booking.core.errors import ConflictError, NotFoundError
from chauffeur_booking.core.logging_config import get_logger
from chauffeur_booking.models.booking import Booking
from chauffeur_booking.models.enums import BookingStatus
from chauffeur_booking.services.notifications import NotificationService
from chauffeur_booking.utils.clock import now_local

logger = get_logger("booking")

CANCELLABLE_STATUSES = (BookingStatus.PENDING, BookingStatus.CONFIRMED, BookingStatus.ACTIVE)


class BookingCancellationService:
    def __init__(self, db: Session, notifications: NotificationService):
        self.db = db
        self.notifications = notifications

    def cancel_booking(self, booking_id: int, user, reason: str) -> Booking:
        booking = self.db.query(Booking).filter(
            Booking.id == booking_id,
            Booking.user_id == user.id,
        ).first()
        if not booking:
            raise NotFoundError(f"Booking with ID {booking_id} was not found")

        updated = (
            self.db.query(Booking)
            .filter(Booking.id == booking.id, Booking.status.in_(CANCELLABLE_STATUSES))
            .update(
                {
                    "status": BookingStatus.CANCELLED,
                    "cancelled_at": now_local(),
                    "cancellation_reason": reason,
                },
                synchronize_session=False,
            )
        )
        self.db.commit()

        if updated == 0:
            raise ConflictError(f"Booking cannot be cancelled while {booking.status.value}")

        self.db.refresh(booking)
        logger.info(f"Booking cancelled | booking={booking.id} | reason={reason}")

        try:
            self.notifications.booking_cancelled(booking)
        except Exception as e:
            logger.error(f"Failed to queue cancellation notification | booking={booking.id} | error={e}")

        return booking
