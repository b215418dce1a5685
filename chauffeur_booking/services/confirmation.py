"""Flip a booking or extension to paid once its payment is recorded.

Both confirmers run from the reconciliation job and may race with replays or
other workers; each status flip is a conditional update on the pre-paid state,
so only one caller ever wins.
"""

from decimal import Decimal
from sqlalchemy.orm import Session

from chauffeur_booking.core.config import PRICE_TOLERANCE
from chauffeur_booking.core.logging_config import get_logger
from chauffeur_booking.models.booking import Booking, BookingLeg
from chauffeur_booking.models.enums import BookingStatus, ExtensionStatus, PaymentStatus
from chauffeur_booking.models.extension import Extension
from chauffeur_booking.models.payment import Payment
from chauffeur_booking.services.notifications import NotificationService

logger = get_logger("payment")


def amounts_match(charged, expected) -> bool:
    return abs(Decimal(charged) - Decimal(expected)) <= PRICE_TOLERANCE


class BookingConfirmer:
    def __init__(self, db: Session, notifications: NotificationService):
        self.db = db
        self.notifications = notifications

    def confirm_from_payment(self, payment: Payment) -> bool:
        if not payment.booking_id:
            logger.warning(f"Payment has no booking, skipping | payment={payment.id} | tx_ref={payment.tx_ref}")
            return False

        booking = self.db.query(Booking).filter(Booking.id == payment.booking_id).first()
        if not booking:
            return False

        if not amounts_match(payment.amount_charged, booking.total_amount):
            logger.warning(
                f"Booking amount mismatch, not confirming | booking={booking.id} | "
                f"expected={booking.total_amount} | charged={payment.amount_charged}"
            )
            return False

        updated = (
            self.db.query(Booking)
            .filter(
                Booking.id == booking.id,
                Booking.status == BookingStatus.PENDING,
                Booking.payment_status == PaymentStatus.UNPAID,
            )
            .update(
                {"status": BookingStatus.CONFIRMED, "payment_status": PaymentStatus.PAID},
                synchronize_session=False,
            )
        )
        self.db.commit()

        if updated == 0:
            logger.info(f"Booking not PENDING, skipping confirmation | booking={booking.id} | tx_ref={payment.tx_ref}")
            return False

        self.db.refresh(booking)
        logger.info(f"Booking confirmed after payment | booking={booking.id} | tx_ref={payment.tx_ref}")

        try:
            self.notifications.booking_confirmed(booking)
        except Exception as e:
            logger.error(f"Failed to queue booking confirmation | booking={booking.id} | error={e}")

        return True


class ExtensionConfirmer:
    def __init__(self, db: Session, notifications: NotificationService):
        self.db = db
        self.notifications = notifications

    def confirm_from_payment(self, payment: Payment) -> bool:
        if not payment.extension_id:
            logger.warning(f"Payment has no extension, skipping | payment={payment.id} | tx_ref={payment.tx_ref}")
            return False

        extension = self.db.query(Extension).filter(Extension.id == payment.extension_id).first()
        if not extension:
            return False

        if not amounts_match(payment.amount_charged, extension.total_amount):
            logger.warning(
                f"Extension amount mismatch, not confirming | extension={extension.id} | "
                f"expected={extension.total_amount} | charged={payment.amount_charged}"
            )
            return False

        updated = (
            self.db.query(Extension)
            .filter(
                Extension.id == extension.id,
                Extension.status == ExtensionStatus.PENDING,
                Extension.payment_status == PaymentStatus.UNPAID,
            )
            .update(
                {
                    "status": ExtensionStatus.ACTIVE,
                    "payment_status": PaymentStatus.PAID,
                    "payment_id": payment.id,
                },
                synchronize_session=False,
            )
        )

        if updated == 0:
            self.db.rollback()
            logger.info(f"Extension already confirmed or superseded | extension={extension.id} | tx_ref={payment.tx_ref}")
            return False

        leg = extension.booking_leg
        # Only ever move ends forward; concurrent confirmations cannot shrink them
        self.db.query(BookingLeg).filter(
            BookingLeg.id == leg.id,
            BookingLeg.leg_end_time < extension.extension_end_time,
        ).update({"leg_end_time": extension.extension_end_time}, synchronize_session=False)
        self.db.query(Booking).filter(
            Booking.id == leg.booking_id,
            Booking.end_date < extension.extension_end_time,
        ).update({"end_date": extension.extension_end_time}, synchronize_session=False)
        self.db.commit()

        self.db.refresh(extension)
        booking = extension.booking_leg.booking
        logger.info(f"Extension confirmed after payment | extension={extension.id} | tx_ref={payment.tx_ref}")

        try:
            self.notifications.extension_confirmed(booking, extension)
        except Exception as e:
            logger.error(f"Failed to queue extension confirmation | extension={extension.id} | error={e}")

        return True
