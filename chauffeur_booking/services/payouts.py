from decimal import Decimal
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from chauffeur_booking.core.config import JOB_ATTEMPTS, PAYMENT_CURRENCY, PROCESS_PAYOUT_JOB
from chauffeur_booking.core.errors import NotFoundError
from chauffeur_booking.core.logging_config import get_logger
from chauffeur_booking.jobs.queue import JobQueue
from chauffeur_booking.models.booking import Booking, BookingLeg
from chauffeur_booking.models.enums import (
    BookingStatus, ExtensionStatus, PaymentStatus, PayoutStatus
)
from chauffeur_booking.models.extension import Extension
from chauffeur_booking.models.payment import PayoutTransaction

logger = get_logger("payment")


class PayoutService:
    """Fleet-owner payouts for completed bookings, one row per booking."""

    def __init__(self, db: Session, queue: JobQueue | None = None):
        self.db = db
        self.queue = queue

    def queue_payout(self, booking_id: int) -> str:
        job_id = f"payout-{booking_id}"
        self.queue.enqueue(
            PROCESS_PAYOUT_JOB,
            {"booking_id": booking_id},
            job_id=job_id,
            attempts=JOB_ATTEMPTS,
        )
        return job_id

    def payout_amount(self, booking: Booking) -> Decimal:
        extensions_total = (
            self.db.query(func.coalesce(func.sum(Extension.fleet_owner_payout_amount_net), 0))
            .join(BookingLeg, Extension.booking_leg_id == BookingLeg.id)
            .filter(
                BookingLeg.booking_id == booking.id,
                Extension.status == ExtensionStatus.ACTIVE,
                Extension.payment_status == PaymentStatus.PAID,
            )
            .scalar()
        )
        return Decimal(booking.fleet_owner_payout_amount_net) + Decimal(extensions_total)

    def process_payout(self, booking_id: int) -> PayoutTransaction | None:
        booking = self.db.query(Booking).filter(Booking.id == booking_id).first()
        if not booking:
            raise NotFoundError(f"Booking with ID {booking_id} was not found")

        if booking.status != BookingStatus.COMPLETED:
            logger.warning(f"Payout skipped, booking not completed | booking={booking_id} | status={booking.status.value}")
            return None

        existing = self.db.query(PayoutTransaction).filter(PayoutTransaction.booking_id == booking_id).first()
        if existing:
            logger.info(f"Payout already exists | booking={booking_id} | payout={existing.id}")
            return existing

        payout = PayoutTransaction(
            booking_id=booking.id,
            fleet_owner_id=booking.car.owner_id,
            amount=self.payout_amount(booking),
            currency=PAYMENT_CURRENCY,
            status=PayoutStatus.PENDING,
        )
        self.db.add(payout)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            return self.db.query(PayoutTransaction).filter(PayoutTransaction.booking_id == booking_id).one()

        logger.info(f"Payout created | booking={booking_id} | amount={payout.amount} | owner={payout.fleet_owner_id}")
        return payout
