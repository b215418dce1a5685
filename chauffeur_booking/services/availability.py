from datetime import datetime, timedelta
from sqlalchemy.orm import Session

from chauffeur_booking.core.config import BOOKING_BUFFER_HOURS
from chauffeur_booking.core.errors import ConflictError, NotFoundError
from chauffeur_booking.core.logging_config import get_logger
from chauffeur_booking.models.booking import Booking
from chauffeur_booking.models.car import Car
from chauffeur_booking.models.enums import (
    BookingStatus, CarApprovalStatus, CarStatus, PaymentStatus
)
from chauffeur_booking.schemas.booking import FieldError, ValidationResult

logger = get_logger("booking")

CAR_NOT_FOUND = "Car not found"
NOT_BOOKABLE = "This vehicle is not available for booking"
DATES_TAKEN = (
    "Car is not available for the selected dates. "
    "Please choose different dates or another vehicle."
)

STATUS_MESSAGES = {
    CarStatus.BOOKED: "This vehicle is currently booked",
    CarStatus.HOLD: "This vehicle is temporarily unavailable",
    CarStatus.IN_SERVICE: "This vehicle is currently under maintenance",
}

# Only paid, live bookings block the car
BLOCKING_STATUSES = (BookingStatus.CONFIRMED, BookingStatus.ACTIVE)


def buffered_window(start: datetime, end: datetime):
    buffer = timedelta(hours=BOOKING_BUFFER_HOURS)
    return start - buffer, end + buffer


class AvailabilityChecker:
    def __init__(self, db: Session):
        self.db = db

    def check_availability(
        self,
        car_id: int,
        start: datetime,
        end: datetime,
        exclude_booking_id: int | None = None,
    ) -> ValidationResult:
        car = self.db.query(Car).filter(Car.id == car_id).first()
        if not car:
            return ValidationResult.from_errors([FieldError(field="carId", message=CAR_NOT_FOUND)])

        if car.approval_status != CarApprovalStatus.APPROVED:
            logger.info(f"Attempt to book unapproved car | car={car_id} | approval={car.approval_status.value}")
            return ValidationResult.from_errors([FieldError(field="carId", message=NOT_BOOKABLE)])

        if car.status != CarStatus.AVAILABLE:
            logger.info(f"Attempt to book unavailable car | car={car_id} | status={car.status.value}")
            message = STATUS_MESSAGES.get(car.status, NOT_BOOKABLE)
            return ValidationResult.from_errors([FieldError(field="carId", message=message)])

        return self.check_window(car_id, start, end, exclude_booking_id)

    def check_window(
        self,
        car_id: int,
        start: datetime,
        end: datetime,
        exclude_booking_id: int | None = None,
    ) -> ValidationResult:
        """Overlap check only; the car itself is assumed bookable."""
        buffered_start, buffered_end = buffered_window(start, end)

        query = self.db.query(
            Booking.id, Booking.booking_reference, Booking.start_date, Booking.end_date
        ).filter(
            Booking.car_id == car_id,
            Booking.status.in_(BLOCKING_STATUSES),
            Booking.payment_status == PaymentStatus.PAID,
            # strict on both sides: touching the buffer edge is not a conflict
            Booking.start_date < buffered_end,
            Booking.end_date > buffered_start,
        )
        if exclude_booking_id is not None:
            query = query.filter(Booking.id != exclude_booking_id)

        conflicts = query.all()

        if conflicts:
            # details stay in the log; other customers' bookings are not exposed
            logger.info(
                f"Car availability conflict | car={car_id} | requested={start.isoformat()}..{end.isoformat()} | "
                + ", ".join(
                    f"{c.booking_reference}({c.start_date.isoformat()}..{c.end_date.isoformat()})"
                    for c in conflicts
                )
            )
            return ValidationResult.from_errors([FieldError(field="carId", message=DATES_TAKEN)])

        return ValidationResult.from_errors([])

    def ensure_available(self, car_id, start, end, exclude_booking_id=None):
        result = self.check_availability(car_id, start, end, exclude_booking_id)
        if result.valid:
            return

        message = result.errors[0].message
        if message == CAR_NOT_FOUND:
            raise NotFoundError(f"Car with ID {car_id} was not found")
        raise ConflictError(message, [e.model_dump() for e in result.errors])
