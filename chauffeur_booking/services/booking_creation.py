import secrets
import string
from dataclasses import dataclass
from decimal import Decimal
from sqlalchemy.orm import Session

from chauffeur_booking.core.errors import ValidationError
from chauffeur_booking.core.logging_config import get_logger
from chauffeur_booking.models.booking import Booking, BookingLeg
from chauffeur_booking.models.car import Car
from chauffeur_booking.models.enums import BookingStatus, PaymentStatus
from chauffeur_booking.schemas.booking import BookingCreate
from chauffeur_booking.services.availability import AvailabilityChecker
from chauffeur_booking.services.date_validator import ensure_valid_dates, validate_price_match
from chauffeur_booking.services.legs import generate_legs
from chauffeur_booking.services.rates import RatesService
from chauffeur_booking.utils.pricing import calculate_booking_price
from chauffeur_booking.utils.razorpay_client import new_tx_ref

logger = get_logger("booking")

TX_REF_PREFIX = "bk"
TRANSACTION_TYPE = "booking_creation"
REFERENCE_ALPHABET = string.ascii_uppercase + string.digits


def generate_booking_reference() -> str:
    return "BK-" + "".join(secrets.choice(REFERENCE_ALPHABET) for _ in range(8))


@dataclass(frozen=True)
class BookingCreationResult:
    booking_id: int
    booking_reference: str
    total_amount: Decimal
    payment_intent_id: str
    checkout_url: str


class BookingCreationService:
    def __init__(self, db: Session, gateway, rates: RatesService, availability: AvailabilityChecker):
        self.db = db
        self.gateway = gateway
        self.rates = rates
        self.availability = availability

    def create_booking(self, data: BookingCreate, user=None, now=None) -> BookingCreationResult:
        if user is None and not (data.guest_email and data.guest_name):
            raise ValidationError([
                {"field": "guestEmail", "message": "Guest email is required"},
                {"field": "guestName", "message": "Guest name is required"},
            ])

        ensure_valid_dates(data.start_date, data.end_date, data.booking_type, now)

        legs = generate_legs(data.booking_type, data.start_date, data.end_date)
        if not legs:
            raise ValidationError.for_field("endDate", "Booking must cover at least one leg")

        # legs can run past the requested end (a DAY leg is always 12h), so
        # the car must be free for the span that is actually stored
        start_date, end_date = legs[0].leg_start_time, legs[-1].leg_end_time
        self.availability.ensure_available(data.car_id, start_date, end_date)

        car = self.db.query(Car).filter(Car.id == data.car_id).one()
        price = calculate_booking_price(car, data.booking_type, len(legs), self.rates.get_rates())
        validate_price_match(data.client_total_amount, price.total_amount)

        booking = Booking(
            car_id=car.id,
            user_id=user.id if user else None,
            guest_email=None if user else data.guest_email,
            guest_name=None if user else data.guest_name,
            booking_reference=generate_booking_reference(),
            type=data.booking_type,
            status=BookingStatus.PENDING,
            payment_status=PaymentStatus.UNPAID,
            start_date=start_date,
            end_date=end_date,
            legs=[
                BookingLeg(
                    leg_date=leg.leg_date,
                    leg_start_time=leg.leg_start_time,
                    leg_end_time=leg.leg_end_time,
                )
                for leg in legs
            ],
            **price.as_columns(),
        )

        try:
            self.db.add(booking)
            self.db.flush()

            tx_ref = new_tx_ref(TX_REF_PREFIX, booking.id)
            intent = self.gateway.create_payment_intent(
                amount=price.total_amount,
                tx_ref=tx_ref,
                customer={"name": booking.customer_name, "email": booking.customer_email},
                transaction_type=TRANSACTION_TYPE,
                metadata={"booking_id": str(booking.id), "booking_reference": booking.booking_reference},
                callback_url=data.callback_url,
            )
            booking.payment_intent = tx_ref
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            f"Booking created | booking={booking.id} | ref={booking.booking_reference} | car={car.id} | "
            f"type={booking.type.value} | legs={len(legs)} | total={price.total_amount}"
        )

        return BookingCreationResult(
            booking_id=booking.id,
            booking_reference=booking.booking_reference,
            total_amount=price.total_amount,
            payment_intent_id=intent.payment_intent_id,
            checkout_url=intent.checkout_url,
        )
