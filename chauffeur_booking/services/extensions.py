"""Hourly extensions of an in-progress DAY booking.

Extensions always attach to the booking's latest leg and may never run past
midnight of that leg's day. While an extension is unpaid, further requests
grow the same row instead of stacking new ones, so a customer who extends
twice before paying ends up with one bill covering the whole span.
"""

from dataclasses import dataclass
from datetime import datetime, time, timedelta
from decimal import Decimal
from sqlalchemy.orm import Session

from chauffeur_booking.core.errors import ConflictError, NotFoundError, ValidationError
from chauffeur_booking.core.logging_config import get_logger
from chauffeur_booking.models.booking import Booking, BookingLeg
from chauffeur_booking.models.enums import (
    BookingStatus, BookingType, ExtensionStatus, PaymentStatus
)
from chauffeur_booking.models.extension import Extension
from chauffeur_booking.services.availability import AvailabilityChecker
from chauffeur_booking.services.rates import RatesService
from chauffeur_booking.utils.clock import now_local
from chauffeur_booking.utils.pricing import calculate_extension_price
from chauffeur_booking.utils.razorpay_client import new_tx_ref

logger = get_logger("booking")

TX_REF_PREFIX = "ext"
TRANSACTION_TYPE = "booking_extension"


@dataclass(frozen=True)
class ExtensionResult:
    extension_id: int
    payment_intent_id: str
    checkout_url: str
    extension_start_time: datetime
    extension_end_time: datetime
    total_amount: Decimal


@dataclass(frozen=True)
class ExtensionWindow:
    anchor: datetime  # end of the paid time on the leg
    current_end: datetime
    max_end: datetime
    mergeable: Extension | None
    stale: list

    @property
    def remaining_hours(self) -> int:
        return int((self.max_end - self.current_end).total_seconds() // 3600)


def resolve_window(leg: BookingLeg, extensions: list) -> ExtensionWindow:
    paid_ends = [
        e.extension_end_time
        for e in extensions
        if e.status == ExtensionStatus.ACTIVE and e.payment_status == PaymentStatus.PAID
    ]
    anchor = max([leg.leg_end_time] + paid_ends)

    pending = [
        e for e in extensions
        if e.status == ExtensionStatus.PENDING and e.payment_status == PaymentStatus.UNPAID
    ]
    mergeable = next((e for e in pending if e.extension_start_time == anchor), None)
    stale = [e for e in pending if e is not mergeable]

    return ExtensionWindow(
        anchor=anchor,
        current_end=mergeable.extension_end_time if mergeable else anchor,
        max_end=datetime.combine(leg.leg_date + timedelta(days=1), time.min),
        mergeable=mergeable,
        stale=stale,
    )


class ExtensionManager:
    def __init__(self, db: Session, gateway, rates: RatesService, availability: AvailabilityChecker):
        self.db = db
        self.gateway = gateway
        self.rates = rates
        self.availability = availability

    def create_extension(self, booking_id: int, hours: int, user, callback_url=None, now=None) -> ExtensionResult:
        now = now or now_local()

        if hours < 1:
            raise ValidationError.for_field("hours", "Extension must be at least 1 hour")

        booking = self.db.query(Booking).filter(
            Booking.id == booking_id,
            Booking.user_id == user.id,
            Booking.status == BookingStatus.ACTIVE,
        ).first()
        if not booking:
            raise NotFoundError(f"Active booking with ID {booking_id} was not found")

        if booking.type != BookingType.DAY:
            raise ValidationError.for_field("bookingId", "Only DAY bookings can be extended")

        try:
            result = self._extend_latest_leg(booking, hours, callback_url, now)
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            f"Extension requested | booking={booking.id} | extension={result.extension_id} | "
            f"hours={hours} | window={result.extension_start_time.isoformat()}..{result.extension_end_time.isoformat()}"
        )
        return result

    def _extend_latest_leg(self, booking: Booking, hours: int, callback_url, now: datetime) -> ExtensionResult:
        # row lock serialises concurrent merge-vs-create decisions on the leg
        leg = (
            self.db.query(BookingLeg)
            .filter(BookingLeg.booking_id == booking.id)
            .order_by(BookingLeg.leg_date.desc())
            .with_for_update()
            .first()
        )
        if not leg:
            raise NotFoundError(f"Booking {booking.id} has no legs")

        extensions = self.db.query(Extension).filter(
            Extension.booking_leg_id == leg.id,
            Extension.status != ExtensionStatus.CANCELLED,
        ).all()
        window = resolve_window(leg, extensions)

        remaining = window.remaining_hours if now < window.max_end else 0
        if remaining < 1:
            raise ValidationError.for_field("hours", "Booking can no longer be extended today")
        if hours > remaining:
            raise ValidationError.for_field("hours", f"Maximum extension is {remaining} hour(s) for today")

        proposed_end = window.current_end + timedelta(hours=hours)

        availability = self.availability.check_window(
            booking.car_id, window.anchor, proposed_end, exclude_booking_id=booking.id
        )
        if not availability.valid:
            raise ConflictError(
                availability.errors[0].message, [e.model_dump() for e in availability.errors]
            )

        superseded = window.stale + ([window.mergeable] if window.mergeable else [])
        self._cancel_checkout_links(superseded)

        if window.stale:
            self._retire(window.stale)

        span_hours = int((proposed_end - window.anchor).total_seconds() // 3600)
        price = calculate_extension_price(booking.car, span_hours, self.rates.get_rates())

        if window.mergeable:
            extension = window.mergeable
        else:
            extension = Extension(
                booking_leg_id=leg.id,
                extension_start_time=window.anchor,
                extension_end_time=proposed_end,
                extended_duration_hours=span_hours,
                status=ExtensionStatus.PENDING,
                payment_status=PaymentStatus.UNPAID,
                **price.as_columns(),
            )
            self.db.add(extension)
            self.db.flush()

        tx_ref = new_tx_ref(TX_REF_PREFIX, extension.id)
        intent = self.gateway.create_payment_intent(
            amount=price.total_amount,
            tx_ref=tx_ref,
            customer={"name": booking.customer_name, "email": booking.customer_email},
            transaction_type=TRANSACTION_TYPE,
            metadata={
                "booking_id": str(booking.id),
                "booking_reference": booking.booking_reference,
                "extension_id": str(extension.id),
            },
            callback_url=callback_url,
        )

        if window.mergeable:
            # the row may have been paid since we read it; never touch a paid row
            updated = self.db.query(Extension).filter(
                Extension.id == extension.id,
                Extension.status == ExtensionStatus.PENDING,
                Extension.payment_status == PaymentStatus.UNPAID,
            ).update(
                {
                    "extension_end_time": proposed_end,
                    "extended_duration_hours": span_hours,
                    "payment_intent": tx_ref,
                    **price.as_columns(),
                },
                synchronize_session=False,
            )
            if updated == 0:
                raise ConflictError("Extension was updated concurrently. Please try again.")
        else:
            extension.payment_intent = tx_ref

        self.db.commit()

        return ExtensionResult(
            extension_id=extension.id,
            payment_intent_id=intent.payment_intent_id,
            checkout_url=intent.checkout_url,
            extension_start_time=window.anchor,
            extension_end_time=proposed_end,
            total_amount=price.total_amount,
        )

    def _cancel_checkout_links(self, rows: list):
        """Old links must stop taking money before their rows move to a new tx_ref."""
        for row in rows:
            if not row.payment_intent:
                continue
            if not self.gateway.cancel_payment_intent(row.payment_intent):
                raise ConflictError(
                    "A pending extension payment is already being processed. Please try again shortly."
                )

    def _retire(self, stale: list):
        ids = [e.id for e in stale]
        self.db.query(Extension).filter(
            Extension.id.in_(ids),
            Extension.status == ExtensionStatus.PENDING,
            Extension.payment_status == PaymentStatus.UNPAID,
        ).update({"status": ExtensionStatus.CANCELLED}, synchronize_session=False)
        logger.info(f"Retired stale unpaid extensions | ids={ids}")
