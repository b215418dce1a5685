"""Stateless business rules for a proposed booking window.

Every rule runs on every call so the caller gets all violations at once.
"""

from datetime import datetime, timedelta
from decimal import Decimal, InvalidOperation

from chauffeur_booking.core.config import (
    AIRPORT_PICKUP_MIN_ADVANCE_HOURS,
    PRICE_TOLERANCE,
    SAME_DAY_BOOKING_CUTOFF_HOUR,
)
from chauffeur_booking.core.errors import ValidationError
from chauffeur_booking.core.logging_config import get_logger
from chauffeur_booking.models.enums import BookingType
from chauffeur_booking.schemas.booking import FieldError, ValidationResult
from chauffeur_booking.utils.clock import now_local

logger = get_logger("booking")


def validate_dates(
    start: datetime,
    end: datetime,
    booking_type: BookingType,
    now: datetime | None = None,
) -> ValidationResult:
    now = now or now_local()
    errors: list[FieldError] = []

    # zero-duration bookings are rejected too
    if end <= start:
        errors.append(FieldError(field="endDate", message="End date must be after start date"))

    if booking_type == BookingType.AIRPORT_PICKUP:
        if start < now + timedelta(hours=AIRPORT_PICKUP_MIN_ADVANCE_HOURS):
            errors.append(FieldError(
                field="startDate",
                message="Airport pickup bookings require at least 1 hour advance notice",
            ))
    else:
        if start < now:
            errors.append(FieldError(
                field="startDate",
                message="Booking start time cannot be in the past",
            ))

        if (
            booking_type == BookingType.DAY
            and start.date() == now.date()
            and now.hour >= SAME_DAY_BOOKING_CUTOFF_HOUR
        ):
            errors.append(FieldError(
                field="startDate",
                message=f"Same-day DAY bookings cannot be made at or after {SAME_DAY_BOOKING_CUTOFF_HOUR} AM",
            ))

    return ValidationResult.from_errors(errors)


def ensure_valid_dates(start, end, booking_type, now=None):
    result = validate_dates(start, end, booking_type, now)
    if not result.valid:
        raise ValidationError([e.model_dump() for e in result.errors])


def validate_price_match(client_total: str | None, server_total: Decimal):
    """Reject a client total that drifted from the server calculation."""
    if not client_total:
        return

    try:
        client_decimal = Decimal(client_total)
    except InvalidOperation:
        raise ValidationError.for_field("clientTotalAmount", "Invalid price format")

    difference = abs(client_decimal - server_total)
    if difference > PRICE_TOLERANCE:
        logger.warning(
            f"Price mismatch | client={client_decimal} | server={server_total} | diff={difference}"
        )
        raise ValidationError.for_field(
            "clientTotalAmount", "Price mismatch. Please refresh and try again."
        )
