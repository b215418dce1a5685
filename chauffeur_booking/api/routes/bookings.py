from dataclasses import asdict
from datetime import datetime
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from chauffeur_booking.core.dependencies import (
    get_cancellation_service,
    get_booking_creation_service,
    get_current_user,
    get_db,
    get_extension_manager,
    get_optional_user,
)
from chauffeur_booking.core.logging_config import get_logger
from chauffeur_booking.models.enums import BookingType
from chauffeur_booking.schemas.booking import (
    AvailabilityOut,
    BookingCancel,
    BookingCreate,
    BookingCreated,
    BookingOut,
    ExtensionCreate,
    ExtensionCreated,
)
from chauffeur_booking.services.availability import AvailabilityChecker
from chauffeur_booking.services.date_validator import validate_dates

router = APIRouter(prefix="/bookings", tags=["Bookings"])
logger = get_logger("booking")


# ---------------------------------------------------------------------
# CREATE BOOKING
# ---------------------------------------------------------------------
@router.post("/", response_model=BookingCreated, status_code=201)
def create_booking(
    data: BookingCreate,
    user=Depends(get_optional_user),
    service=Depends(get_booking_creation_service),
):
    result = service.create_booking(data, user)
    return BookingCreated(**asdict(result))


# ---------------------------------------------------------------------
# CHECK AVAILABILITY
# ---------------------------------------------------------------------
@router.get("/availability", response_model=AvailabilityOut)
def check_availability(
    car_id: int,
    start_date: datetime,
    end_date: datetime,
    booking_type: BookingType = BookingType.DAY,
    db: Session = Depends(get_db),
):
    dates = validate_dates(start_date, end_date, booking_type)
    if not dates.valid:
        return AvailabilityOut(car_id=car_id, available=False, errors=dates.errors)

    result = AvailabilityChecker(db).check_availability(car_id, start_date, end_date)
    return AvailabilityOut(car_id=car_id, available=result.valid, errors=result.errors)


# ---------------------------------------------------------------------
# EXTEND BOOKING
# ---------------------------------------------------------------------
@router.post("/{booking_id}/extensions", response_model=ExtensionCreated, status_code=201)
def extend_booking(
    booking_id: int,
    data: ExtensionCreate,
    user=Depends(get_current_user),
    manager=Depends(get_extension_manager),
):
    result = manager.create_extension(booking_id, data.hours, user, callback_url=data.callback_url)
    return ExtensionCreated(**asdict(result))


# ---------------------------------------------------------------------
# CANCEL BOOKING
# ---------------------------------------------------------------------
@router.post("/{booking_id}/cancel", response_model=BookingOut)
def cancel_booking(
    booking_id: int,
    data: BookingCancel,
    user=Depends(get_current_user),
    service=Depends(get_cancellation_service),
):
    return service.cancel_booking(booking_id, user, data.reason)
