from pydantic import BaseModel, EmailStr, Field
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from chauffeur_booking.models.enums import BookingStatus, BookingType, PaymentStatus


class FieldError(BaseModel):
    field: str
    message: str


class ValidationResult(BaseModel):
    valid: bool
    errors: List[FieldError] = []

    @classmethod
    def from_errors(cls, errors: List[FieldError]):
        return cls(valid=not errors, errors=errors)


# ---------------- BOOKING CREATE ----------------
class BookingCreate(BaseModel):
    car_id: int
    booking_type: BookingType
    start_date: datetime
    end_date: datetime

    # Guest checkout (no token)
    guest_email: Optional[EmailStr] = None
    guest_name: Optional[str] = None

    client_total_amount: Optional[str] = None
    callback_url: Optional[str] = None


class BookingCreated(BaseModel):
    booking_id: int
    booking_reference: str
    total_amount: Decimal
    payment_intent_id: str
    checkout_url: str


class LegOut(BaseModel):
    id: int
    leg_date: date
    leg_start_time: datetime
    leg_end_time: datetime

    model_config = {"from_attributes": True}


class BookingOut(BaseModel):
    id: int
    car_id: int
    booking_reference: str
    type: BookingType
    status: BookingStatus
    payment_status: PaymentStatus
    start_date: datetime
    end_date: datetime
    total_amount: Decimal
    legs: List[LegOut] = []

    model_config = {"from_attributes": True}


class BookingCancel(BaseModel):
    reason: str = Field(default="Cancelled by customer", max_length=500)


class AvailabilityOut(BaseModel):
    car_id: int
    available: bool
    errors: List[FieldError] = []


# ---------------- EXTENSIONS ----------------
class ExtensionCreate(BaseModel):
    hours: int
    callback_url: Optional[str] = None


class ExtensionCreated(BaseModel):
    extension_id: int
    payment_intent_id: str
    checkout_url: str
    extension_start_time: datetime
    extension_end_time: datetime
    total_amount: Decimal
