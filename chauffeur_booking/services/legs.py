import math
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

from chauffeur_booking.core.config import (
    DAY_BOOKING_DURATION_HOURS,
    NIGHT_END_HOUR,
    NIGHT_START_HOUR,
)
from chauffeur_booking.models.enums import BookingType


@dataclass(frozen=True)
class GeneratedLeg:
    leg_date: date
    leg_start_time: datetime
    leg_end_time: datetime


def _last_day(start: datetime, end: datetime) -> date:
    # an end exactly at midnight belongs to the previous day
    if end.time() == time.min and end > start:
        return (end - timedelta(microseconds=1)).date()
    return end.date()


def _days(start: datetime, end: datetime):
    day = start.date()
    last = max(_last_day(start, end), day)
    while day <= last:
        yield day
        day += timedelta(days=1)


def generate_day_legs(start: datetime, end: datetime) -> list[GeneratedLeg]:
    """One leg per calendar day, each starting at the pickup time."""
    pickup = start.time().replace(second=0, microsecond=0)
    legs = []
    for day in _days(start, end):
        leg_start = datetime.combine(day, pickup)
        legs.append(GeneratedLeg(day, leg_start, leg_start + timedelta(hours=DAY_BOOKING_DURATION_HOURS)))
    return legs


def generate_night_legs(start: datetime, end: datetime) -> list[GeneratedLeg]:
    hours = (end - start).total_seconds() / 3600
    nights = max(1, math.ceil(hours / 24))

    legs = []
    for i in range(nights):
        night = start.date() + timedelta(days=i)
        legs.append(GeneratedLeg(
            night,
            datetime.combine(night, time(hour=NIGHT_START_HOUR)),
            datetime.combine(night + timedelta(days=1), time(hour=NIGHT_END_HOUR)),
        ))
    return legs


def generate_airport_pickup_legs(start: datetime, end: datetime) -> list[GeneratedLeg]:
    return [GeneratedLeg(start.date(), start, end)]


LEG_GENERATORS = {
    BookingType.DAY: generate_day_legs,
    BookingType.NIGHT: generate_night_legs,
    BookingType.AIRPORT_PICKUP: generate_airport_pickup_legs,
}


def generate_legs(booking_type: BookingType, start: datetime, end: datetime) -> list[GeneratedLeg]:
    return LEG_GENERATORS[booking_type](start, end)
