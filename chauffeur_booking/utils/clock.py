from datetime import datetime
from zoneinfo import ZoneInfo

from chauffeur_booking.core.config import BUSINESS_TIMEZONE


def now_local() -> datetime:
    """Naive wall-clock time in the business timezone.

    All stored datetimes are naive local times, so comparisons against the
    database must use this rather than a UTC clock.
    """
    return datetime.now(ZoneInfo(BUSINESS_TIMEZONE)).replace(tzinfo=None)
