# Import every model so relationship() strings resolve and Alembic sees
# the full metadata.
from chauffeur_booking.db.session import Base  # noqa: F401
from chauffeur_booking.models.user import User  # noqa: F401
from chauffeur_booking.models.car import Car  # noqa: F401
from chauffeur_booking.models.booking import Booking, BookingLeg  # noqa: F401
from chauffeur_booking.models.extension import Extension  # noqa: F401
from chauffeur_booking.models.payment import Payment, PayoutTransaction  # noqa: F401
from chauffeur_booking.models.rates import PlatformRate  # noqa: F401
