from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from chauffeur_booking.core.auth_utils import decode_token
from chauffeur_booking.core.config import NOTIFICATIONS_QUEUE, RATES_CACHE_TTL_SECONDS
from chauffeur_booking.core.redis import TtlCache, get_queue_connection, get_redis_client
from chauffeur_booking.db.session import SessionLocal
from chauffeur_booking.jobs.queue import JobQueue
from chauffeur_booking.models.user import User
from chauffeur_booking.services.availability import AvailabilityChecker
from chauffeur_booking.services.booking_creation import BookingCreationService
from chauffeur_booking.services.cancellation import BookingCancellationService
from chauffeur_booking.services.extensions import ExtensionManager
from chauffeur_booking.services.notifications import NotificationService
from chauffeur_booking.services.rates import RatesService
from chauffeur_booking.utils.razorpay_client import RazorpayGateway

security = HTTPBearer()
optional_security = HTTPBearer(auto_error=False)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# ---------------------------------------------------------------------
# AUTH RESOLUTION
# ---------------------------------------------------------------------
def resolve_token_user(token: str, db: Session) -> User:
    payload = decode_token(token)
    user = db.query(User).filter(User.email == payload["sub"]).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    return user


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
):
    return resolve_token_user(credentials.credentials, db)


def get_optional_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(optional_security),
    db: Session = Depends(get_db),
):
    # no token → guest checkout
    if credentials is None:
        return None
    return resolve_token_user(credentials.credentials, db)


# ---------------------------------------------------------------------
# COLLABORATORS
# ---------------------------------------------------------------------
def get_gateway():
    return RazorpayGateway()


def job_queue(name: str) -> JobQueue:
    return JobQueue(get_queue_connection(), name)


def get_notifications():
    return NotificationService(job_queue(NOTIFICATIONS_QUEUE))


def get_rates_service(db: Session = Depends(get_db)):
    return RatesService(db, TtlCache(get_redis_client(), "rates", RATES_CACHE_TTL_SECONDS))


def get_booking_creation_service(
    db: Session = Depends(get_db),
    gateway=Depends(get_gateway),
    rates: RatesService = Depends(get_rates_service),
):
    return BookingCreationService(db, gateway, rates, AvailabilityChecker(db))


def get_extension_manager(
    db: Session = Depends(get_db),
    gateway=Depends(get_gateway),
    rates: RatesService = Depends(get_rates_service),
):
    return ExtensionManager(db, gateway, rates, AvailabilityChecker(db))


def get_cancellation_service(
    db: Session = Depends(get_db),
    notifications: NotificationService = Depends(get_notifications),
):
    return BookingCancellationService(db, notifications)
