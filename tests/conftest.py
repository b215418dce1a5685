"""Pytest configuration and shared fixtures."""

import os
import tempfile

# Settings are read at import time, so point them at test resources first
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["LOG_DIR"] = os.path.join(tempfile.gettempdir(), "chauffeur_booking_test_logs")
os.environ["JWT_SECRET"] = "test-secret"
os.environ.pop("REDIS_URL", None)

from datetime import datetime, timedelta
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import chauffeur_booking.db.base  # noqa: F401
from chauffeur_booking.core.redis import TtlCache
from chauffeur_booking.db.session import Base
from chauffeur_booking.models.booking import Booking, BookingLeg
from chauffeur_booking.models.car import Car
from chauffeur_booking.models.enums import (
    BookingStatus,
    BookingType,
    CarApprovalStatus,
    CarStatus,
    ExtensionStatus,
    PaymentStatus,
    UserRole,
)
from chauffeur_booking.models.extension import Extension
from chauffeur_booking.models.rates import PlatformRate
from chauffeur_booking.models.user import User
from chauffeur_booking.services.notifications import NotificationService
from chauffeur_booking.services.rates import RatesService
from chauffeur_booking.utils.razorpay_client import PaymentIntent


# =============================================================================
# Database
# =============================================================================

@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # pysqlite's own transaction handling breaks SAVEPOINT; let SQLAlchemy emit BEGIN
    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autoflush=False)()
    yield session
    session.close()


# =============================================================================
# Factories
# =============================================================================

@pytest.fixture
def fleet_owner(db):
    owner = User(name="Fleet Owner", email="owner@example.com", role=UserRole.FLEET_OWNER)
    db.add(owner)
    db.commit()
    return owner


@pytest.fixture
def customer(db):
    user = User(
        name="Ada Rider",
        email="ada@example.com",
        phone_number="+2348000000000",
        role=UserRole.CUSTOMER,
    )
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def car(db, fleet_owner):
    car = Car(
        owner_id=fleet_owner.id,
        registration_number="LAG-123-AB",
        make="Toyota",
        model="Camry",
        hourly_rate=Decimal("50.00"),
        day_rate=Decimal("100.00"),
        night_rate=Decimal("80.00"),
        airport_pickup_rate=Decimal("60.00"),
        status=CarStatus.AVAILABLE,
        approval_status=CarApprovalStatus.APPROVED,
    )
    db.add(car)
    db.commit()
    return car


@pytest.fixture
def platform_rates(db):
    rates = PlatformRate(
        vat_rate_percent=Decimal("7.5"),
        platform_customer_service_fee_rate_percent=Decimal("10"),
        platform_fleet_owner_commission_rate_percent=Decimal("20"),
        effective_from=datetime(2020, 1, 1),
        effective_until=None,
    )
    db.add(rates)
    db.commit()
    return rates


@pytest.fixture
def make_booking(db):
    counter = {"n": 0}

    def _make(
        car,
        user=None,
        start=datetime(2026, 10, 20, 6, 0),
        end=datetime(2026, 10, 20, 18, 0),
        status=BookingStatus.CONFIRMED,
        payment_status=PaymentStatus.PAID,
        booking_type=BookingType.DAY,
        total_amount=Decimal("118.25"),
        payment_intent=None,
        legs=None,
    ):
        counter["n"] += 1
        booking = Booking(
            car_id=car.id,
            user_id=user.id if user else None,
            guest_email=None if user else "guest@example.com",
            guest_name=None if user else "Guest Rider",
            booking_reference=f"BK-TEST{counter['n']:04d}",
            type=booking_type,
            status=status,
            payment_status=payment_status,
            start_date=start,
            end_date=end,
            net_total=Decimal("100.00"),
            platform_customer_service_fee_amount=Decimal("10.00"),
            vat_amount=Decimal("8.25"),
            total_amount=total_amount,
            platform_fleet_owner_commission_amount=Decimal("20.00"),
            fleet_owner_payout_amount_net=Decimal("80.00"),
            payment_intent=payment_intent,
            legs=[
                BookingLeg(leg_date=s.date(), leg_start_time=s, leg_end_time=e)
                for s, e in (legs or [(start, end)])
            ],
        )
        db.add(booking)
        db.commit()
        return booking

    return _make


@pytest.fixture
def make_extension(db):
    def _make(
        leg,
        start,
        end,
        status=ExtensionStatus.PENDING,
        payment_status=PaymentStatus.UNPAID,
        total_amount=Decimal("118.25"),
        payment_intent=None,
    ):
        extension = Extension(
            booking_leg_id=leg.id,
            extension_start_time=start,
            extension_end_time=end,
            extended_duration_hours=int((end - start) / timedelta(hours=1)),
            status=status,
            payment_status=payment_status,
            net_total=Decimal("100.00"),
            total_amount=total_amount,
            fleet_owner_payout_amount_net=Decimal("80.00"),
            payment_intent=payment_intent,
        )
        db.add(extension)
        db.commit()
        return extension

    return _make


# =============================================================================
# Collaborator doubles
# =============================================================================

@pytest.fixture
def gateway():
    gateway = MagicMock()
    gateway.cancel_payment_intent.return_value = True
    gateway.create_payment_intent.side_effect = lambda amount, tx_ref, **kwargs: PaymentIntent(
        payment_intent_id=tx_ref,
        checkout_url=f"https://rzp.io/l/{tx_ref}",
    )
    return gateway


@pytest.fixture
def notifications():
    return MagicMock(spec=NotificationService)


@pytest.fixture
def rates_service(db, platform_rates):
    return RatesService(db, TtlCache(None, "rates"))
