from datetime import datetime
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from chauffeur_booking.core.errors import TransientInfraError
from chauffeur_booking.models.enums import (
    BookingStatus, ExtensionStatus, PaymentAttemptStatus, PaymentStatus
)
from chauffeur_booking.models.payment import Payment
from chauffeur_booking.services.confirmation import BookingConfirmer, ExtensionConfirmer
from chauffeur_booking.services.reconciliation import ChargeCompletedEvent, ChargeCompletedHandler
from chauffeur_booking.utils.razorpay_client import VerifiedTransaction

TX_REF = "bk-1-0123456789ab"
CHARGE_ID = "pay_Nx7Q1"


def verified(tx_ref=TX_REF, amount="118.25", status="successful", charge_id=CHARGE_ID):
    return VerifiedTransaction(
        id=charge_id,
        status=status,
        tx_ref=tx_ref,
        amount=Decimal(amount),
        currency="INR",
        payment_method="card",
    )


def event(tx_ref=TX_REF, charge_id=CHARGE_ID, amount="118.25"):
    return ChargeCompletedEvent(
        tx_ref=tx_ref,
        provider_charge_id=charge_id,
        amount=Decimal(amount) if amount is not None else None,
        currency="INR",
    )


@pytest.fixture
def pending_booking(car, customer, make_booking):
    return make_booking(
        car, customer,
        status=BookingStatus.PENDING,
        payment_status=PaymentStatus.UNPAID,
        payment_intent=TX_REF,
    )


@pytest.fixture
def confirmers():
    booking_confirmer = MagicMock()
    booking_confirmer.confirm_from_payment.return_value = True
    extension_confirmer = MagicMock()
    extension_confirmer.confirm_from_payment.return_value = True
    return booking_confirmer, extension_confirmer


@pytest.fixture
def handler(db, gateway, confirmers):
    gateway.verify_transaction.return_value = verified()
    return ChargeCompletedHandler(db, gateway, *confirmers)


def payments(db):
    return db.query(Payment).all()


def test_replayed_charge_records_one_payment_and_confirms_once(db, handler, confirmers, pending_booking):
    booking_confirmer, extension_confirmer = confirmers

    assert handler.handle(event()) == "confirmed"
    assert handler.handle(event()) == "recorded"

    rows = payments(db)
    assert len(rows) == 1
    assert rows[0].booking_id == pending_booking.id
    assert rows[0].extension_id is None
    assert rows[0].status == PaymentAttemptStatus.SUCCESSFUL
    assert rows[0].reconciled_at is not None
    assert booking_confirmer.confirm_from_payment.call_count == 1
    extension_confirmer.confirm_from_payment.assert_not_called()


def test_tx_ref_matching_booking_and_extension_is_an_anomaly(
    db, handler, confirmers, pending_booking, make_extension
):
    make_extension(pending_booking.legs[0], datetime(2026, 10, 20, 18), datetime(2026, 10, 20, 19), payment_intent=TX_REF)

    assert handler.handle(event()) == "anomaly"

    for confirmer in confirmers:
        confirmer.confirm_from_payment.assert_not_called()
    assert payments(db) == []


def test_unknown_tx_ref_is_an_anomaly(db, handler, confirmers):
    assert handler.handle(event()) == "anomaly"

    confirmers[0].confirm_from_payment.assert_not_called()
    assert payments(db) == []


def test_missing_identifiers_are_ignored(handler, gateway):
    assert handler.handle(event(tx_ref=None)) == "ignored"
    assert handler.handle(event(charge_id=None)) == "ignored"

    gateway.verify_transaction.assert_not_called()


def test_unverifiable_charge_is_dropped(db, handler, gateway, pending_booking):
    gateway.verify_transaction.return_value = None

    assert handler.handle(event()) == "unverified"
    assert payments(db) == []


def test_tx_ref_mismatch_is_dropped(db, handler, gateway, pending_booking):
    gateway.verify_transaction.return_value = verified(tx_ref="bk-2-ffffffffffff")

    assert handler.handle(event()) == "unverified"
    assert payments(db) == []


def test_amount_mismatch_is_dropped(db, handler, pending_booking):
    assert handler.handle(event(amount="100.00")) == "unverified"
    assert payments(db) == []


def test_failed_charge_is_recorded_but_not_confirmed(db, handler, gateway, confirmers, pending_booking):
    gateway.verify_transaction.return_value = verified(status="failed")

    assert handler.handle(event()) == "recorded"

    (row,) = payments(db)
    assert row.status == PaymentAttemptStatus.FAILED
    assert row.confirmed_at is None
    confirmers[0].confirm_from_payment.assert_not_called()


def test_booking_is_confirmed_end_to_end(db, gateway, notifications, pending_booking):
    gateway.verify_transaction.return_value = verified()
    handler = ChargeCompletedHandler(
        db, gateway, BookingConfirmer(db, notifications), ExtensionConfirmer(db, notifications)
    )

    handler.handle(event())
    handler.handle(event())

    db.expire_all()
    assert pending_booking.status == BookingStatus.CONFIRMED
    assert pending_booking.payment_status == PaymentStatus.PAID
    notifications.booking_confirmed.assert_called_once()


def test_extension_is_confirmed_end_to_end(db, gateway, notifications, car, customer, make_booking, make_extension):
    booking = make_booking(car, customer, status=BookingStatus.ACTIVE)
    leg = booking.legs[0]
    extension = make_extension(leg, datetime(2026, 10, 20, 18), datetime(2026, 10, 20, 20), payment_intent="ext-1-abc")
    gateway.verify_transaction.return_value = verified(tx_ref="ext-1-abc")
    handler = ChargeCompletedHandler(
        db, gateway, BookingConfirmer(db, notifications), ExtensionConfirmer(db, notifications)
    )

    assert handler.handle(event(tx_ref="ext-1-abc")) == "confirmed"

    db.expire_all()
    (row,) = payments(db)
    assert row.extension_id == extension.id
    assert extension.status == ExtensionStatus.ACTIVE
    assert extension.payment_status == PaymentStatus.PAID
    assert extension.payment_id == row.id
    assert leg.leg_end_time == datetime(2026, 10, 20, 20)
    assert booking.end_date == datetime(2026, 10, 20, 20)
    notifications.extension_confirmed.assert_called_once()


def test_store_failure_is_transient(handler, pending_booking):
    with patch.object(
        handler, "_resolve_target", side_effect=OperationalError("SELECT", {}, Exception("db down"))
    ):
        with pytest.raises(TransientInfraError):
            handler.handle(event())


def test_event_payload_round_trip():
    original = event()

    assert ChargeCompletedEvent.from_payload(original.to_payload()) == original


def test_success_after_an_early_failed_read_confirms(db, handler, gateway, confirmers, pending_booking):
    gateway.verify_transaction.return_value = verified(status="failed")
    assert handler.handle(event()) == "recorded"

    gateway.verify_transaction.return_value = verified()
    assert handler.handle(event()) == "confirmed"

    (row,) = payments(db)
    assert row.status == PaymentAttemptStatus.SUCCESSFUL
    assert row.confirmed_at is not None
    assert row.reconciled_at is not None
    confirmers[0].confirm_from_payment.assert_called_once()
