from datetime import datetime
from decimal import Decimal

import pytest

from chauffeur_booking.core.errors import (
    ConflictError,
    NotFoundError,
    PaymentIntentError,
    ValidationError,
)
from chauffeur_booking.models.enums import BookingStatus, BookingType, ExtensionStatus, PaymentStatus
from chauffeur_booking.models.extension import Extension
from chauffeur_booking.services.availability import AvailabilityChecker
from chauffeur_booking.services.extensions import ExtensionManager

NOW = datetime(2026, 10, 20, 17, 0)
LEG_START = datetime(2026, 10, 20, 6, 0)
LEG_END = datetime(2026, 10, 20, 18, 0)


@pytest.fixture
def manager(db, gateway, rates_service):
    return ExtensionManager(db, gateway, rates_service, AvailabilityChecker(db))


@pytest.fixture
def active_booking(car, customer, make_booking):
    return make_booking(car, customer, start=LEG_START, end=LEG_END, status=BookingStatus.ACTIVE)


def extensions(db):
    return db.query(Extension).order_by(Extension.id).all()


def test_extension_scenario_merges_until_paid(db, manager, customer, active_booking):
    first = manager.create_extension(active_booking.id, 2, customer, now=NOW)

    assert first.extension_start_time == datetime(2026, 10, 20, 18, 0)
    assert first.extension_end_time == datetime(2026, 10, 20, 20, 0)
    assert first.total_amount == Decimal("118.25")

    second = manager.create_extension(active_booking.id, 1, customer, now=NOW)

    assert second.extension_id == first.extension_id
    assert second.extension_end_time == datetime(2026, 10, 20, 21, 0)
    assert second.payment_intent_id != first.payment_intent_id

    rows = extensions(db)
    assert len(rows) == 1
    db.refresh(rows[0])
    assert rows[0].extension_start_time == datetime(2026, 10, 20, 18, 0)
    assert rows[0].extension_end_time == datetime(2026, 10, 20, 21, 0)
    assert rows[0].extended_duration_hours == 3
    assert rows[0].status == ExtensionStatus.PENDING
    assert rows[0].payment_status == PaymentStatus.UNPAID
    assert rows[0].payment_intent == second.payment_intent_id
    # 3h at 50/h: 150 + 15 fee + 12.375 VAT
    assert rows[0].total_amount == Decimal("177.38")

    with pytest.raises(ValidationError) as exc:
        manager.create_extension(active_booking.id, 5, customer, now=NOW)

    assert exc.value.message == "Maximum extension is 3 hour(s) for today"
    db.expire_all()
    rows = extensions(db)
    assert len(rows) == 1
    assert rows[0].extension_end_time == datetime(2026, 10, 20, 21, 0)


def test_payment_intent_is_requested_for_the_unpaid_span(manager, gateway, customer, active_booking):
    result = manager.create_extension(
        active_booking.id, 2, customer, callback_url="https://app.example.com/done", now=NOW
    )

    kwargs = gateway.create_payment_intent.call_args.kwargs
    assert kwargs["amount"] == Decimal("118.25")
    assert kwargs["tx_ref"] == result.payment_intent_id
    assert kwargs["tx_ref"].startswith(f"ext-{result.extension_id}-")
    assert kwargs["transaction_type"] == "booking_extension"
    assert kwargs["customer"] == {"name": "Ada Rider", "email": "ada@example.com"}
    assert kwargs["callback_url"] == "https://app.example.com/done"


def test_no_hours_left_today(db, manager, customer, car, make_booking):
    booking = make_booking(
        car, customer,
        start=datetime(2026, 10, 20, 11, 30),
        end=datetime(2026, 10, 20, 23, 30),
        status=BookingStatus.ACTIVE,
    )

    with pytest.raises(ValidationError) as exc:
        manager.create_extension(booking.id, 1, customer, now=datetime(2026, 10, 20, 22, 0))

    assert exc.value.message == "Booking can no longer be extended today"
    assert extensions(db) == []


def test_extension_after_the_leg_day_has_passed(db, manager, customer, active_booking):
    with pytest.raises(ValidationError):
        manager.create_extension(active_booking.id, 1, customer, now=datetime(2026, 10, 21, 0, 30))

    assert extensions(db) == []


def test_paid_extension_moves_the_anchor(db, manager, customer, active_booking, make_extension):
    leg = active_booking.legs[0]
    make_extension(
        leg, LEG_END, datetime(2026, 10, 20, 20, 0),
        status=ExtensionStatus.ACTIVE, payment_status=PaymentStatus.PAID,
    )

    result = manager.create_extension(active_booking.id, 1, customer, now=NOW)

    assert result.extension_start_time == datetime(2026, 10, 20, 20, 0)
    assert result.extension_end_time == datetime(2026, 10, 20, 21, 0)
    assert len(extensions(db)) == 2


def test_stale_unpaid_row_is_retired(db, manager, customer, active_booking, make_extension):
    leg = active_booking.legs[0]
    make_extension(
        leg, LEG_END, datetime(2026, 10, 20, 20, 0),
        status=ExtensionStatus.ACTIVE, payment_status=PaymentStatus.PAID,
    )
    stale = make_extension(leg, LEG_END, datetime(2026, 10, 20, 19, 0))

    result = manager.create_extension(active_booking.id, 2, customer, now=NOW)

    db.refresh(stale)
    assert stale.status == ExtensionStatus.CANCELLED
    assert result.extension_id != stale.id
    assert result.extension_end_time == datetime(2026, 10, 20, 22, 0)

    pending = [
        e for e in extensions(db)
        if e.status == ExtensionStatus.PENDING and e.payment_status == PaymentStatus.UNPAID
    ]
    assert len(pending) == 1


def test_extensions_target_the_latest_leg(db, manager, customer, car, make_booking):
    booking = make_booking(
        car, customer,
        start=datetime(2026, 10, 19, 6, 0),
        end=datetime(2026, 10, 20, 18, 0),
        status=BookingStatus.ACTIVE,
        legs=[
            (datetime(2026, 10, 19, 6, 0), datetime(2026, 10, 19, 18, 0)),
            (datetime(2026, 10, 20, 6, 0), datetime(2026, 10, 20, 18, 0)),
        ],
    )

    manager.create_extension(booking.id, 1, customer, now=NOW)

    (row,) = extensions(db)
    assert row.booking_leg_id == booking.legs[1].id


def test_only_day_bookings_can_be_extended(manager, customer, car, make_booking):
    booking = make_booking(car, customer, status=BookingStatus.ACTIVE, booking_type=BookingType.NIGHT)

    with pytest.raises(ValidationError) as exc:
        manager.create_extension(booking.id, 1, customer, now=NOW)

    assert exc.value.message == "Only DAY bookings can be extended"


def test_booking_must_be_active(manager, customer, car, make_booking):
    booking = make_booking(car, customer, status=BookingStatus.CONFIRMED)

    with pytest.raises(NotFoundError):
        manager.create_extension(booking.id, 1, customer, now=NOW)


def test_booking_must_belong_to_the_user(db, manager, active_booking):
    from chauffeur_booking.models.user import User

    stranger = User(name="Someone Else", email="else@example.com")
    db.add(stranger)
    db.commit()

    with pytest.raises(NotFoundError):
        manager.create_extension(active_booking.id, 1, stranger, now=NOW)


def test_hours_must_be_positive(manager, customer, active_booking):
    with pytest.raises(ValidationError):
        manager.create_extension(active_booking.id, 0, customer, now=NOW)


def test_extension_cannot_overlap_another_booking(manager, customer, car, active_booking, make_booking):
    make_booking(car, start=datetime(2026, 10, 20, 21, 0), end=datetime(2026, 10, 21, 3, 0))

    with pytest.raises(ConflictError):
        manager.create_extension(active_booking.id, 2, customer, now=NOW)


def test_provider_failure_leaves_no_rows(db, manager, gateway, customer, active_booking):
    gateway.create_payment_intent.side_effect = PaymentIntentError("provider down")

    with pytest.raises(PaymentIntentError):
        manager.create_extension(active_booking.id, 2, customer, now=NOW)

    assert extensions(db) == []


def test_merge_conflicts_when_row_was_paid_meanwhile(db, manager, gateway, customer, active_booking, make_extension):
    pending = make_extension(active_booking.legs[0], LEG_END, datetime(2026, 10, 20, 20, 0))

    def pay_then_return(amount, tx_ref, **kwargs):
        db.execute(
            Extension.__table__.update()
            .where(Extension.id == pending.id)
            .values(status=ExtensionStatus.ACTIVE, payment_status=PaymentStatus.PAID)
        )
        return gateway.create_payment_intent.return_value

    gateway.create_payment_intent.side_effect = pay_then_return

    with pytest.raises(ConflictError):
        manager.create_extension(active_booking.id, 1, customer, now=NOW)


def test_merge_cancels_the_superseded_checkout_link(manager, gateway, customer, active_booking):
    first = manager.create_extension(active_booking.id, 2, customer, now=NOW)

    manager.create_extension(active_booking.id, 1, customer, now=NOW)

    gateway.cancel_payment_intent.assert_called_once_with(first.payment_intent_id)


def test_paid_checkout_link_blocks_the_merge(db, manager, gateway, customer, active_booking, make_extension):
    pending = make_extension(
        active_booking.legs[0], LEG_END, datetime(2026, 10, 20, 20, 0), payment_intent="ext-1-0123456789ab"
    )
    gateway.cancel_payment_intent.return_value = False

    with pytest.raises(ConflictError):
        manager.create_extension(active_booking.id, 1, customer, now=NOW)

    gateway.create_payment_intent.assert_not_called()
    db.expire_all()
    assert pending.payment_intent == "ext-1-0123456789ab"
    assert pending.extension_end_time == datetime(2026, 10, 20, 20, 0)


def test_stale_rows_lose_their_checkout_links(db, manager, gateway, customer, active_booking, make_extension):
    leg = active_booking.legs[0]
    make_extension(
        leg, LEG_END, datetime(2026, 10, 20, 20, 0),
        status=ExtensionStatus.ACTIVE, payment_status=PaymentStatus.PAID,
    )
    make_extension(leg, LEG_END, datetime(2026, 10, 20, 19, 0), payment_intent="ext-2-0123456789ab")

    manager.create_extension(active_booking.id, 1, customer, now=NOW)

    gateway.cancel_payment_intent.assert_called_once_with("ext-2-0123456789ab")
