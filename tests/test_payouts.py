from datetime import datetime
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from chauffeur_booking.core.errors import NotFoundError
from chauffeur_booking.models.enums import BookingStatus, ExtensionStatus, PaymentStatus, PayoutStatus
from chauffeur_booking.models.payment import PayoutTransaction
from chauffeur_booking.services.payouts import PayoutService


@pytest.fixture
def completed(car, customer, make_booking):
    return make_booking(car, customer, status=BookingStatus.COMPLETED)


def test_queue_payout_uses_one_job_per_booking():
    queue = MagicMock()

    assert PayoutService(MagicMock(), queue).queue_payout(7) == "payout-7"
    assert queue.enqueue.call_args.kwargs["job_id"] == "payout-7"


def test_payout_includes_paid_extensions(db, completed, make_extension, fleet_owner):
    leg = completed.legs[0]
    make_extension(
        leg, datetime(2026, 10, 20, 18), datetime(2026, 10, 20, 20),
        status=ExtensionStatus.ACTIVE, payment_status=PaymentStatus.PAID,
    )
    make_extension(leg, datetime(2026, 10, 20, 20), datetime(2026, 10, 20, 21))

    payout = PayoutService(db).process_payout(completed.id)

    assert payout.amount == Decimal("160.00")
    assert payout.fleet_owner_id == fleet_owner.id
    assert payout.status == PayoutStatus.PENDING


def test_payout_is_created_once(db, completed):
    service = PayoutService(db)

    first = service.process_payout(completed.id)
    second = service.process_payout(completed.id)

    assert first.id == second.id
    assert db.query(PayoutTransaction).count() == 1


def test_payout_waits_for_completion(db, car, make_booking):
    active = make_booking(car, status=BookingStatus.ACTIVE)

    assert PayoutService(db).process_payout(active.id) is None


def test_missing_booking(db):
    with pytest.raises(NotFoundError):
        PayoutService(db).process_payout(404)
