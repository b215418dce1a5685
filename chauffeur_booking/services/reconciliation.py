"""Charge-completed reconciliation.

A provider charge is trusted only after it is re-fetched from the provider and
its tx_ref, id and amount agree with the event. The tx_ref must then resolve to
exactly one booking or one extension; anything else is an anomaly that gets
logged and acknowledged, since retrying cannot fix it.
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from chauffeur_booking.core.errors import ReconciliationAnomaly, TransientInfraError
from chauffeur_booking.core.logging_config import get_logger
from chauffeur_booking.models.booking import Booking
from chauffeur_booking.models.enums import PaymentAttemptStatus
from chauffeur_booking.models.extension import Extension
from chauffeur_booking.models.payment import Payment
from chauffeur_booking.services.confirmation import amounts_match
from chauffeur_booking.utils.clock import now_local
from chauffeur_booking.utils.razorpay_client import VerifiedTransaction

logger = get_logger("payment")


@dataclass(frozen=True)
class ChargeCompletedEvent:
    tx_ref: str | None
    provider_charge_id: str | None
    amount: Decimal | None = None
    currency: str | None = None

    @classmethod
    def from_payload(cls, data: dict):
        amount = data.get("amount")
        try:
            amount = Decimal(str(amount)) if amount is not None else None
        except InvalidOperation:
            amount = None
        return cls(
            tx_ref=data.get("tx_ref"),
            provider_charge_id=data.get("provider_charge_id"),
            amount=amount,
            currency=data.get("currency"),
        )

    def to_payload(self) -> dict:
        return {
            "tx_ref": self.tx_ref,
            "provider_charge_id": self.provider_charge_id,
            "amount": str(self.amount) if self.amount is not None else None,
            "currency": self.currency,
        }


@dataclass(frozen=True)
class _Target:
    booking_id: int | None
    extension_id: int | None
    amount_expected: Decimal


class ChargeCompletedHandler:
    def __init__(self, db: Session, gateway, booking_confirmer, extension_confirmer):
        self.db = db
        self.gateway = gateway
        self.booking_confirmer = booking_confirmer
        self.extension_confirmer = extension_confirmer

    def handle(self, event: ChargeCompletedEvent) -> str:
        """Returns a short outcome label: ignored, unverified, anomaly, recorded or confirmed."""
        if not event.tx_ref or not event.provider_charge_id:
            logger.warning(f"Charge event missing tx_ref or charge id, ignoring | event={event}")
            return "ignored"

        verified = self.gateway.verify_transaction(event.provider_charge_id)
        if not self._matches(event, verified):
            return "unverified"

        try:
            target = self._resolve_target(event.tx_ref)
        except ReconciliationAnomaly as e:
            logger.error(f"Reconciliation anomaly | tx_ref={e.tx_ref} | {e.message} | context={e.context}")
            return "anomaly"
        except SQLAlchemyError as e:
            raise TransientInfraError(f"Payment lookup failed for {event.tx_ref}: {e}") from e

        try:
            payment = self._upsert_payment(event.tx_ref, verified, target)

            if payment.status != PaymentAttemptStatus.SUCCESSFUL or payment.reconciled_at is not None:
                logger.info(
                    f"Payment recorded, nothing to confirm | tx_ref={payment.tx_ref} | "
                    f"status={payment.status.value} | reconciled_at={payment.reconciled_at}"
                )
                return "recorded"

            if payment.booking_id:
                confirmed = self.booking_confirmer.confirm_from_payment(payment)
            else:
                confirmed = self.extension_confirmer.confirm_from_payment(payment)

            self._mark_reconciled(payment)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise TransientInfraError(f"Could not record payment {event.tx_ref}: {e}") from e

        logger.info(f"Charge reconciled | tx_ref={event.tx_ref} | confirmed={confirmed}")
        return "confirmed" if confirmed else "recorded"

    # -------- STEPS --------
    def _matches(self, event: ChargeCompletedEvent, verified: VerifiedTransaction | None) -> bool:
        if verified is None:
            logger.warning(f"Charge could not be verified | tx_ref={event.tx_ref} | charge={event.provider_charge_id}")
            return False

        if verified.id != event.provider_charge_id or verified.tx_ref != event.tx_ref:
            logger.warning(
                f"Verified charge does not match event | tx_ref={event.tx_ref} | "
                f"verified_tx_ref={verified.tx_ref} | charge={event.provider_charge_id} | verified_id={verified.id}"
            )
            return False

        if event.amount is not None and not amounts_match(verified.amount, event.amount):
            logger.warning(
                f"Verified amount does not match event | tx_ref={event.tx_ref} | "
                f"event={event.amount} | verified={verified.amount}"
            )
            return False

        return True

    def _resolve_target(self, tx_ref: str) -> _Target:
        booking = (
            self.db.query(Booking.id, Booking.total_amount)
            .filter(Booking.payment_intent == tx_ref)
            .first()
        )
        extension = (
            self.db.query(Extension.id, Extension.total_amount)
            .filter(Extension.payment_intent == tx_ref)
            .first()
        )

        if booking and extension:
            raise ReconciliationAnomaly(
                "tx_ref matches both a booking and an extension",
                tx_ref,
                booking_id=booking.id,
                extension_id=extension.id,
            )
        if not booking and not extension:
            raise ReconciliationAnomaly("tx_ref matches no booking or extension", tx_ref)

        if booking:
            return _Target(booking_id=booking.id, extension_id=None, amount_expected=booking.total_amount)
        return _Target(booking_id=None, extension_id=extension.id, amount_expected=extension.total_amount)

    def _upsert_payment(self, tx_ref: str, verified: VerifiedTransaction, target: _Target) -> Payment:
        successful = verified.status == "successful"

        existing = self.db.query(Payment).filter(Payment.tx_ref == tx_ref).first()
        if existing:
            if successful and existing.status == PaymentAttemptStatus.FAILED:
                return self._upgrade_to_successful(existing, verified)
            logger.info(f"Payment already recorded | tx_ref={tx_ref} | payment={existing.id}")
            return existing

        payment = Payment(
            tx_ref=tx_ref,
            status=PaymentAttemptStatus.SUCCESSFUL if successful else PaymentAttemptStatus.FAILED,
            booking_id=target.booking_id,
            extension_id=target.extension_id,
            amount_expected=target.amount_expected,
            amount_charged=verified.amount,
            currency=verified.currency,
            provider_transaction_id=verified.id,
            payment_method=verified.payment_method,
            confirmed_at=now_local() if successful else None,
        )

        try:
            with self.db.begin_nested():
                self.db.add(payment)
        except IntegrityError:
            # another worker inserted the same tx_ref first
            logger.info(f"Payment inserted concurrently, re-reading | tx_ref={tx_ref}")
            return self.db.query(Payment).filter(Payment.tx_ref == tx_ref).one()

        self.db.commit()
        logger.info(f"Payment recorded | tx_ref={tx_ref} | payment={payment.id} | status={payment.status.value}")
        return payment

    def _upgrade_to_successful(self, payment: Payment, verified: VerifiedTransaction) -> Payment:
        # an earlier event saw the charge before capture
        self.db.query(Payment).filter(
            Payment.id == payment.id,
            Payment.status == PaymentAttemptStatus.FAILED,
        ).update(
            {
                "status": PaymentAttemptStatus.SUCCESSFUL,
                "amount_charged": verified.amount,
                "currency": verified.currency,
                "provider_transaction_id": verified.id,
                "payment_method": verified.payment_method,
                "confirmed_at": now_local(),
            },
            synchronize_session=False,
        )
        self.db.commit()
        self.db.refresh(payment)
        logger.info(f"Payment upgraded to successful | tx_ref={payment.tx_ref} | payment={payment.id}")
        return payment

    def _mark_reconciled(self, payment: Payment):
        self.db.query(Payment).filter(
            Payment.id == payment.id,
            Payment.reconciled_at.is_(None),
        ).update({"reconciled_at": now_local()}, synchronize_session=False)
        self.db.commit()
