from sqlalchemy import (
    Column, Integer, String, DateTime, Numeric, ForeignKey, Enum, CheckConstraint, func
)
from sqlalchemy.orm import relationship
from chauffeur_booking.db.session import Base
from chauffeur_booking.models.enums import PaymentAttemptStatus, PayoutStatus


class Payment(Base):
    __tablename__ = "payments"
    __table_args__ = (
        CheckConstraint(
            "(booking_id IS NULL) <> (extension_id IS NULL)",
            name="ck_payments_single_target",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    tx_ref = Column(String, unique=True, nullable=False, index=True)
    status = Column(Enum(PaymentAttemptStatus, name="paymentattemptstatus"), nullable=False)

    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=True)
    extension_id = Column(Integer, ForeignKey("extensions.id"), nullable=True)

    amount_expected = Column(Numeric(12, 2), nullable=False)
    amount_charged = Column(Numeric(12, 2), nullable=False)
    currency = Column(String, nullable=False)

    provider_transaction_id = Column(String, nullable=False)
    payment_method = Column(String, nullable=True)

    confirmed_at = Column(DateTime, nullable=True)
    # set once the confirmer has run for this payment
    reconciled_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, server_default=func.now())

    booking = relationship("Booking")
    extension = relationship("Extension", foreign_keys=[extension_id])


class PayoutTransaction(Base):
    __tablename__ = "payout_transactions"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), unique=True, nullable=False)
    fleet_owner_id = Column(Integer, ForeignKey("users.id"), nullable=False)

    amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(String, nullable=False)
    status = Column(Enum(PayoutStatus, name="payoutstatus"), nullable=False, default=PayoutStatus.PENDING)

    created_at = Column(DateTime, server_default=func.now())

    booking = relationship("Booking")
