from sqlalchemy import (
    Column, Integer, String, Date, DateTime, Numeric, ForeignKey, Enum, func
)
from sqlalchemy.orm import relationship
from chauffeur_booking.db.session import Base
from chauffeur_booking.models.enums import BookingStatus, BookingType, PaymentStatus


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    car_id = Column(Integer, ForeignKey("cars.id"), nullable=False, index=True)

    # NULL user → guest booking
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    guest_email = Column(String, nullable=True)
    guest_name = Column(String, nullable=True)
    chauffeur_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    booking_reference = Column(String, unique=True, nullable=False, index=True)
    type = Column(Enum(BookingType, name="bookingtype"), nullable=False)
    status = Column(
        Enum(BookingStatus, name="bookingstatus"),
        nullable=False,
        default=BookingStatus.PENDING,
        index=True,
    )
    payment_status = Column(
        Enum(PaymentStatus, name="paymentstatus"),
        nullable=False,
        default=PaymentStatus.UNPAID,
    )

    start_date = Column(DateTime, nullable=False, index=True)
    end_date = Column(DateTime, nullable=False, index=True)

    # PRICING BREAKDOWN
    net_total = Column(Numeric(12, 2), nullable=False, default=0)
    platform_customer_service_fee_amount = Column(Numeric(12, 2), nullable=False, default=0)
    vat_amount = Column(Numeric(12, 2), nullable=False, default=0)
    total_amount = Column(Numeric(12, 2), nullable=False)
    platform_fleet_owner_commission_amount = Column(Numeric(12, 2), nullable=False, default=0)
    fleet_owner_payout_amount_net = Column(Numeric(12, 2), nullable=False, default=0)

    # tx_ref handed to the payment provider
    payment_intent = Column(String, unique=True, nullable=True)

    cancelled_at = Column(DateTime, nullable=True)
    cancellation_reason = Column(String, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    car = relationship("Car", back_populates="bookings")
    user = relationship("User", foreign_keys=[user_id])
    chauffeur = relationship("User", foreign_keys=[chauffeur_id])
    legs = relationship(
        "BookingLeg",
        back_populates="booking",
        cascade="all, delete-orphan",
        order_by="BookingLeg.leg_date",
    )

    @property
    def customer_email(self):
        return self.user.email if self.user else self.guest_email

    @property
    def customer_name(self):
        return self.user.name if self.user else self.guest_name


class BookingLeg(Base):
    __tablename__ = "booking_legs"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True)

    leg_date = Column(Date, nullable=False)
    leg_start_time = Column(DateTime, nullable=False)
    leg_end_time = Column(DateTime, nullable=False)

    booking = relationship("Booking", back_populates="legs")
    extensions = relationship(
        "Extension",
        back_populates="booking_leg",
        order_by="Extension.extension_end_time.desc()",
    )
