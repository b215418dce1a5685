from sqlalchemy import Column, Integer, String, DateTime, Numeric, ForeignKey, Enum, func
from sqlalchemy.orm import relationship
from chauffeur_booking.db.session import Base
from chauffeur_booking.models.enums import ExtensionStatus, PaymentStatus


class Extension(Base):
    __tablename__ = "extensions"

    id = Column(Integer, primary_key=True, index=True)
    booking_leg_id = Column(Integer, ForeignKey("booking_legs.id"), nullable=False, index=True)

    extension_start_time = Column(DateTime, nullable=False)
    extension_end_time = Column(DateTime, nullable=False)
    extended_duration_hours = Column(Integer, nullable=False)

    status = Column(
        Enum(ExtensionStatus, name="extensionstatus"),
        nullable=False,
        default=ExtensionStatus.PENDING,
    )
    payment_status = Column(
        Enum(PaymentStatus, name="paymentstatus"),
        nullable=False,
        default=PaymentStatus.UNPAID,
    )

    # PRICING BREAKDOWN
    net_total = Column(Numeric(12, 2), nullable=False, default=0)
    platform_customer_service_fee_amount = Column(Numeric(12, 2), nullable=False, default=0)
    vat_amount = Column(Numeric(12, 2), nullable=False, default=0)
    total_amount = Column(Numeric(12, 2), nullable=False)
    platform_fleet_owner_commission_amount = Column(Numeric(12, 2), nullable=False, default=0)
    fleet_owner_payout_amount_net = Column(Numeric(12, 2), nullable=False, default=0)

    payment_intent = Column(String, unique=True, nullable=True)
    payment_id = Column(Integer, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    booking_leg = relationship("BookingLeg", back_populates="extensions")
