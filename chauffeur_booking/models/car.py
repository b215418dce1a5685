from sqlalchemy import Column, Integer, String, Numeric, ForeignKey, Enum
from sqlalchemy.orm import relationship
from chauffeur_booking.db.session import Base
from chauffeur_booking.models.enums import CarStatus, CarApprovalStatus


class Car(Base):
    __tablename__ = "cars"

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False)

    registration_number = Column(String, unique=True, nullable=False)
    make = Column(String, nullable=False)
    model = Column(String, nullable=False)

    # Pricing fields
    hourly_rate = Column(Numeric(12, 2), nullable=False, default=0)
    day_rate = Column(Numeric(12, 2), nullable=False, default=0)
    night_rate = Column(Numeric(12, 2), nullable=False, default=0)
    airport_pickup_rate = Column(Numeric(12, 2), nullable=False, default=0)

    # Operational status vs. admin approval are independent
    status = Column(Enum(CarStatus, name="carstatus"), nullable=False, default=CarStatus.AVAILABLE)
    approval_status = Column(
        Enum(CarApprovalStatus, name="carapprovalstatus"),
        nullable=False,
        default=CarApprovalStatus.PENDING,
    )

    owner = relationship("User", back_populates="cars")
    bookings = relationship("Booking", back_populates="car")
