from sqlalchemy import Column, Integer, DateTime, Numeric
from chauffeur_booking.db.session import Base


class PlatformRate(Base):
    __tablename__ = "platform_rates"

    id = Column(Integer, primary_key=True, index=True)

    # Percentages stored as plain numbers (7.5 == 7.5%)
    vat_rate_percent = Column(Numeric(5, 2), nullable=False)
    platform_customer_service_fee_rate_percent = Column(Numeric(5, 2), nullable=False)
    platform_fleet_owner_commission_rate_percent = Column(Numeric(5, 2), nullable=False)

    effective_from = Column(DateTime, nullable=False)
    effective_until = Column(DateTime, nullable=True)  # NULL → open-ended
