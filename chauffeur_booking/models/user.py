from sqlalchemy import Column, Integer, String, Enum
from sqlalchemy.orm import relationship
from chauffeur_booking.db.session import Base
from chauffeur_booking.models.enums import UserRole


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    phone_number = Column(String, nullable=True)
    role = Column(Enum(UserRole, name="userrole"), nullable=False, default=UserRole.CUSTOMER)

    # Fleet owner → cars they list
    cars = relationship("Car", back_populates="owner")
