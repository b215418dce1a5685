from enum import Enum


class BookingStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class PaymentStatus(str, Enum):
    UNPAID = "UNPAID"
    PAID = "PAID"


class BookingType(str, Enum):
    DAY = "DAY"
    NIGHT = "NIGHT"
    AIRPORT_PICKUP = "AIRPORT_PICKUP"


class ExtensionStatus(str, Enum):
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    # stale unpaid rows superseded by a newer extension request
    CANCELLED = "CANCELLED"


class PaymentAttemptStatus(str, Enum):
    SUCCESSFUL = "SUCCESSFUL"
    FAILED = "FAILED"


class CarStatus(str, Enum):
    AVAILABLE = "AVAILABLE"
    BOOKED = "BOOKED"
    HOLD = "HOLD"
    IN_SERVICE = "IN_SERVICE"


class CarApprovalStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class PayoutStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    FAILED = "FAILED"


class UserRole(str, Enum):
    CUSTOMER = "customer"
    FLEET_OWNER = "fleet_owner"
    CHAUFFEUR = "chauffeur"
