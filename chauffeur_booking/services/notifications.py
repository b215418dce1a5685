"""Lifecycle notification intents.

The core only decides *that* a lifecycle event happened and which template
kind it maps to; rendering and delivery belong to the notification workers.
The set of notification types is closed, so template data is produced by a
plain dispatch table rather than a chain of handler objects.
"""

from enum import Enum

from chauffeur_booking.core.config import JOB_ATTEMPTS, SEND_NOTIFICATION_JOB
from chauffeur_booking.core.logging_config import get_logger
from chauffeur_booking.jobs.queue import JobQueue

logger = get_logger("booking")


class NotificationType(str, Enum):
    BOOKING_CONFIRMED = "booking-confirmed"
    BOOKING_EXTENSION_CONFIRMED = "booking-extension-confirmed"
    BOOKING_STATUS_CHANGE = "booking-status-change"
    BOOKING_CANCELLED = "booking-cancelled"
    REVIEW_REQUEST = "review-request"


def booking_details(booking) -> dict:
    car = booking.car
    return {
        "bookingReference": booking.booking_reference,
        "customerName": booking.customer_name,
        "customerEmail": booking.customer_email,
        "customerPhone": booking.user.phone_number if booking.user else None,
        "carName": f"{car.make} {car.model}" if car else None,
        "carRegistration": car.registration_number if car else None,
        "startDate": booking.start_date.isoformat(),
        "endDate": booking.end_date.isoformat(),
        "totalAmount": str(booking.total_amount),
    }


# ---------------------------------------------------------------------
# TEMPLATE DATA BUILDERS
# ---------------------------------------------------------------------
def _booking_confirmed(booking, **_):
    return {**booking_details(booking), "subject": "Your booking is confirmed!"}


def _extension_confirmed(booking, extension=None, **_):
    return {
        **booking_details(booking),
        "subject": "Booking Extension Confirmed",
        "legDate": extension.booking_leg.leg_date.isoformat(),
        "extensionHours": extension.extended_duration_hours,
        "from": extension.extension_start_time.isoformat(),
        "to": extension.extension_end_time.isoformat(),
    }


def _status_change(booking, old_status=None, new_status=None, **_):
    return {
        **booking_details(booking),
        "subject": f"Booking {booking.booking_reference} is now {new_status.value.lower()}",
        "oldStatus": old_status.value,
        "newStatus": new_status.value,
    }


def _cancelled(booking, **_):
    return {
        **booking_details(booking),
        "subject": "Your booking has been cancelled",
        "cancellationReason": booking.cancellation_reason,
    }


def _review_request(booking, **_):
    return {**booking_details(booking), "subject": "How was your trip?"}


TEMPLATE_BUILDERS = {
    NotificationType.BOOKING_CONFIRMED: _booking_confirmed,
    NotificationType.BOOKING_EXTENSION_CONFIRMED: _extension_confirmed,
    NotificationType.BOOKING_STATUS_CHANGE: _status_change,
    NotificationType.BOOKING_CANCELLED: _cancelled,
    NotificationType.REVIEW_REQUEST: _review_request,
}


class NotificationService:
    def __init__(self, queue: JobQueue):
        self.queue = queue

    def build(self, notification_type: NotificationType, booking, **context) -> dict:
        builder = TEMPLATE_BUILDERS[notification_type]
        return {
            "type": notification_type.value,
            "bookingId": booking.id,
            "recipient": {
                "email": booking.customer_email,
                "phoneNumber": booking.user.phone_number if booking.user else None,
            },
            "templateData": builder(booking, **context),
        }

    def send(self, notification_type: NotificationType, booking, job_id: str, **context) -> str:
        payload = self.build(notification_type, booking, **context)
        self.queue.enqueue(
            SEND_NOTIFICATION_JOB,
            payload,
            job_id=job_id,
            attempts=JOB_ATTEMPTS,
        )
        logger.info(f"Queued {notification_type.value} notification | booking={booking.id} | job={job_id}")
        return job_id

    # -------- LIFECYCLE SHORTCUTS --------
    def booking_confirmed(self, booking):
        return self.send(
            NotificationType.BOOKING_CONFIRMED, booking, f"booking-confirmed-{booking.id}"
        )

    def extension_confirmed(self, booking, extension):
        return self.send(
            NotificationType.BOOKING_EXTENSION_CONFIRMED,
            booking,
            f"booking-extension-confirmed-{extension.id}",
            extension=extension,
        )

    def status_changed(self, booking, old_status, new_status):
        return self.send(
            NotificationType.BOOKING_STATUS_CHANGE,
            booking,
            f"booking-status-{booking.id}-{new_status.value.lower()}",
            old_status=old_status,
            new_status=new_status,
        )

    def booking_cancelled(self, booking):
        return self.send(
            NotificationType.BOOKING_CANCELLED, booking, f"booking-cancelled-{booking.id}"
        )

    def review_request(self, booking):
        return self.send(
            NotificationType.REVIEW_REQUEST, booking, f"review-request-{booking.id}"
        )
