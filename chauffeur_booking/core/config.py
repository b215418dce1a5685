import os
from decimal import Decimal
from dotenv import load_dotenv

load_dotenv()

# -------- INFRASTRUCTURE --------
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./chauffeur_booking.db")
REDIS_URL = os.getenv("REDIS_URL")
LOG_DIR = os.getenv("LOG_DIR", "logs")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_TO_STDERR = os.getenv("LOG_TO_STDERR", "false").lower() == "true"

JWT_SECRET = os.getenv("JWT_SECRET")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 60))

RAZORPAY_KEY_ID = os.getenv("RAZORPAY_KEY_ID")
RAZORPAY_KEY_SECRET = os.getenv("RAZORPAY_KEY_SECRET")
RAZORPAY_WEBHOOK_SECRET = os.getenv("RAZORPAY_WEBHOOK_SECRET")
PAYMENT_CURRENCY = os.getenv("PAYMENT_CURRENCY", "INR")

BUSINESS_TIMEZONE = os.getenv("BUSINESS_TIMEZONE", "Africa/Lagos")
WORKER_CONCURRENCY = int(os.getenv("WORKER_CONCURRENCY", 5))
RATES_CACHE_TTL_SECONDS = int(os.getenv("RATES_CACHE_TTL_SECONDS", 300))


# -------- BOOKING RULES --------
# Turnaround margin applied on both sides of an existing booking
BOOKING_BUFFER_HOURS = 2

# Same-day DAY bookings are closed at or after this hour
SAME_DAY_BOOKING_CUTOFF_HOUR = 11

AIRPORT_PICKUP_MIN_ADVANCE_HOURS = 1

# Accepted difference between client and server totals
PRICE_TOLERANCE = Decimal("0.01")

DAY_BOOKING_DURATION_HOURS = 12
NIGHT_START_HOUR = 23
NIGHT_END_HOUR = 5


# -------- QUEUES & JOBS --------
STATUS_UPDATES_QUEUE = "status-updates-queue"
PAYMENTS_QUEUE = "payments-queue"
NOTIFICATIONS_QUEUE = "notifications-queue"
PAYOUTS_QUEUE = "payouts-queue"

CONFIRMED_TO_ACTIVE = "confirmed-to-active"
ACTIVE_TO_COMPLETED = "active-to-completed"
CHARGE_COMPLETED_JOB = "charge-completed"
SEND_NOTIFICATION_JOB = "send-notification"
PROCESS_PAYOUT_JOB = "process-payout"

JOB_ATTEMPTS = 3
JOB_BACKOFF_DELAY_SECONDS = 5
JOB_DEDUP_TTL_SECONDS = 24 * 60 * 60
JOB_TIMEOUT_SECONDS = 5 * 60
JOB_FAILURE_TTL_SECONDS = 7 * 24 * 60 * 60

# delivered by the notification service, which owns this task
NOTIFICATION_TASK = os.getenv("NOTIFICATION_TASK", "notifications.tasks.send_notification")

TRIGGER_INTERVAL_SECONDS = 60 * 60
