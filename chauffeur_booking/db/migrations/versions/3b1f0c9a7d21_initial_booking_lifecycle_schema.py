from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "3b1f0c9a7d21"
down_revision = None
branch_labels = None
depends_on = None


def _enum(name, *values):
    return sa.Enum(*values, name=name, create_type=False)


ENUMS = {
    "userrole": ("CUSTOMER", "FLEET_OWNER", "CHAUFFEUR"),
    "carstatus": ("AVAILABLE", "BOOKED", "HOLD", "IN_SERVICE"),
    "carapprovalstatus": ("PENDING", "APPROVED", "REJECTED"),
    "bookingtype": ("DAY", "NIGHT", "AIRPORT_PICKUP"),
    "bookingstatus": ("PENDING", "CONFIRMED", "ACTIVE", "COMPLETED", "CANCELLED"),
    "paymentstatus": ("UNPAID", "PAID"),
    "extensionstatus": ("PENDING", "ACTIVE", "CANCELLED"),
    "paymentattemptstatus": ("SUCCESSFUL", "FAILED"),
    "payoutstatus": ("PENDING", "PAID", "FAILED"),
}


def _money(name, nullable=False):
    return sa.Column(name, sa.Numeric(12, 2), nullable=nullable, server_default="0")


def _pricing_columns():
    return [
        _money("net_total"),
        _money("platform_customer_service_fee_amount"),
        _money("vat_amount"),
        sa.Column("total_amount", sa.Numeric(12, 2), nullable=False),
        _money("platform_fleet_owner_commission_amount"),
        _money("fleet_owner_payout_amount_net"),
    ]


def upgrade():
    # 1️⃣ ENUM types (shared ones like paymentstatus are created once)
    bind = op.get_bind()
    for name, values in ENUMS.items():
        sa.Enum(*values, name=name).create(bind, checkfirst=True)

    # 2️⃣ Tables
    op.create_table(
        "users",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("name", sa.String, nullable=False),
        sa.Column("email", sa.String, nullable=False),
        sa.Column("phone_number", sa.String, nullable=True),
        sa.Column("role", _enum("userrole", *ENUMS["userrole"]), nullable=False),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "cars",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("owner_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("registration_number", sa.String, nullable=False, unique=True),
        sa.Column("make", sa.String, nullable=False),
        sa.Column("model", sa.String, nullable=False),
        _money("hourly_rate"),
        _money("day_rate"),
        _money("night_rate"),
        _money("airport_pickup_rate"),
        sa.Column("status", _enum("carstatus", *ENUMS["carstatus"]), nullable=False),
        sa.Column("approval_status", _enum("carapprovalstatus", *ENUMS["carapprovalstatus"]), nullable=False),
    )

    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("car_id", sa.Integer, sa.ForeignKey("cars.id"), nullable=False),
        sa.Column("user_id", sa.Integer, sa.ForeignKey("users.id"), nullable=True),
        sa.Column("guest_email", sa.String, nullable=True),
        sa.Column("guest_name", sa.String, nullable=True),
        sa.Column("chauffeur_id", sa.Integer, sa.ForeignKey("users.id"), nullable=True),
        sa.Column("booking_reference", sa.String, nullable=False),
        sa.Column("type", _enum("bookingtype", *ENUMS["bookingtype"]), nullable=False),
        sa.Column("status", _enum("bookingstatus", *ENUMS["bookingstatus"]), nullable=False),
        sa.Column("payment_status", _enum("paymentstatus", *ENUMS["paymentstatus"]), nullable=False),
        sa.Column("start_date", sa.DateTime, nullable=False),
        sa.Column("end_date", sa.DateTime, nullable=False),
        *_pricing_columns(),
        sa.Column("payment_intent", sa.String, nullable=True, unique=True),
        sa.Column("cancelled_at", sa.DateTime, nullable=True),
        sa.Column("cancellation_reason", sa.String, nullable=True),
        sa.Column("created_at", sa.DateTime, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime, server_default=sa.func.now()),
    )
    op.create_index("ix_bookings_car_id", "bookings", ["car_id"])
    op.create_index("ix_bookings_booking_reference", "bookings", ["booking_reference"], unique=True)
    op.create_index("ix_bookings_status", "bookings", ["status"])
    op.create_index("ix_bookings_start_date", "bookings", ["start_date"])
    op.create_index("ix_bookings_end_date", "bookings", ["end_date"])

    op.create_table(
        "booking_legs",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("booking_id", sa.Integer, sa.ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False),
        sa.Column("leg_date", sa.Date, nullable=False),
        sa.Column("leg_start_time", sa.DateTime, nullable=False),
        sa.Column("leg_end_time", sa.DateTime, nullable=False),
    )
    op.create_index("ix_booking_legs_booking_id", "booking_legs", ["booking_id"])

    op.create_table(
        "extensions",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("booking_leg_id", sa.Integer, sa.ForeignKey("booking_legs.id"), nullable=False),
        sa.Column("extension_start_time", sa.DateTime, nullable=False),
        sa.Column("extension_end_time", sa.DateTime, nullable=False),
        sa.Column("extended_duration_hours", sa.Integer, nullable=False),
        sa.Column("status", _enum("extensionstatus", *ENUMS["extensionstatus"]), nullable=False),
        sa.Column("payment_status", _enum("paymentstatus", *ENUMS["paymentstatus"]), nullable=False),
        *_pricing_columns(),
        sa.Column("payment_intent", sa.String, nullable=True, unique=True),
        sa.Column("payment_id", sa.Integer, nullable=True),
        sa.Column("created_at", sa.DateTime, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime, server_default=sa.func.now()),
    )
    op.create_index("ix_extensions_booking_leg_id", "extensions", ["booking_leg_id"])

    op.create_table(
        "payments",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("tx_ref", sa.String, nullable=False),
        sa.Column("status", _enum("paymentattemptstatus", *ENUMS["paymentattemptstatus"]), nullable=False),
        sa.Column("booking_id", sa.Integer, sa.ForeignKey("bookings.id"), nullable=True),
        sa.Column("extension_id", sa.Integer, sa.ForeignKey("extensions.id"), nullable=True),
        sa.Column("amount_expected", sa.Numeric(12, 2), nullable=False),
        sa.Column("amount_charged", sa.Numeric(12, 2), nullable=False),
        sa.Column("currency", sa.String, nullable=False),
        sa.Column("provider_transaction_id", sa.String, nullable=False),
        sa.Column("payment_method", sa.String, nullable=True),
        sa.Column("confirmed_at", sa.DateTime, nullable=True),
        sa.Column("reconciled_at", sa.DateTime, nullable=True),
        sa.Column("created_at", sa.DateTime, server_default=sa.func.now()),
        sa.CheckConstraint(
            "(booking_id IS NULL) <> (extension_id IS NULL)",
            name="ck_payments_single_target",
        ),
    )
    op.create_index("ix_payments_tx_ref", "payments", ["tx_ref"], unique=True)

    op.create_table(
        "payout_transactions",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("booking_id", sa.Integer, sa.ForeignKey("bookings.id"), nullable=False, unique=True),
        sa.Column("fleet_owner_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("currency", sa.String, nullable=False),
        sa.Column("status", _enum("payoutstatus", *ENUMS["payoutstatus"]), nullable=False),
        sa.Column("created_at", sa.DateTime, server_default=sa.func.now()),
    )

    op.create_table(
        "platform_rates",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("vat_rate_percent", sa.Numeric(5, 2), nullable=False),
        sa.Column("platform_customer_service_fee_rate_percent", sa.Numeric(5, 2), nullable=False),
        sa.Column("platform_fleet_owner_commission_rate_percent", sa.Numeric(5, 2), nullable=False),
        sa.Column("effective_from", sa.DateTime, nullable=False),
        sa.Column("effective_until", sa.DateTime, nullable=True),
    )


def downgrade():
    for table in (
        "platform_rates",
        "payout_transactions",
        "payments",
        "extensions",
        "booking_legs",
        "bookings",
        "cars",
        "users",
    ):
        op.drop_table(table)

    bind = op.get_bind()
    for name in reversed(list(ENUMS)):
        sa.Enum(name=name).drop(bind, checkfirst=True)
