"""Create halls, hall images and bookings

Revision ID: 3b8c1d2e4f60
Revises:
Create Date: 2026-10-19 09:12:31.118204

"""
from alembic import op
import sqlalchemy as sa


revision = "3b8c1d2e4f60"
down_revision = None
branch_labels = None
depends_on = None


BOOKING_STATUSES = ("pending", "confirmed", "cancelled", "completed", "no-show")
PAYMENT_STATUSES = ("pending", "paid", "partial", "refunded", "failed")


def upgrade():
    # 1. Halls
    op.create_table(
        "halls",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("capacity", sa.Integer(), nullable=False),
        sa.Column("area_sqft", sa.Float(), nullable=True),
        sa.Column("location", sa.String(), nullable=True),
        sa.Column("rules", sa.Text(), nullable=True),
        sa.Column("hourly_rate", sa.Numeric(12, 2), nullable=False),
        sa.Column("daily_rate", sa.Numeric(12, 2), nullable=True),
        sa.Column("security_deposit", sa.Numeric(12, 2), nullable=False),
        sa.Column("equipment", sa.JSON(), nullable=False),
        sa.Column("is_available", sa.Boolean(), nullable=False),
        sa.Column("deleted", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_halls_id", "halls", ["id"])

    # 2. Hall images
    op.create_table(
        "hall_images",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("hall_id", sa.Integer(), sa.ForeignKey("halls.id", ondelete="CASCADE"), nullable=False),
        sa.Column("public_id", sa.String(), nullable=False),
        sa.Column("image_url", sa.String(), nullable=True),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("is_main", sa.Boolean(), nullable=False),
        sa.UniqueConstraint("hall_id", "public_id", name="uq_hall_image_ref"),
    )
    op.create_index("ix_hall_images_id", "hall_images", ["id"])
    op.create_index("ix_hall_images_hall_id", "hall_images", ["hall_id"])

    # 3. Bookings
    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("hall_id", sa.Integer(), sa.ForeignKey("halls.id", ondelete="CASCADE"), nullable=False),
        sa.Column("purpose", sa.String(), nullable=True),
        sa.Column("customer_name", sa.String(), nullable=False),
        sa.Column("customer_email", sa.String(), nullable=False),
        sa.Column("customer_phone", sa.String(), nullable=True),
        sa.Column("num_attendees", sa.Integer(), nullable=False),
        sa.Column("start_time", sa.DateTime(), nullable=False),
        sa.Column("end_time", sa.DateTime(), nullable=False),
        sa.Column("total_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("amount_paid", sa.Numeric(12, 2), nullable=False),
        sa.Column(
            "status",
            sa.Enum(*BOOKING_STATUSES, name="bookingstatus"),
            nullable=False,
            server_default="pending",
        ),
        sa.Column(
            "payment_status",
            sa.Enum(*PAYMENT_STATUSES, name="paymentstatus"),
            nullable=False,
            server_default="pending",
        ),
        sa.Column("payment_method", sa.String(), nullable=True),
        sa.Column("transaction_id", sa.String(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("special_requirements", sa.JSON(), nullable=False),
        sa.Column("equipment_requested", sa.JSON(), nullable=False),
        sa.Column("cancellation_reason", sa.Text(), nullable=True),
        sa.Column("cancellation_date", sa.DateTime(), nullable=True),
        sa.Column("created_by", sa.String(), nullable=True),
        sa.Column("last_modified_by", sa.String(), nullable=True),
        sa.Column("idempotency_key", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("idempotency_key"),
        sa.CheckConstraint("num_attendees >= 1", name="check_booking_attendees_positive"),
        sa.CheckConstraint("start_time < end_time", name="check_booking_interval"),
        sa.CheckConstraint("total_amount >= 0", name="check_booking_total_non_negative"),
        sa.CheckConstraint("amount_paid >= 0", name="check_booking_paid_non_negative"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_bookings_id", "bookings", ["id"])
    op.create_index("ix_bookings_hall_window", "bookings", ["hall_id", "start_time", "end_time"])


def downgrade():
    op.drop_index("ix_bookings_hall_window", table_name="bookings")
    op.drop_index("ix_bookings_id", table_name="bookings")
    op.drop_table("bookings")

    op.drop_index("ix_hall_images_hall_id", table_name="hall_images")
    op.drop_index("ix_hall_images_id", table_name="hall_images")
    op.drop_table("hall_images")

    op.drop_index("ix_halls_id", table_name="halls")
    op.drop_table("halls")

    # Drop ENUM types (PostgreSQL only)
    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        op.execute("DROP TYPE IF EXISTS bookingstatus")
        op.execute("DROP TYPE IF EXISTS paymentstatus")
