from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    DateTime,
    Numeric,
    JSON,
    Enum,
    ForeignKey,
    CheckConstraint,
    Index,
)
from sqlalchemy.orm import relationship

from hall_reservations.db.session import Base, utcnow
from hall_reservations.models.enums import BookingStatus, PaymentStatus, enum_values


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    hall_id = Column(Integer, ForeignKey("halls.id", ondelete="CASCADE"), nullable=False)

    purpose = Column(String, nullable=True)
    customer_name = Column(String, nullable=False)
    customer_email = Column(String, nullable=False)
    customer_phone = Column(String, nullable=True)
    num_attendees = Column(Integer, nullable=False)

    # Naive UTC instants, half-open [start_time, end_time)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)

    total_amount = Column(Numeric(12, 2), nullable=False)
    amount_paid = Column(Numeric(12, 2), nullable=False, default=0)

    status = Column(
        Enum(BookingStatus, name="bookingstatus", values_callable=enum_values),
        nullable=False,
        default=BookingStatus.PENDING,
    )
    payment_status = Column(
        Enum(PaymentStatus, name="paymentstatus", values_callable=enum_values),
        nullable=False,
        default=PaymentStatus.PENDING,
    )
    payment_method = Column(String, nullable=True)
    transaction_id = Column(String, nullable=True)

    notes = Column(Text, nullable=True)
    special_requirements = Column(JSON, nullable=False, default=list)
    equipment_requested = Column(JSON, nullable=False, default=list)

    cancellation_reason = Column(Text, nullable=True)
    cancellation_date = Column(DateTime, nullable=True)

    created_by = Column(String, nullable=True)
    last_modified_by = Column(String, nullable=True)
    idempotency_key = Column(String, nullable=True, unique=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    hall = relationship("Hall", back_populates="bookings")

    __table_args__ = (
        CheckConstraint("num_attendees >= 1", name="check_booking_attendees_positive"),
        CheckConstraint("start_time < end_time", name="check_booking_interval"),
        CheckConstraint("total_amount >= 0", name="check_booking_total_non_negative"),
        CheckConstraint("amount_paid >= 0", name="check_booking_paid_non_negative"),
        Index("ix_bookings_hall_window", "hall_id", "start_time", "end_time"),
        # Never hand a hard-deleted booking id to a new booking
        {"sqlite_autoincrement": True},
    )

    @property
    def duration_hours(self) -> float:
        return round((self.end_time - self.start_time).total_seconds() / 3600, 2)

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, hall={self.hall_id}, status={self.status})>"
