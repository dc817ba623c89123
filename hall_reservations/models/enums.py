from enum import Enum


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    NO_SHOW = "no-show"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    PARTIAL = "partial"
    REFUNDED = "refunded"
    FAILED = "failed"


class DeletePolicy(str, Enum):
    BLOCK = "block"
    CASCADE = "cascade"


# Bookings in these states hold their time slot
ACTIVE_STATUSES = (BookingStatus.PENDING, BookingStatus.CONFIRMED)


def enum_values(enum_cls):
    return [member.value for member in enum_cls]
