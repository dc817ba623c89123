"""
Lifecycle Engine: booking status and payment status state machines.

The two axes move independently, each through its own transition table. A
transition outside the table raises ``InvalidTransitionError`` before
anything is written.
"""
from decimal import Decimal

from sqlalchemy.orm import Session

from hall_reservations.core import config
from hall_reservations.core.errors import InvalidTransitionError, ValidationError, parse_payload
from hall_reservations.core.locks import get_hall_locks
from hall_reservations.core.logging_config import get_logger
from hall_reservations.db.session import utcnow
from hall_reservations.db.store import resolve_timeout, store_transaction
from hall_reservations.models.enums import BookingStatus, PaymentStatus
from hall_reservations.schemas.booking import PaymentUpdate, StatusChange
from hall_reservations.services.calendar import get_booking
from hall_reservations.services.notifications import get_notifier, notify_safely

logger = get_logger()

STATUS_TRANSITIONS = {
    BookingStatus.PENDING: frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELLED}),
    BookingStatus.CONFIRMED: frozenset(
        {BookingStatus.COMPLETED, BookingStatus.CANCELLED, BookingStatus.NO_SHOW}
    ),
    BookingStatus.CANCELLED: frozenset(),
    BookingStatus.COMPLETED: frozenset(),
    BookingStatus.NO_SHOW: frozenset(),
}

PAYMENT_TRANSITIONS = {
    PaymentStatus.PENDING: frozenset({PaymentStatus.PARTIAL, PaymentStatus.PAID, PaymentStatus.FAILED}),
    PaymentStatus.PARTIAL: frozenset({PaymentStatus.PAID, PaymentStatus.REFUNDED}),
    PaymentStatus.PAID: frozenset({PaymentStatus.REFUNDED}),
    PaymentStatus.FAILED: frozenset({PaymentStatus.PENDING}),
    PaymentStatus.REFUNDED: frozenset(),
}

# Payment states that never allow a booking to be marked completed
UNSETTLED_PAYMENTS = frozenset({PaymentStatus.PENDING, PaymentStatus.FAILED})


def can_change_status(current: BookingStatus, target: BookingStatus) -> bool:
    return BookingStatus(target) in STATUS_TRANSITIONS[BookingStatus(current)]


def can_change_payment(current: PaymentStatus, target: PaymentStatus) -> bool:
    return PaymentStatus(target) in PAYMENT_TRANSITIONS[PaymentStatus(current)]


def is_terminal(status: BookingStatus) -> bool:
    return not STATUS_TRANSITIONS[BookingStatus(status)]


def check_status_change(booking, target: BookingStatus, allow_partial: bool | None = None):
    if allow_partial is None:
        allow_partial = config.ALLOW_COMPLETE_WITH_PARTIAL_PAYMENT

    if not can_change_status(booking.status, target):
        raise InvalidTransitionError(
            f"Booking {booking.id} cannot move from {booking.status.value} to {target.value}"
        )

    if target == BookingStatus.COMPLETED:
        if booking.payment_status in UNSETTLED_PAYMENTS:
            raise InvalidTransitionError(
                f"Booking {booking.id} cannot be completed while payment is {booking.payment_status.value}"
            )
        if booking.payment_status == PaymentStatus.PARTIAL and not allow_partial:
            raise InvalidTransitionError(
                f"Booking {booking.id} cannot be completed while only partially paid"
            )


def apply_status_change(booking, target: BookingStatus, reason: str | None = None, modified_by: str | None = None):
    """Validate and apply a status change in memory; the caller commits."""
    target = BookingStatus(target)
    check_status_change(booking, target)

    booking.status = target
    if target == BookingStatus.CANCELLED:
        booking.cancellation_reason = reason
        booking.cancellation_date = utcnow()
    if modified_by:
        booking.last_modified_by = modified_by
    return booking


# =====================================================================
# STATUS CHANGES
# =====================================================================
def change_status(
    db: Session,
    booking_id: int,
    data,
    notifier=None,
    timeout: float | None = None,
    locks=None,
):
    data = parse_payload(StatusChange, data)
    timeout = resolve_timeout(timeout)
    locks = locks or get_hall_locks()
    notifier = notifier or get_notifier()

    hall_id = get_booking(db, booking_id, timeout=timeout).hall_id

    with locks.hold(hall_id, timeout):
        with store_transaction(db, timeout):
            booking = get_booking(db, booking_id, for_update=True)
            previous = booking.status
            apply_status_change(booking, data.status, reason=data.reason, modified_by=data.modified_by)

    logger.bind(log_type="booking").info(
        f"Booking Status | Booking={booking.id} | {previous.value} -> {booking.status.value}"
    )
    notify_safely(notifier.status_changed, booking, previous, booking.status, data.reason)
    return booking


def confirm_booking(db: Session, booking_id: int, modified_by: str | None = None, **kwargs):
    return change_status(db, booking_id, StatusChange(status=BookingStatus.CONFIRMED, modified_by=modified_by), **kwargs)


def cancel_booking(db: Session, booking_id: int, reason: str | None = None, modified_by: str | None = None, **kwargs):
    return change_status(
        db,
        booking_id,
        StatusChange(status=BookingStatus.CANCELLED, reason=reason, modified_by=modified_by),
        **kwargs,
    )


def complete_booking(db: Session, booking_id: int, modified_by: str | None = None, **kwargs):
    return change_status(db, booking_id, StatusChange(status=BookingStatus.COMPLETED, modified_by=modified_by), **kwargs)


def mark_no_show(db: Session, booking_id: int, modified_by: str | None = None, **kwargs):
    return change_status(db, booking_id, StatusChange(status=BookingStatus.NO_SHOW, modified_by=modified_by), **kwargs)


# =====================================================================
# PAYMENT CHANGES
# =====================================================================
def _resolve_amount_paid(booking, data: PaymentUpdate) -> Decimal:
    amount = data.amount_paid
    total = Decimal(booking.total_amount)

    if data.payment_status == PaymentStatus.PAID and amount is None:
        return total

    if data.payment_status == PaymentStatus.PARTIAL and amount is None:
        raise ValidationError("A partial payment needs amount_paid")

    if amount is None:
        return Decimal(booking.amount_paid)

    # Refund corrections may leave amount_paid above the total for a while
    if data.payment_status in (PaymentStatus.PAID, PaymentStatus.PARTIAL) and amount > total:
        raise ValidationError(f"amount_paid {amount} exceeds the booking total {total}")

    return amount


def record_payment(
    db: Session,
    booking_id: int,
    data,
    notifier=None,
    timeout: float | None = None,
    locks=None,
):
    data = parse_payload(PaymentUpdate, data)
    timeout = resolve_timeout(timeout)
    locks = locks or get_hall_locks()
    notifier = notifier or get_notifier()

    hall_id = get_booking(db, booking_id, timeout=timeout).hall_id

    with locks.hold(hall_id, timeout):
        with store_transaction(db, timeout):
            booking = get_booking(db, booking_id, for_update=True)
            previous = booking.payment_status

            if not can_change_payment(previous, data.payment_status):
                raise InvalidTransitionError(
                    f"Booking {booking.id} payment cannot move from {previous.value} "
                    f"to {data.payment_status.value}"
                )

            booking.amount_paid = _resolve_amount_paid(booking, data)
            booking.payment_status = data.payment_status
            if data.payment_method:
                booking.payment_method = data.payment_method
            if data.transaction_id:
                booking.transaction_id = data.transaction_id
            if data.modified_by:
                booking.last_modified_by = data.modified_by

    logger.bind(log_type="payment").info(
        f"Payment Recorded | Booking={booking.id} | {previous.value} -> {booking.payment_status.value} "
        f"| Paid={booking.amount_paid}"
    )
    notify_safely(notifier.payment_changed, booking, previous, booking.payment_status)
    return booking
