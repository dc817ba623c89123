"""
Outbound notification collaborator.

The Lifecycle Engine calls a notifier after a transition has committed. The
call is fire-and-forget: ``notify_safely`` logs a failing notifier and
returns, so delivery problems never undo a transition.
"""
from hall_reservations.core.logging_config import get_logger

logger = get_logger()


class BookingNotifier:
    def status_changed(self, booking, previous, current, reason=None):
        raise NotImplementedError

    def payment_changed(self, booking, previous, current):
        raise NotImplementedError


class LogNotifier(BookingNotifier):
    """Default notifier: records transitions in the booking and payment logs."""

    def status_changed(self, booking, previous, current, reason=None):
        message = (
            f"Booking {booking.id} | Hall={booking.hall_id} | {booking.customer_email} "
            f"| {previous.value} -> {current.value}"
        )
        if reason:
            message += f" | Reason: {reason}"
        logger.bind(log_type="booking").info(message)

    def payment_changed(self, booking, previous, current):
        logger.bind(log_type="payment").info(
            f"Booking {booking.id} | Payment {previous.value} -> {current.value} "
            f"| Paid={booking.amount_paid} of {booking.total_amount}"
        )


_default_notifier = LogNotifier()


def get_notifier() -> BookingNotifier:
    return _default_notifier


def notify_safely(callback, *args, **kwargs):
    try:
        callback(*args, **kwargs)
    except Exception as e:
        logger.opt(exception=e).error(f"Notification failed in {getattr(callback, '__name__', callback)}: {e}")
