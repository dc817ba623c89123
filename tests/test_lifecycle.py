from datetime import datetime
from decimal import Decimal

import pytest

from hall_reservations.core import config
from hall_reservations.core.errors import InvalidTransitionError, NotFoundError, ValidationError
from hall_reservations.models.enums import BookingStatus, PaymentStatus
from hall_reservations.services import calendar, lifecycle


def at(hour, minute=0, day=1):
    return datetime(2030, 5, day, hour, minute)


@pytest.fixture
def booking(make_hall, book):
    return book(make_hall(), at(9), at(11))


def reload(db, booking_id):
    db.expire_all()
    return calendar.get_booking(db, booking_id)


def test_cancelled_is_terminal(db, booking):
    lifecycle.cancel_booking(db, booking.id, reason="Double entry")

    with pytest.raises(InvalidTransitionError):
        lifecycle.confirm_booking(db, booking.id)

    assert reload(db, booking.id).status == BookingStatus.CANCELLED


@pytest.mark.parametrize(
    "current, target, allowed",
    [
        (BookingStatus.PENDING, BookingStatus.CONFIRMED, True),
        (BookingStatus.PENDING, BookingStatus.CANCELLED, True),
        (BookingStatus.PENDING, BookingStatus.COMPLETED, False),
        (BookingStatus.PENDING, BookingStatus.NO_SHOW, False),
        (BookingStatus.CONFIRMED, BookingStatus.COMPLETED, True),
        (BookingStatus.CONFIRMED, BookingStatus.CANCELLED, True),
        (BookingStatus.CONFIRMED, BookingStatus.NO_SHOW, True),
        (BookingStatus.CONFIRMED, BookingStatus.PENDING, False),
        (BookingStatus.COMPLETED, BookingStatus.CANCELLED, False),
        (BookingStatus.NO_SHOW, BookingStatus.CONFIRMED, False),
        (BookingStatus.CANCELLED, BookingStatus.PENDING, False),
    ],
)
def test_status_table(current, target, allowed):
    assert lifecycle.can_change_status(current, target) is allowed


@pytest.mark.parametrize(
    "current, target, allowed",
    [
        (PaymentStatus.PENDING, PaymentStatus.PARTIAL, True),
        (PaymentStatus.PENDING, PaymentStatus.PAID, True),
        (PaymentStatus.PENDING, PaymentStatus.FAILED, True),
        (PaymentStatus.PENDING, PaymentStatus.REFUNDED, False),
        (PaymentStatus.PARTIAL, PaymentStatus.PAID, True),
        (PaymentStatus.PARTIAL, PaymentStatus.REFUNDED, True),
        (PaymentStatus.PAID, PaymentStatus.REFUNDED, True),
        (PaymentStatus.PAID, PaymentStatus.PENDING, False),
        (PaymentStatus.FAILED, PaymentStatus.PENDING, True),
        (PaymentStatus.REFUNDED, PaymentStatus.PAID, False),
    ],
)
def test_payment_table(current, target, allowed):
    assert lifecycle.can_change_payment(current, target) is allowed


def test_terminal_statuses():
    terminal = {s for s in BookingStatus if lifecycle.is_terminal(s)}
    assert terminal == {BookingStatus.CANCELLED, BookingStatus.COMPLETED, BookingStatus.NO_SHOW}


def test_cancel_records_reason_and_date(db, booking):
    cancelled = lifecycle.cancel_booking(db, booking.id, reason="Client request", modified_by="staff-2")

    assert cancelled.status == BookingStatus.CANCELLED
    assert cancelled.cancellation_reason == "Client request"
    assert cancelled.cancellation_date is not None
    assert cancelled.last_modified_by == "staff-2"


def test_confirm_leaves_cancellation_fields_empty(db, booking):
    confirmed = lifecycle.confirm_booking(db, booking.id)

    assert confirmed.status == BookingStatus.CONFIRMED
    assert confirmed.cancellation_reason is None
    assert confirmed.cancellation_date is None


def test_invalid_transition_leaves_booking_unchanged(db, booking):
    with pytest.raises(InvalidTransitionError):
        lifecycle.complete_booking(db, booking.id)

    assert reload(db, booking.id).status == BookingStatus.PENDING


def test_unknown_status_value(db, booking):
    with pytest.raises(ValidationError):
        lifecycle.change_status(db, booking.id, {"status": "archived"})


def test_unknown_booking(db):
    with pytest.raises(NotFoundError):
        lifecycle.confirm_booking(db, 9999)


class TestCompletion:
    def test_requires_settled_payment(self, db, booking):
        lifecycle.confirm_booking(db, booking.id)

        with pytest.raises(InvalidTransitionError):
            lifecycle.complete_booking(db, booking.id)

        lifecycle.record_payment(db, booking.id, {"payment_status": "paid"})
        assert lifecycle.complete_booking(db, booking.id).status == BookingStatus.COMPLETED

    def test_failed_payment_blocks_completion(self, db, booking):
        lifecycle.confirm_booking(db, booking.id)
        lifecycle.record_payment(db, booking.id, {"payment_status": "failed"})

        with pytest.raises(InvalidTransitionError):
            lifecycle.complete_booking(db, booking.id)

    def test_partial_payment_allowed_by_default(self, db, booking):
        lifecycle.confirm_booking(db, booking.id)
        lifecycle.record_payment(db, booking.id, {"payment_status": "partial", "amount_paid": "50.00"})

        assert lifecycle.complete_booking(db, booking.id).status == BookingStatus.COMPLETED

    def test_partial_payment_can_be_forbidden(self, db, booking, monkeypatch):
        monkeypatch.setattr(config, "ALLOW_COMPLETE_WITH_PARTIAL_PAYMENT", False)
        lifecycle.confirm_booking(db, booking.id)
        lifecycle.record_payment(db, booking.id, {"payment_status": "partial", "amount_paid": "50.00"})

        with pytest.raises(InvalidTransitionError):
            lifecycle.complete_booking(db, booking.id)

        assert reload(db, booking.id).status == BookingStatus.CONFIRMED


class TestPayments:
    def test_paid_without_amount_settles_the_total(self, db, booking):
        paid = lifecycle.record_payment(
            db,
            booking.id,
            {"payment_status": "paid", "payment_method": "card", "transaction_id": "tx-881"},
        )

        assert paid.payment_status == PaymentStatus.PAID
        assert paid.amount_paid == Decimal("200.00")
        assert paid.payment_method == "card"
        assert paid.transaction_id == "tx-881"

    def test_partial_then_paid(self, db, booking):
        partial = lifecycle.record_payment(db, booking.id, {"payment_status": "partial", "amount_paid": "80"})
        assert partial.amount_paid == Decimal("80")

        paid = lifecycle.record_payment(db, booking.id, {"payment_status": "paid"})
        assert paid.amount_paid == Decimal("200.00")

    def test_partial_needs_an_amount(self, db, booking):
        with pytest.raises(ValidationError):
            lifecycle.record_payment(db, booking.id, {"payment_status": "partial"})

    def test_amount_above_total(self, db, booking):
        with pytest.raises(ValidationError):
            lifecycle.record_payment(db, booking.id, {"payment_status": "paid", "amount_paid": "250.00"})

        assert reload(db, booking.id).payment_status == PaymentStatus.PENDING

    def test_refunded_is_terminal(self, db, booking):
        lifecycle.record_payment(db, booking.id, {"payment_status": "paid"})
        lifecycle.record_payment(db, booking.id, {"payment_status": "refunded"})

        with pytest.raises(InvalidTransitionError):
            lifecycle.record_payment(db, booking.id, {"payment_status": "paid"})

    def test_failed_can_be_retried(self, db, booking):
        lifecycle.record_payment(db, booking.id, {"payment_status": "failed"})
        retried = lifecycle.record_payment(db, booking.id, {"payment_status": "pending"})

        assert retried.payment_status == PaymentStatus.PENDING

    def test_payment_axis_is_independent_of_status(self, db, booking):
        lifecycle.cancel_booking(db, booking.id)
        updated = lifecycle.record_payment(db, booking.id, {"payment_status": "paid"})

        assert updated.status == BookingStatus.CANCELLED
        assert updated.payment_status == PaymentStatus.PAID


class TestNotifications:
    def test_status_and_payment_changes_are_reported(self, db, booking, notifier):
        lifecycle.confirm_booking(db, booking.id, notifier=notifier)
        lifecycle.record_payment(db, booking.id, {"payment_status": "paid"}, notifier=notifier)
        lifecycle.cancel_booking(db, booking.id, reason="Venue flooded", notifier=notifier)

        assert notifier.events == [
            ("status", booking.id, BookingStatus.PENDING, BookingStatus.CONFIRMED, None),
            ("payment", booking.id, PaymentStatus.PENDING, PaymentStatus.PAID),
            ("status", booking.id, BookingStatus.CONFIRMED, BookingStatus.CANCELLED, "Venue flooded"),
        ]

    def test_rejected_change_is_not_reported(self, db, booking, notifier):
        with pytest.raises(InvalidTransitionError):
            lifecycle.mark_no_show(db, booking.id, notifier=notifier)

        assert notifier.events == []

    def test_failing_notifier_does_not_undo_the_change(self, db, booking, broken_notifier):
        confirmed = lifecycle.confirm_booking(db, booking.id, notifier=broken_notifier)
        assert confirmed.status == BookingStatus.CONFIRMED

        lifecycle.record_payment(db, booking.id, {"payment_status": "paid"}, notifier=broken_notifier)

        stored = reload(db, booking.id)
        assert stored.status == BookingStatus.CONFIRMED
        assert stored.payment_status == PaymentStatus.PAID
