"""
Reservation Calendar: bookings per hall.

The double-booking check and the insert that follows it run as one unit:
both happen inside a single store transaction while the hall's write lock is
held, with the hall row itself loaded ``FOR UPDATE``. Two requests for
overlapping slots on the same hall therefore serialize, and the second one
sees the first one's booking.
"""
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import or_
from sqlalchemy.orm import Session

from hall_reservations.core import config
from hall_reservations.core.errors import (
    AvailabilityError,
    CapacityError,
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    OverlapError,
    ValidationError,
    parse_payload,
)
from hall_reservations.core.locks import get_hall_locks
from hall_reservations.core.logging_config import get_logger
from hall_reservations.db.base import Booking, Hall
from hall_reservations.db.store import resolve_timeout, store_read, store_transaction
from hall_reservations.models.enums import ACTIVE_STATUSES, BookingStatus, PaymentStatus
from hall_reservations.schemas.booking import BookingCreate, BookingOut, BookingReschedule
from hall_reservations.schemas.pagination import Page, page_count
from hall_reservations.services.catalog import active_bookings_query, check_paging, get_hall
from hall_reservations.utils.intervals import day_bounds, free_windows, normalize_instant

logger = get_logger()


# ---------------------------------------------------------------------
# LOOKUPS
# ---------------------------------------------------------------------
def get_booking(db: Session, booking_id: int, for_update: bool = False, timeout: float | None = None) -> Booking:
    query = db.query(Booking).filter(Booking.id == booking_id)
    if for_update:
        query = query.with_for_update().populate_existing()
    with store_read(db, timeout):
        booking = query.first()
    if not booking:
        raise NotFoundError(f"Booking {booking_id} not found")
    return booking


def find_conflicts(db: Session, hall_id: int, start: datetime, end: datetime, exclude_id: int | None = None):
    query = active_bookings_query(db, hall_id).filter(
        Booking.start_time < end,
        Booking.end_time > start,
    )
    if exclude_id is not None:
        query = query.filter(Booking.id != exclude_id)
    return query.order_by(Booking.start_time, Booking.id).all()


# ---------------------------------------------------------------------
# VALIDATION (order matters: availability, window, capacity, overlap)
# ---------------------------------------------------------------------
def _check_bookable(db: Session, hall: Hall, start: datetime, end: datetime, attendees: int, exclude_id=None):
    if not hall.is_available:
        raise AvailabilityError(f"Hall {hall.id} is not accepting bookings")

    if start >= end:
        raise ValidationError("start_time must be before end_time")

    if attendees > hall.capacity:
        raise CapacityError(
            f"{attendees} attendees exceed the capacity of hall {hall.id} ({hall.capacity})"
        )

    conflicts = find_conflicts(db, hall.id, start, end, exclude_id=exclude_id)
    if conflicts:
        clash = conflicts[0]
        raise OverlapError(
            f"Hall {hall.id} is already booked from {clash.start_time.isoformat()} "
            f"to {clash.end_time.isoformat()}"
        )


def _same_request(booking: Booking, data: BookingCreate) -> bool:
    return (
        booking.hall_id == data.hall_id
        and booking.start_time == data.start_time
        and booking.end_time == data.end_time
        and booking.customer_email == data.customer_email
    )


# =====================================================================
# REQUEST BOOKING
# =====================================================================
def request_booking(
    db: Session,
    data,
    idempotency_key: str | None = None,
    timeout: float | None = None,
    locks=None,
) -> Booking:
    data = parse_payload(BookingCreate, data)
    key = idempotency_key or data.idempotency_key

    if config.REQUIRE_IDEMPOTENCY_KEY and not key:
        raise ValidationError("An idempotency key is required to request a booking")

    timeout = resolve_timeout(timeout)
    locks = locks or get_hall_locks()

    with locks.hold(data.hall_id, timeout):
        with store_transaction(db, timeout):
            if key:
                existing = db.query(Booking).filter(Booking.idempotency_key == key).first()
                if existing:
                    if not _same_request(existing, data):
                        raise ConflictError("Idempotency key already used for a different booking")
                    logger.bind(log_type="booking").info(
                        f"Booking Replayed | Booking={existing.id} | Key={key}"
                    )
                    return existing

            hall = get_hall(db, data.hall_id, for_update=True)
            _check_bookable(db, hall, data.start_time, data.end_time, data.num_attendees)

            booking = Booking(
                hall_id=hall.id,
                purpose=data.purpose,
                customer_name=data.customer_name,
                customer_email=data.customer_email,
                customer_phone=data.customer_phone,
                num_attendees=data.num_attendees,
                start_time=data.start_time,
                end_time=data.end_time,
                total_amount=data.total_amount,
                amount_paid=Decimal("0"),
                status=BookingStatus.PENDING,
                payment_status=PaymentStatus.PENDING,
                notes=data.notes,
                special_requirements=list(data.special_requirements),
                equipment_requested=list(data.equipment_requested),
                created_by=data.created_by,
                last_modified_by=data.created_by,
                idempotency_key=key,
            )
            db.add(booking)
            db.flush()

    logger.bind(log_type="booking").info(
        f"Booking Created | Booking={booking.id} | Hall={booking.hall_id} "
        f"| {booking.start_time.isoformat()} -> {booking.end_time.isoformat()} | {booking.customer_email}"
    )
    return booking


# =====================================================================
# RESCHEDULE
# =====================================================================
def reschedule_booking(
    db: Session,
    booking_id: int,
    data,
    timeout: float | None = None,
    locks=None,
) -> Booking:
    data = parse_payload(BookingReschedule, data)
    timeout = resolve_timeout(timeout)
    locks = locks or get_hall_locks()

    hall_id = get_booking(db, booking_id, timeout=timeout).hall_id

    with locks.hold(hall_id, timeout):
        with store_transaction(db, timeout):
            booking = get_booking(db, booking_id, for_update=True)
            if booking.status not in ACTIVE_STATUSES:
                raise InvalidTransitionError(
                    f"Booking {booking.id} is {booking.status.value} and cannot be rescheduled"
                )

            hall = get_hall(db, booking.hall_id, for_update=True)
            _check_bookable(
                db, hall, data.start_time, data.end_time, booking.num_attendees, exclude_id=booking.id
            )

            previous = (booking.start_time, booking.end_time)
            booking.start_time = data.start_time
            booking.end_time = data.end_time
            if data.modified_by:
                booking.last_modified_by = data.modified_by

    logger.bind(log_type="booking").info(
        f"Booking Rescheduled | Booking={booking.id} | Hall={booking.hall_id} "
        f"| {previous[0].isoformat()} -> {booking.start_time.isoformat()}"
    )
    return booking


# =====================================================================
# LIST / AVAILABILITY
# =====================================================================
def list_bookings_for_hall(
    db: Session,
    hall_id: int,
    start: datetime | None = None,
    end: datetime | None = None,
    timeout: float | None = None,
) -> list[Booking]:
    start = normalize_instant(start) if start is not None else None
    end = normalize_instant(end) if end is not None else None
    if start is not None and end is not None and start >= end:
        raise ValidationError("Range start must be before range end")

    with store_read(db, timeout):
        get_hall(db, hall_id)

        query = db.query(Booking).filter(Booking.hall_id == hall_id)
        if start is not None:
            query = query.filter(Booking.end_time > start)
        if end is not None:
            query = query.filter(Booking.start_time < end)

        return query.order_by(Booking.start_time.asc(), Booking.id.asc()).all()


def _enum_filter(enum_cls, value, label: str):
    if value is None:
        return None
    try:
        return enum_cls(value)
    except ValueError as e:
        raise ValidationError(f"Unknown {label} {value!r}") from e


def list_bookings(
    db: Session,
    status=None,
    payment_status=None,
    search: str | None = None,
    hall_id: int | None = None,
    page: int = 1,
    limit: int = 20,
    timeout: float | None = None,
) -> Page[BookingOut]:
    """
    All bookings across halls, newest first, one page at a time.

    ``search`` matches the customer name or email, the purpose or the hall
    name, case-insensitively. Bookings of removed halls stay listed.
    """
    status = _enum_filter(BookingStatus, status, "booking status")
    payment_status = _enum_filter(PaymentStatus, payment_status, "payment status")
    check_paging(page, limit)

    query = db.query(Booking).join(Hall, Booking.hall_id == Hall.id)
    if status is not None:
        query = query.filter(Booking.status == status)
    if payment_status is not None:
        query = query.filter(Booking.payment_status == payment_status)
    if hall_id is not None:
        query = query.filter(Booking.hall_id == hall_id)

    term = (search or "").strip()
    if term:
        pattern = f"%{term}%"
        query = query.filter(
            or_(
                Booking.customer_name.ilike(pattern),
                Booking.customer_email.ilike(pattern),
                Booking.purpose.ilike(pattern),
                Hall.name.ilike(pattern),
            )
        )

    with store_read(db, timeout):
        total = query.count()
        rows = (
            query.order_by(Booking.created_at.desc(), Booking.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )

    return Page[BookingOut](
        items=[BookingOut.model_validate(b) for b in rows],
        total=total,
        page=page,
        limit=limit,
        total_pages=page_count(total, limit),
    )


def available_slots(db: Session, hall_id: int, day: date, timeout: float | None = None):
    """Free windows on a UTC day, after removing every active booking."""
    window_start, window_end = day_bounds(day)

    with store_read(db, timeout):
        hall = get_hall(db, hall_id)
        if not hall.is_available:
            return []

        busy = [
            (b.start_time, b.end_time)
            for b in find_conflicts(db, hall.id, window_start, window_end)
        ]

    return free_windows(window_start, window_end, busy)


# =====================================================================
# DELETE (Administrative)
# =====================================================================
def delete_booking(db: Session, booking_id: int, timeout: float | None = None, locks=None) -> None:
    timeout = resolve_timeout(timeout)
    locks = locks or get_hall_locks()

    hall_id = get_booking(db, booking_id, timeout=timeout).hall_id

    with locks.hold(hall_id, timeout):
        with store_transaction(db, timeout):
            booking = get_booking(db, booking_id, for_update=True)
            db.delete(booking)

    logger.bind(log_type="admin").info(f"Booking Deleted | Booking={booking_id} | Hall={hall_id}")
