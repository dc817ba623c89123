"""
Resource Catalog: hall definitions.

Halls are tombstoned rather than removed so booking history keeps pointing at
a real row; every read filters tombstones out.
"""
from sqlalchemy import and_, func
from sqlalchemy.orm import Session

from hall_reservations.core import config
from hall_reservations.core.errors import ConflictError, NotFoundError, ValidationError, parse_payload
from hall_reservations.core.locks import get_hall_locks
from hall_reservations.core.logging_config import get_logger
from hall_reservations.db.base import Booking, Hall
from hall_reservations.db.session import utcnow
from hall_reservations.db.store import resolve_timeout, store_read, store_transaction
from hall_reservations.models.enums import ACTIVE_STATUSES, BookingStatus, DeletePolicy
from hall_reservations.schemas.hall import HallCreate, HallFilters, HallOut, HallUpdate
from hall_reservations.schemas.pagination import Page, page_count
from hall_reservations.services.notifications import get_notifier, notify_safely
from hall_reservations.utils.intervals import normalize_instant

logger = get_logger()

SORT_COLUMNS = {
    "name": Hall.name,
    "capacity": Hall.capacity,
    "hourly_rate": Hall.hourly_rate,
    "daily_rate": Hall.daily_rate,
    "created_at": Hall.created_at,
}


# ---------------------------------------------------------------------
# LOOKUPS
# ---------------------------------------------------------------------
def find_hall(db: Session, hall_id: int, for_update: bool = False):
    query = db.query(Hall).filter(Hall.id == hall_id, Hall.deleted == False)  # noqa: E712
    if for_update:
        query = query.with_for_update().populate_existing()
    return query.first()


def get_hall(db: Session, hall_id: int, for_update: bool = False, timeout: float | None = None) -> Hall:
    with store_read(db, timeout):
        hall = find_hall(db, hall_id, for_update=for_update)
    if not hall:
        raise NotFoundError(f"Hall {hall_id} not found")
    return hall


def active_bookings_query(db: Session, hall_id: int):
    return db.query(Booking).filter(
        Booking.hall_id == hall_id,
        Booking.status.in_(ACTIVE_STATUSES),
    )


# =====================================================================
# CREATE HALL
# =====================================================================
def create_hall(db: Session, data, timeout: float | None = None) -> Hall:
    data = parse_payload(HallCreate, data)

    with store_transaction(db, timeout):
        hall = Hall(
            name=data.name,
            description=data.description,
            capacity=data.capacity,
            area_sqft=data.area_sqft,
            location=data.location,
            rules=data.rules,
            hourly_rate=data.hourly_rate,
            daily_rate=data.daily_rate,
            security_deposit=data.security_deposit,
            equipment=list(data.equipment),
            is_available=data.is_available,
            deleted=False,
        )
        db.add(hall)
        db.flush()

    logger.bind(log_type="admin").info(f"Hall Created | Hall={hall.id} | Name={hall.name}")
    return hall


# =====================================================================
# UPDATE HALL
# =====================================================================
def update_hall(db: Session, hall_id: int, patch, timeout: float | None = None, locks=None) -> Hall:
    patch = parse_payload(HallUpdate, patch)
    changes = patch.model_dump(exclude_unset=True)
    if not changes:
        return get_hall(db, hall_id, timeout=timeout)

    timeout = resolve_timeout(timeout)
    locks = locks or get_hall_locks()

    with locks.hold(hall_id, timeout):
        with store_transaction(db, timeout):
            hall = get_hall(db, hall_id, for_update=True)

            new_capacity = changes.get("capacity")
            if new_capacity is not None and new_capacity < hall.capacity:
                largest = (
                    active_bookings_query(db, hall.id)
                    .with_entities(func.max(Booking.num_attendees))
                    .scalar()
                )
                if largest is not None and largest > new_capacity:
                    raise ConflictError(
                        f"Hall {hall.id} has active bookings for {largest} attendees; "
                        f"capacity cannot drop to {new_capacity}"
                    )

            for field, value in changes.items():
                if field == "equipment":
                    value = list(value)
                setattr(hall, field, value)

    logger.bind(log_type="admin").info(f"Hall Updated | Hall={hall.id} | Fields={sorted(changes)}")
    return hall


# =====================================================================
# AVAILABILITY OVERRIDE
# =====================================================================
def set_availability(
    db: Session,
    hall_id: int,
    is_available: bool,
    timeout: float | None = None,
    locks=None,
) -> Hall:
    if not isinstance(is_available, bool):
        raise ValidationError("is_available must be a boolean")

    timeout = resolve_timeout(timeout)
    locks = locks or get_hall_locks()

    with locks.hold(hall_id, timeout):
        with store_transaction(db, timeout):
            hall = get_hall(db, hall_id, for_update=True)
            hall.is_available = is_available

    logger.bind(log_type="admin").info(
        f"Hall {'activated' if is_available else 'deactivated'} | Hall={hall_id}"
    )
    return hall


# =====================================================================
# DELETE HALL (Tombstone, policy driven)
# =====================================================================
def _blocking_bookings(db: Session, hall_id: int, now):
    return (
        active_bookings_query(db, hall_id)
        .filter(Booking.end_time > now)
        .order_by(Booking.start_time, Booking.id)
        .all()
    )


def _refuse_blocked_delete(hall_id: int, blocking):
    raise ConflictError(
        f"Hall {hall_id} has {len(blocking)} active upcoming booking(s); "
        "cancel them or delete with the cascade policy"
    )


def _restore_availability(db: Session, hall_id: int, was_available: bool, timeout: float, locks):
    with locks.hold(hall_id, timeout):
        with store_transaction(db, timeout):
            hall = get_hall(db, hall_id, for_update=True)
            hall.is_available = was_available
    logger.bind(log_type="admin").warning(f"Hall Delete Aborted | Hall={hall_id} | Availability restored")


def delete_hall(
    db: Session,
    hall_id: int,
    policy=None,
    blob_store=None,
    notifier=None,
    timeout: float | None = None,
    locks=None,
) -> None:
    # Local imports: lifecycle and attachments both depend on this module
    from hall_reservations.services.attachments import release_hall_images
    from hall_reservations.services.lifecycle import apply_status_change

    try:
        policy = DeletePolicy(policy or config.HALL_DELETE_POLICY)
    except ValueError as e:
        raise ValidationError(f"Unknown delete policy {policy!r}") from e

    timeout = resolve_timeout(timeout)
    locks = locks or get_hall_locks()

    # 1. Refuse or reserve under the lock: an unavailable hall takes no new bookings
    with locks.hold(hall_id, timeout):
        with store_transaction(db, timeout):
            hall = get_hall(db, hall_id, for_update=True)
            if policy == DeletePolicy.BLOCK:
                blocking = _blocking_bookings(db, hall.id, utcnow())
                if blocking:
                    _refuse_blocked_delete(hall_id, blocking)
            was_available = hall.is_available
            hall.is_available = False

    # 2. Blob I/O outside the hall lock
    try:
        release_hall_images(db, hall_id, blob_store=blob_store, timeout=timeout)
    except Exception:
        _restore_availability(db, hall_id, was_available, timeout, locks)
        raise

    # 3. Cancel what is left (cascade) and tombstone
    cancelled = []
    with locks.hold(hall_id, timeout):
        with store_transaction(db, timeout):
            hall = get_hall(db, hall_id, for_update=True)
            blocking = _blocking_bookings(db, hall.id, utcnow())

            if blocking and policy == DeletePolicy.BLOCK:
                _refuse_blocked_delete(hall_id, blocking)

            for booking in blocking:
                previous = booking.status
                apply_status_change(booking, BookingStatus.CANCELLED, reason="Hall removed from catalog")
                cancelled.append((booking, previous))

            hall.is_available = False
            hall.deleted = True

    logger.bind(log_type="admin").info(
        f"Hall Deleted | Hall={hall_id} | Policy={policy.value} | CancelledBookings={len(cancelled)}"
    )

    notifier = notifier or get_notifier()
    for booking, previous in cancelled:
        notify_safely(notifier.status_changed, booking, previous, booking.status, booking.cancellation_reason)


# =====================================================================
# LIST HALLS (Filter / Sort / Paginate)
# =====================================================================
def check_paging(page: int | None, limit: int | None):
    if (page is not None and page < 1) or (limit is not None and limit < 1):
        raise ValidationError("page and limit must be positive")


def _matching_halls(db: Session, filters: HallFilters, sort_by: str, sort_order: str) -> list[Hall]:
    query = db.query(Hall).filter(Hall.deleted == False)  # noqa: E712

    if filters.min_capacity is not None:
        query = query.filter(Hall.capacity >= filters.min_capacity)
    if filters.max_capacity is not None:
        query = query.filter(Hall.capacity <= filters.max_capacity)
    if filters.min_price is not None:
        query = query.filter(Hall.hourly_rate >= filters.min_price)
    if filters.max_price is not None:
        query = query.filter(Hall.hourly_rate <= filters.max_price)
    if filters.location:
        query = query.filter(Hall.location.ilike(f"%{filters.location}%"))
    if filters.is_available is not None:
        query = query.filter(Hall.is_available == filters.is_available)

    if filters.available_from is not None:
        window_start = normalize_instant(filters.available_from)
        window_end = normalize_instant(filters.available_until)
        if window_start >= window_end:
            raise ValidationError("available_from must be before available_until")
        query = query.filter(
            ~Hall.bookings.any(
                and_(
                    Booking.status.in_(ACTIVE_STATUSES),
                    Booking.start_time < window_end,
                    Booking.end_time > window_start,
                )
            )
        )

    column = SORT_COLUMNS[sort_by]
    query = query.order_by(column.asc() if sort_order == "asc" else column.desc(), Hall.id.asc())

    halls = query.all()

    # JSON list containment is not portable across dialects
    if filters.equipment:
        wanted = set(filters.equipment)
        halls = [h for h in halls if wanted.issubset(h.equipment or [])]

    return halls


def _parse_listing(filters, sort_by: str, sort_order: str) -> HallFilters:
    filters = parse_payload(HallFilters, filters or {})
    if sort_by not in SORT_COLUMNS:
        raise ValidationError(f"Cannot sort halls by {sort_by!r}")
    if sort_order not in ("asc", "desc"):
        raise ValidationError("sort_order must be 'asc' or 'desc'")
    return filters


def list_halls(
    db: Session,
    filters=None,
    sort_by: str = "created_at",
    sort_order: str = "asc",
    page: int | None = None,
    limit: int | None = None,
    timeout: float | None = None,
) -> list[Hall]:
    filters = _parse_listing(filters, sort_by, sort_order)
    check_paging(page, limit)

    with store_read(db, timeout):
        halls = _matching_halls(db, filters, sort_by, sort_order)

    if limit is not None:
        offset = ((page or 1) - 1) * limit
        halls = halls[offset:offset + limit]

    return halls


def page_halls(
    db: Session,
    filters=None,
    sort_by: str = "created_at",
    sort_order: str = "asc",
    page: int = 1,
    limit: int = 20,
    timeout: float | None = None,
) -> Page[HallOut]:
    """Like ``list_halls`` but returns one page along with the totals."""
    filters = _parse_listing(filters, sort_by, sort_order)
    check_paging(page, limit)

    offset = (page - 1) * limit
    with store_read(db, timeout):
        halls = _matching_halls(db, filters, sort_by, sort_order)
        items = [HallOut.model_validate(h) for h in halls[offset:offset + limit]]

    return Page[HallOut](
        items=items,
        total=len(halls),
        page=page,
        limit=limit,
        total_pages=page_count(len(halls), limit),
    )
