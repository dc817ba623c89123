from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, Header, Query
from sqlalchemy.orm import Session

from hall_reservations.core.dependencies import get_db, get_notifier
from hall_reservations.models.enums import BookingStatus, PaymentStatus
from hall_reservations.schemas.booking import (
    BookingCreate,
    BookingOut,
    BookingReschedule,
    EquipmentItem,
    PaymentUpdate,
    StatusChange,
    TimeSlot,
)
from hall_reservations.schemas.pagination import Page
from hall_reservations.services import attachments, calendar, lifecycle

router = APIRouter(prefix="/bookings", tags=["Bookings"])


# =====================================================================
# CREATE BOOKING
# =====================================================================
@router.post("/", response_model=BookingOut, status_code=201)
def create_booking(
    data: BookingCreate,
    idempotency_key: Optional[str] = Header(default=None),
    db: Session = Depends(get_db),
):
    return calendar.request_booking(db, data, idempotency_key=idempotency_key)


# =====================================================================
# ALL BOOKINGS (Admin: filter / search / paginate)
# =====================================================================
@router.get("/", response_model=Page[BookingOut])
def list_bookings(
    status: Optional[BookingStatus] = None,
    payment_status: Optional[PaymentStatus] = None,
    search: Optional[str] = None,
    hall_id: Optional[int] = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    return calendar.list_bookings(
        db,
        status=status,
        payment_status=payment_status,
        search=search,
        hall_id=hall_id,
        page=page,
        limit=limit,
    )


# =====================================================================
# HALL CALENDAR
# =====================================================================
@router.get("/hall/{hall_id}", response_model=list[BookingOut])
def hall_bookings(
    hall_id: int,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    db: Session = Depends(get_db),
):
    return calendar.list_bookings_for_hall(db, hall_id, start=start, end=end)


@router.get("/hall/{hall_id}/available-slots")
def available_slots(hall_id: int, day: date, db: Session = Depends(get_db)):
    slots = calendar.available_slots(db, hall_id, day)
    return {
        "hall_id": hall_id,
        "date": day.isoformat(),
        "available_slots": [TimeSlot(start=s, end=e) for s, e in slots],
    }


# =====================================================================
# BOOKING DETAILS
# =====================================================================
@router.get("/{booking_id}", response_model=BookingOut)
def get_booking(booking_id: int, db: Session = Depends(get_db)):
    return calendar.get_booking(db, booking_id)


# =====================================================================
# RESCHEDULE
# =====================================================================
@router.put("/{booking_id}/schedule", response_model=BookingOut)
def reschedule(booking_id: int, data: BookingReschedule, db: Session = Depends(get_db)):
    return calendar.reschedule_booking(db, booking_id, data)


# =====================================================================
# LIFECYCLE
# =====================================================================
@router.post("/{booking_id}/status", response_model=BookingOut)
def change_status(
    booking_id: int,
    data: StatusChange,
    db: Session = Depends(get_db),
    notifier=Depends(get_notifier),
):
    return lifecycle.change_status(db, booking_id, data, notifier=notifier)


@router.post("/{booking_id}/payment", response_model=BookingOut)
def record_payment(
    booking_id: int,
    data: PaymentUpdate,
    db: Session = Depends(get_db),
    notifier=Depends(get_notifier),
):
    return lifecycle.record_payment(db, booking_id, data, notifier=notifier)


# =====================================================================
# EQUIPMENT REQUESTED
# =====================================================================
@router.post("/{booking_id}/equipment", response_model=BookingOut)
def add_equipment(booking_id: int, item: EquipmentItem, db: Session = Depends(get_db)):
    return attachments.add_booking_equipment(db, booking_id, item.label)


@router.delete("/{booking_id}/equipment/{index}", response_model=BookingOut)
def remove_equipment(booking_id: int, index: int, db: Session = Depends(get_db)):
    return attachments.remove_booking_equipment(db, booking_id, index)


# =====================================================================
# DELETE (Administrative hard delete)
# =====================================================================
@router.delete("/{booking_id}")
def delete_booking(booking_id: int, db: Session = Depends(get_db)):
    calendar.delete_booking(db, booking_id)
    return {"message": "Booking deleted"}
