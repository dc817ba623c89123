from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from hall_reservations.core.dependencies import get_blob_store, get_db, get_notifier
from hall_reservations.schemas.booking import EquipmentItem
from hall_reservations.schemas.hall import HallCreate, HallOut, HallUpdate, SortKey, SortOrder
from hall_reservations.schemas.pagination import Page
from hall_reservations.services import attachments, catalog
from hall_reservations.models.enums import DeletePolicy

router = APIRouter(prefix="/halls", tags=["Halls"])


# =====================================================================
# CREATE HALL
# =====================================================================
@router.post("/", response_model=HallOut, status_code=201)
def create_hall(data: HallCreate, db: Session = Depends(get_db)):
    return catalog.create_hall(db, data)


# =====================================================================
# LIST HALLS (Filter / Sort / Paginate)
# =====================================================================
def listing_params(
    min_capacity: Optional[int] = None,
    max_capacity: Optional[int] = None,
    min_price: Optional[Decimal] = None,
    max_price: Optional[Decimal] = None,
    location: Optional[str] = None,
    equipment: List[str] = Query(default=[]),
    is_available: Optional[bool] = None,
    available_from: Optional[datetime] = None,
    available_until: Optional[datetime] = None,
    sort_by: SortKey = "created_at",
    sort_order: SortOrder = "asc",
):
    filters = {
        "min_capacity": min_capacity,
        "max_capacity": max_capacity,
        "min_price": min_price,
        "max_price": max_price,
        "location": location,
        "equipment": equipment,
        "is_available": is_available,
        "available_from": available_from,
        "available_until": available_until,
    }
    return {"filters": filters, "sort_by": sort_by, "sort_order": sort_order}


@router.get("/", response_model=list[HallOut])
def list_halls(
    page: int = Query(default=1, ge=1),
    limit: Optional[int] = Query(default=None, ge=1, le=100),
    listing: dict = Depends(listing_params),
    db: Session = Depends(get_db),
):
    return catalog.list_halls(db, page=page, limit=limit, **listing)


@router.get("/page", response_model=Page[HallOut])
def page_halls(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    listing: dict = Depends(listing_params),
    db: Session = Depends(get_db),
):
    return catalog.page_halls(db, page=page, limit=limit, **listing)


# =====================================================================
# HALL DETAILS
# =====================================================================
@router.get("/{hall_id}", response_model=HallOut)
def get_hall(hall_id: int, db: Session = Depends(get_db)):
    return catalog.get_hall(db, hall_id)


# =====================================================================
# EDIT HALL (Partial)
# =====================================================================
@router.patch("/{hall_id}", response_model=HallOut)
def update_hall(hall_id: int, data: HallUpdate, db: Session = Depends(get_db)):
    return catalog.update_hall(db, hall_id, data)


# =====================================================================
# AVAILABILITY OVERRIDE
# =====================================================================
@router.put("/{hall_id}/availability", response_model=HallOut)
def set_availability(hall_id: int, is_available: bool, db: Session = Depends(get_db)):
    return catalog.set_availability(db, hall_id, is_available)


# =====================================================================
# DELETE HALL
# =====================================================================
@router.delete("/{hall_id}")
def delete_hall(
    hall_id: int,
    policy: Optional[DeletePolicy] = None,
    db: Session = Depends(get_db),
    blob_store=Depends(get_blob_store),
    notifier=Depends(get_notifier),
):
    catalog.delete_hall(db, hall_id, policy=policy, blob_store=blob_store, notifier=notifier)
    return {"message": "Hall deleted successfully"}


# =====================================================================
# EQUIPMENT
# =====================================================================
@router.post("/{hall_id}/equipment", response_model=HallOut)
def add_equipment(hall_id: int, item: EquipmentItem, db: Session = Depends(get_db)):
    return attachments.add_equipment(db, hall_id, item.label)


@router.delete("/{hall_id}/equipment/{index}", response_model=HallOut)
def remove_equipment(hall_id: int, index: int, db: Session = Depends(get_db)):
    return attachments.remove_equipment(db, hall_id, index)
