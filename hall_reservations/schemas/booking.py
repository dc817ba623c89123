from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from hall_reservations.models.enums import BookingStatus, PaymentStatus
from hall_reservations.utils.intervals import normalize_instant


class BookingWindow(BaseModel):
    start_time: datetime
    end_time: datetime

    @field_validator("start_time", "end_time")
    @classmethod
    def to_utc(cls, value: datetime) -> datetime:
        return normalize_instant(value)


class BookingCreate(BookingWindow):
    hall_id: int
    purpose: Optional[str] = None
    customer_name: str = Field(min_length=1)
    customer_email: EmailStr
    customer_phone: Optional[str] = None
    num_attendees: int = Field(ge=1)
    total_amount: Decimal = Field(ge=0)
    notes: Optional[str] = None
    special_requirements: List[str] = []
    equipment_requested: List[str] = []
    created_by: Optional[str] = None
    idempotency_key: Optional[str] = Field(default=None, min_length=1, max_length=255)


class BookingReschedule(BookingWindow):
    modified_by: Optional[str] = None


class StatusChange(BaseModel):
    status: BookingStatus
    reason: Optional[str] = None
    modified_by: Optional[str] = None


class PaymentUpdate(BaseModel):
    payment_status: PaymentStatus
    amount_paid: Optional[Decimal] = Field(default=None, ge=0)
    payment_method: Optional[str] = None
    transaction_id: Optional[str] = None
    modified_by: Optional[str] = None


class EquipmentItem(BaseModel):
    label: str = Field(min_length=1)

    @field_validator("label")
    @classmethod
    def not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("label cannot be blank")
        return value


class BookingOut(BaseModel):
    id: int
    hall_id: int
    purpose: Optional[str] = None
    customer_name: str
    customer_email: str
    customer_phone: Optional[str] = None
    num_attendees: int
    start_time: datetime
    end_time: datetime
    duration_hours: float
    total_amount: Decimal
    amount_paid: Decimal
    status: BookingStatus
    payment_status: PaymentStatus
    payment_method: Optional[str] = None
    transaction_id: Optional[str] = None
    notes: Optional[str] = None
    special_requirements: List[str] = []
    equipment_requested: List[str] = []
    cancellation_reason: Optional[str] = None
    cancellation_date: Optional[datetime] = None
    created_by: Optional[str] = None
    last_modified_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class TimeSlot(BaseModel):
    start: datetime
    end: datetime
