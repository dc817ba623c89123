from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class HallBase(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    capacity: int = Field(gt=0)
    area_sqft: Optional[float] = Field(default=None, ge=0)
    location: Optional[str] = None
    rules: Optional[str] = None

    # Pricing fields
    hourly_rate: Decimal = Field(ge=0)
    daily_rate: Optional[Decimal] = Field(default=None, ge=0)
    security_deposit: Decimal = Field(default=Decimal("0"), ge=0)

    equipment: List[str] = []
    is_available: bool = True


class HallCreate(HallBase):
    pass


class HallUpdate(BaseModel):
    """Partial update; only fields present in the payload are applied."""

    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    capacity: Optional[int] = Field(default=None, gt=0)
    area_sqft: Optional[float] = Field(default=None, ge=0)
    location: Optional[str] = None
    rules: Optional[str] = None
    hourly_rate: Optional[Decimal] = Field(default=None, ge=0)
    daily_rate: Optional[Decimal] = Field(default=None, ge=0)
    security_deposit: Optional[Decimal] = Field(default=None, ge=0)
    equipment: Optional[List[str]] = None
    is_available: Optional[bool] = None

    @model_validator(mode="after")
    def required_fields_not_null(self):
        for field in ("name", "capacity", "hourly_rate", "security_deposit", "equipment", "is_available"):
            if field in self.model_fields_set and getattr(self, field) is None:
                raise ValueError(f"{field} cannot be null")
        return self


class HallOut(HallBase):
    id: int
    images: List[str] = []
    main_image: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {
        "from_attributes": True
    }

    @field_validator("images", mode="before")
    @classmethod
    def image_refs(cls, value):
        return [getattr(img, "public_id", img) for img in value or []]


class HallFilters(BaseModel):
    min_capacity: Optional[int] = Field(default=None, ge=0)
    max_capacity: Optional[int] = Field(default=None, ge=0)
    min_price: Optional[Decimal] = Field(default=None, ge=0)
    max_price: Optional[Decimal] = Field(default=None, ge=0)
    location: Optional[str] = None
    equipment: List[str] = []
    is_available: Optional[bool] = None
    available_from: Optional[datetime] = None
    available_until: Optional[datetime] = None

    @model_validator(mode="after")
    def complete_window(self):
        if (self.available_from is None) != (self.available_until is None):
            raise ValueError("available_from and available_until must be given together")
        return self


SortKey = Literal["name", "capacity", "hourly_rate", "daily_rate", "created_at"]
SortOrder = Literal["asc", "desc"]


class HallImageOut(BaseModel):
    id: int
    hall_id: int
    public_id: str
    image_url: Optional[str] = None
    position: int
    is_main: bool

    model_config = {"from_attributes": True}
