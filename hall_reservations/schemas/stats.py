from decimal import Decimal
from typing import Dict

from pydantic import BaseModel


class HallStats(BaseModel):
    total_halls: int = 0
    available_halls: int = 0
    total_bookings: int = 0
    total_revenue: Decimal = Decimal("0")
    average_hourly_rate: Decimal = Decimal("0")
    occupancy_rate: float = 0.0


class HallRevenue(BaseModel):
    hall_id: int
    hall_name: str
    booking_count: int
    revenue: Decimal
    amount_paid: Decimal


class MonthlyRevenue(BaseModel):
    month: int
    revenue: Decimal


class PaymentBreakdown(BaseModel):
    counts: Dict[str, int]
