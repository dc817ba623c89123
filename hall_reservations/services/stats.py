"""
Stats Aggregator.

Every aggregate is a pure function of the hall and booking sets handed to it.
``stats_snapshot`` and friends only load those sets from the store for the
current request; nothing is cached between calls.
"""
from collections import defaultdict
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy.orm import Session

from hall_reservations.db.base import Booking, Hall
from hall_reservations.db.store import store_read
from hall_reservations.models.enums import PaymentStatus
from hall_reservations.schemas.stats import HallRevenue, HallStats, MonthlyRevenue, PaymentBreakdown

CENTS = Decimal("0.01")


def _money(value) -> Decimal:
    return Decimal(value or 0).quantize(CENTS, rounding=ROUND_HALF_UP)


def _ratio(numerator, denominator):
    if not denominator:
        return 0
    return numerator / denominator


# =====================================================================
# PURE AGGREGATES
# =====================================================================
def compute_stats(halls, bookings) -> HallStats:
    halls = list(halls)
    bookings = list(bookings)

    total_capacity = sum(h.capacity for h in halls)
    total_attendees = sum(b.num_attendees for b in bookings)
    rate_sum = sum((Decimal(h.hourly_rate or 0) for h in halls), Decimal("0"))

    return HallStats(
        total_halls=len(halls),
        available_halls=sum(1 for h in halls if h.is_available),
        total_bookings=len(bookings),
        total_revenue=_money(sum((Decimal(b.total_amount or 0) for b in bookings), Decimal("0"))),
        average_hourly_rate=_money(_ratio(rate_sum, len(halls))),
        occupancy_rate=round(float(_ratio(total_attendees, total_capacity)) * 100, 2),
    )


def hall_breakdown(halls, bookings) -> list[HallRevenue]:
    per_hall = defaultdict(list)
    for b in bookings:
        per_hall[b.hall_id].append(b)

    rows = [
        HallRevenue(
            hall_id=h.id,
            hall_name=h.name,
            booking_count=len(per_hall[h.id]),
            revenue=_money(sum((Decimal(b.total_amount or 0) for b in per_hall[h.id]), Decimal("0"))),
            amount_paid=_money(sum((Decimal(b.amount_paid or 0) for b in per_hall[h.id]), Decimal("0"))),
        )
        for h in halls
    ]
    return sorted(rows, key=lambda r: (-r.revenue, r.hall_id))


def monthly_revenue(bookings, year: int) -> list[MonthlyRevenue]:
    totals = defaultdict(Decimal)
    for b in bookings:
        if b.start_time.year == year:
            totals[b.start_time.month] += Decimal(b.total_amount or 0)

    return [MonthlyRevenue(month=m, revenue=_money(totals[m])) for m in range(1, 13)]


def payment_breakdown(bookings) -> PaymentBreakdown:
    counts = {status.value: 0 for status in PaymentStatus}
    for b in bookings:
        counts[PaymentStatus(b.payment_status).value] += 1
    return PaymentBreakdown(counts=counts)


# =====================================================================
# STORE-BACKED SNAPSHOTS
# =====================================================================
def load_live(db: Session, timeout: float | None = None):
    with store_read(db, timeout):
        halls = db.query(Hall).filter(Hall.deleted == False).order_by(Hall.id).all()  # noqa: E712
        bookings = (
            db.query(Booking)
            .join(Hall, Booking.hall_id == Hall.id)
            .filter(Hall.deleted == False)  # noqa: E712
            .order_by(Booking.id)
            .all()
        )
    return halls, bookings


def stats_snapshot(db: Session, timeout: float | None = None) -> HallStats:
    return compute_stats(*load_live(db, timeout))


def revenue_per_hall(db: Session, timeout: float | None = None) -> list[HallRevenue]:
    return hall_breakdown(*load_live(db, timeout))


def revenue_by_month(db: Session, year: int, timeout: float | None = None) -> list[MonthlyRevenue]:
    _, bookings = load_live(db, timeout)
    return monthly_revenue(bookings, year)


def payment_stats(db: Session, timeout: float | None = None) -> PaymentBreakdown:
    _, bookings = load_live(db, timeout)
    return payment_breakdown(bookings)
