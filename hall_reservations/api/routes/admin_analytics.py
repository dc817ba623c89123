from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from hall_reservations.core.dependencies import get_db
from hall_reservations.core.logging_config import get_logger
from hall_reservations.schemas.stats import HallRevenue, HallStats, MonthlyRevenue, PaymentBreakdown
from hall_reservations.services import stats

router = APIRouter(prefix="/admin-analytics", tags=["Admin Analytics"])
logger = get_logger()


# =====================================================================
# 1. OVERVIEW
# =====================================================================
@router.get("/stats", response_model=HallStats)
def overview(db: Session = Depends(get_db)):
    snapshot = stats.stats_snapshot(db)
    logger.bind(log_type="admin").info(
        f"Admin checked stats → halls={snapshot.total_halls} bookings={snapshot.total_bookings}"
    )
    return snapshot


# =====================================================================
# 2. REVENUE PER HALL
# =====================================================================
@router.get("/revenue/halls", response_model=list[HallRevenue])
def revenue_per_hall(db: Session = Depends(get_db)):
    logger.bind(log_type="admin").info("Admin checked revenue per hall")
    return stats.revenue_per_hall(db)


# =====================================================================
# 3. MONTHLY REVENUE
# =====================================================================
@router.get("/revenue/monthly")
def monthly_revenue(year: int, db: Session = Depends(get_db)):
    months: list[MonthlyRevenue] = stats.revenue_by_month(db, year)
    logger.bind(log_type="admin").info(f"Admin checked monthly revenue for {year}")
    return {"year": year, "monthly_revenue": months}


# =====================================================================
# 4. PAYMENT STATUS STATISTICS
# =====================================================================
@router.get("/payments/stats", response_model=PaymentBreakdown)
def payment_stats(db: Session = Depends(get_db)):
    logger.bind(log_type="admin").info("Admin checked payment stats")
    return stats.payment_stats(db)
