"""Dashboard aggregation over the current booking set."""

import logging
from datetime import date, timedelta
from typing import Callable

from sqlalchemy import and_, case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..core.database import utcnow
from ..core.observability import metrics_collector
from ..models.booking import Booking, BookingStatus, PaymentStatus
from ..models.customer import Customer
from ..models.tour import Tour, TourStatus
from ..schemas.dashboard import DashboardStats, StatusCount, UpcomingTour
from .booking_validator import utc_today
from .capacity_service import remaining_slots

logger = logging.getLogger(__name__)


def _count_where(condition):
    return func.coalesce(func.sum(case((condition, 1), else_=0)), 0)


def _sum_where(condition, column):
    return func.coalesce(func.sum(case((condition, column), else_=0)), 0)


class DashboardService:
    """Read-only statistics for the staff dashboard."""

    def __init__(self, db: AsyncSession, today: Callable[[], date] = utc_today):
        self.db = db
        self.today = today

    async def get_dashboard_stats(self) -> DashboardStats:
        """
        Compute booking counts, revenue and upcoming tour occupancy.

        Revenue excludes cancelled bookings; collected revenue counts only
        paid ones. Amounts are summed as stored, in minor units.
        """
        holding = Booking.status != BookingStatus.CANCELLED.value
        recent_since = utcnow() - timedelta(days=settings.recent_activity_days)

        totals_stmt = select(
            func.count(Booking.id).label("total_bookings"),
            _count_where(Booking.status == BookingStatus.PENDING.value).label("pending_bookings"),
            _count_where(Booking.status == BookingStatus.CONFIRMED.value).label("confirmed_bookings"),
            _count_where(Booking.status == BookingStatus.CANCELLED.value).label("cancelled_bookings"),
            _sum_where(holding, Booking.total_amount).label("total_revenue"),
            _sum_where(
                Booking.payment_status == PaymentStatus.PAID.value, Booking.total_amount
            ).label("collected_revenue"),
            _count_where(Booking.created_at >= recent_since).label("recent_bookings"),
        )
        totals = (await self.db.execute(totals_stmt)).one()

        active_tours = (await self.db.execute(
            select(func.count(Tour.id)).where(Tour.status == TourStatus.ACTIVE.value)
        )).scalar_one()
        total_customers = (await self.db.execute(select(func.count(Customer.id)))).scalar_one()

        breakdown_result = await self.db.execute(
            select(Booking.status, func.count(Booking.id))
            .group_by(Booking.status)
            .order_by(Booking.status)
        )
        status_breakdown = [
            StatusCount(status=status, count=count) for status, count in breakdown_result
        ]

        upcoming_tours = await self._upcoming_tours()

        return DashboardStats(
            total_bookings=totals.total_bookings,
            pending_bookings=int(totals.pending_bookings),
            confirmed_bookings=int(totals.confirmed_bookings),
            cancelled_bookings=int(totals.cancelled_bookings),
            total_revenue=int(totals.total_revenue),
            collected_revenue=int(totals.collected_revenue),
            active_tours=active_tours,
            total_customers=total_customers,
            recent_bookings=int(totals.recent_bookings),
            status_breakdown=status_breakdown,
            upcoming_tours=upcoming_tours,
        )

    async def _upcoming_tours(self) -> list[UpcomingTour]:
        """Soonest active tours starting after today, with non-cancelled occupancy."""
        stmt = (
            select(
                Tour.id,
                Tour.destination,
                Tour.start_date,
                Tour.capacity,
                func.count(Booking.id).label("booking_count"),
                func.coalesce(func.sum(Booking.num_guests), 0).label("guests_booked"),
            )
            .outerjoin(
                Booking,
                and_(
                    Booking.tour_id == Tour.id,
                    Booking.status != BookingStatus.CANCELLED.value,
                ),
            )
            .where(
                Tour.status == TourStatus.ACTIVE.value,
                Tour.start_date > self.today(),
            )
            .group_by(Tour.id, Tour.destination, Tour.start_date, Tour.capacity)
            .order_by(Tour.start_date.asc(), Tour.id)
            .limit(settings.upcoming_tours_limit)
        )
        result = await self.db.execute(stmt)

        upcoming = []
        for row in result:
            guests_booked = int(row.guests_booked)
            upcoming.append(UpcomingTour(
                id=row.id,
                destination=row.destination,
                start_date=row.start_date,
                capacity=row.capacity,
                booking_count=row.booking_count,
                guests_booked=guests_booked,
                available_slots=remaining_slots(row.capacity, guests_booked),
            ))
            metrics_collector.set_capacity_utilization(
                str(row.id), round(100.0 * guests_booked / row.capacity, 2)
            )

        logger.debug("Computed upcoming tours", extra={"count": len(upcoming)})
        return upcoming
