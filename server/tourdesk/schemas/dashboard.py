"""Dashboard statistics schemas."""

from datetime import date
from uuid import UUID

from pydantic import BaseModel, Field


class StatusCount(BaseModel):
    status: str
    count: int = Field(..., ge=0)


class UpcomingTour(BaseModel):
    """Soon-departing active tour with its current occupancy."""

    id: UUID
    destination: str
    start_date: date
    capacity: int
    booking_count: int = Field(..., ge=0, description="Non-cancelled bookings")
    guests_booked: int = Field(..., ge=0)
    available_slots: int = Field(..., ge=0)


class DashboardStats(BaseModel):
    """Aggregates over the current booking set. Amounts are minor units."""

    total_bookings: int
    pending_bookings: int
    confirmed_bookings: int
    cancelled_bookings: int
    total_revenue: int = Field(..., description="Sum of totals over non-cancelled bookings")
    collected_revenue: int = Field(..., description="Sum of totals over paid bookings")
    active_tours: int
    total_customers: int
    recent_bookings: int = Field(..., description="Bookings created within the trailing window")
    status_breakdown: list[StatusCount]
    upcoming_tours: list[UpcomingTour]
