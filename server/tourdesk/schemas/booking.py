"""Booking-related Pydantic schemas."""

from datetime import date, datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class CreateBookingRequest(BaseModel):
    """
    Request schema for creating a booking.

    Field rules (ranges, enumerations, date window, capacity) are enforced by
    the booking validator so the caller receives one ordered, readable reason
    instead of a schema error list.
    """

    tour_id: Optional[str] = Field(None, description="Tour to book")
    customer_id: Optional[str] = Field(None, description="Customer the booking belongs to")
    booking_date: Optional[str] = Field(None, description="Booking date (YYYY-MM-DD)")
    num_guests: Optional[int] = Field(None, description="Number of guests, defaults to 1")
    status: Optional[str] = Field(None, description="pending, confirmed or cancelled")
    payment_status: Optional[str] = Field(None, description="unpaid, partial, paid or refunded")
    total_amount: Optional[int] = Field(None, description="Total in minor units; derived from the tour price when omitted")
    notes: Optional[str] = Field(None, max_length=5000, description="Free-text notes")


class UpdateBookingRequest(CreateBookingRequest):
    """Partial update; omitted or null fields keep their stored value (null notes clears them)."""


class BookingDetails(BaseModel):
    """Booking joined with tour and customer display fields."""

    id: UUID = Field(..., description="Unique booking ID")
    tour_id: UUID = Field(..., description="Booked tour")
    customer_id: UUID = Field(..., description="Booking customer")
    booking_date: date = Field(..., description="Administrative booking date")
    num_guests: int = Field(..., ge=1, description="Guests on this booking")
    status: str = Field(..., description="Booking status")
    payment_status: str = Field(..., description="Payment status")
    total_amount: int = Field(..., ge=0, description="Total in minor units")
    currency: str = Field(..., description="ISO 4217 currency of the total")
    notes: Optional[str] = Field(None, description="Free-text notes")
    created_at: datetime = Field(..., description="Creation time")
    updated_at: datetime = Field(..., description="Last modification time")

    destination: str = Field(..., description="Tour destination")
    tour_start_date: date = Field(..., description="Tour start date")
    tour_end_date: date = Field(..., description="Tour end date")
    customer_name: str = Field(..., description="Customer full name")
    customer_email: str = Field(..., description="Customer email")

    model_config = {"from_attributes": True}


SortField = Literal["booking_id", "booking_date", "created_at", "total_amount", "customer_name", "destination"]


class BookingListQuery(BaseModel):
    """Filters, sorting and paging for booking listings."""

    status: Optional[str] = None
    payment_status: Optional[str] = None
    tour_id: Optional[UUID] = None
    customer_id: Optional[UUID] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    search: Optional[str] = Field(None, description="Matches customer name, email or destination")
    sort: SortField = "created_at"
    order: Literal["asc", "desc"] = "desc"
    limit: Optional[int] = Field(None, ge=1, le=500)
    offset: int = Field(0, ge=0)


class BookingListResponse(BaseModel):
    """Page of bookings plus the total matching the filters."""

    items: list[BookingDetails] = Field(..., description="Bookings on this page")
    total: int = Field(..., ge=0, description="Bookings matching the filters")


class DeleteBookingResponse(BaseModel):
    """Outcome of a soft or hard booking delete."""

    message: str
    booking_id: UUID
    hard: bool
