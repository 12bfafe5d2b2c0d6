"""Tour-related Pydantic schemas."""

from datetime import date
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from ..models.tour import TourStatus
from .common import Money


class CreateTourRequest(BaseModel):
    """Request schema for creating a tour."""

    destination: str = Field(..., min_length=1, max_length=255, description="Destination name")
    description: Optional[str] = Field(None, max_length=5000, description="Tour description")
    start_date: date = Field(..., description="First day of the tour")
    end_date: date = Field(..., description="Last day of the tour")
    capacity: int = Field(..., ge=1, le=10000, description="Maximum number of booked guests")
    price: Money = Field(..., description="Price per guest")
    status: TourStatus = Field(TourStatus.ACTIVE, description="active or inactive")
    image_url: Optional[str] = Field(None, max_length=512, description="Image reference")

    @model_validator(mode="after")
    def check_dates(self) -> "CreateTourRequest":
        if self.end_date < self.start_date:
            raise ValueError("End date must be after start date.")
        return self


class UpdateTourRequest(BaseModel):
    """Partial tour update; date order is checked against the merged row."""

    destination: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=5000)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    capacity: Optional[int] = Field(None, ge=1, le=10000)
    price: Optional[Money] = None
    status: Optional[TourStatus] = None
    image_url: Optional[str] = Field(None, max_length=512)


class Tour(BaseModel):
    """Tour response schema."""

    id: UUID = Field(..., description="Unique tour ID")
    destination: str = Field(..., description="Destination name")
    description: Optional[str] = Field(None, description="Tour description")
    start_date: date = Field(..., description="First day of the tour")
    end_date: date = Field(..., description="Last day of the tour")
    capacity: int = Field(..., ge=1, description="Maximum number of booked guests")
    price: Money = Field(..., description="Price per guest")
    status: TourStatus = Field(..., description="active or inactive")
    image_url: Optional[str] = Field(None, description="Image reference")
    available_slots: Optional[int] = Field(None, ge=0, description="Slots left on the tour")

    @classmethod
    def from_model(cls, tour, available_slots: Optional[int] = None) -> "Tour":
        """Build the response from an ORM tour, folding price columns into Money."""
        return cls(
            id=tour.id,
            destination=tour.destination,
            description=tour.description,
            start_date=tour.start_date,
            end_date=tour.end_date,
            capacity=tour.capacity,
            price=Money(amount=tour.price_amount, currency=tour.price_currency),
            status=tour.status,
            image_url=tour.image_url,
            available_slots=available_slots,
        )


class TourListResponse(BaseModel):
    """Tour listing."""

    items: list[Tour] = Field(..., description="Tours ordered by start date")


class AvailabilityRequest(BaseModel):
    """Pre-booking availability check."""

    tour_id: UUID = Field(..., description="Tour to check")
    num_guests: int = Field(..., ge=1, description="Guests the customer wants to bring")


class AvailabilityResponse(BaseModel):
    """Availability answer with a price quote."""

    available: bool
    available_slots: int = Field(..., ge=0)
    requested_slots: int = Field(..., ge=1)
    total_price: Money
    message: str
    tour: Tour
