"""Tour service for business logic operations."""

import logging
from typing import Optional
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from ..models.booking import Booking, BookingStatus
from ..models.tour import Tour, TourStatus
from ..schemas.common import Money
from ..schemas.tour import AvailabilityResponse, CreateTourRequest, Tour as TourSchema, UpdateTourRequest
from .capacity_service import CapacityService, remaining_slots

logger = logging.getLogger(__name__)

# At or below this many free slots the availability message warns the customer
LIMITED_AVAILABILITY_THRESHOLD = 3


class TourService:
    """Service for tour-related operations."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.capacity_service = CapacityService(db)

    async def create_tour(self, request: CreateTourRequest) -> TourSchema:
        """
        Create a new tour.

        Args:
            request: Tour creation request

        Returns:
            Created tour with all slots available
        """
        tour = Tour(
            destination=request.destination,
            description=request.description,
            start_date=request.start_date,
            end_date=request.end_date,
            capacity=request.capacity,
            price_amount=request.price.amount,
            price_currency=request.price.currency,
            status=request.status.value,
            image_url=request.image_url,
        )

        self.db.add(tour)
        await self.db.commit()

        logger.info(
            "Tour created successfully",
            extra={
                "tour_id": str(tour.id),
                "destination": tour.destination,
                "start_date": tour.start_date.isoformat(),
                "capacity": tour.capacity
            }
        )

        return TourSchema.from_model(tour, available_slots=tour.capacity)

    async def update_tour(self, tour_id: UUID, request: UpdateTourRequest) -> TourSchema:
        """
        Apply a partial tour update.

        Lowering capacity below the guests already booked is allowed; the tour
        then reports zero available slots until bookings are cancelled.

        Raises:
            NotFoundError: If tour not found
            ValidationError: Nothing to update, or dates out of order
        """
        changes = {
            key: value for key, value in request.model_dump(exclude_unset=True).items()
            if value is not None
        }
        if not changes:
            raise ValidationError("No fields to update.")

        tour = await self.get_tour_by_id_or_raise(tour_id)

        start_date = changes.get("start_date", tour.start_date)
        end_date = changes.get("end_date", tour.end_date)
        if end_date < start_date:
            raise ValidationError("End date must be after start date.")

        price = changes.pop("price", None)
        if price is not None:
            tour.price_amount = price["amount"]
            tour.price_currency = price["currency"]
        if "status" in changes:
            changes["status"] = TourStatus(changes["status"]).value

        for key, value in changes.items():
            setattr(tour, key, value)

        await self.db.commit()

        logger.info(
            "Tour updated successfully",
            extra={"tour_id": str(tour_id), "fields": sorted(changes) + (["price"] if price else [])}
        )

        return await self.get_tour(tour_id)

    async def delete_tour(self, tour_id: UUID) -> None:
        """
        Delete a tour together with its cancelled bookings.

        Raises:
            NotFoundError: If tour not found
            ConflictError: While the tour still has non-cancelled bookings
        """
        await self.get_tour_by_id_or_raise(tour_id)

        active_count = (await self.db.execute(
            select(func.count(Booking.id)).where(
                Booking.tour_id == tour_id,
                Booking.status != BookingStatus.CANCELLED.value
            )
        )).scalar_one()

        if active_count > 0:
            logger.warning(
                "Tour deletion refused - active bookings",
                extra={"tour_id": str(tour_id), "active_bookings": active_count}
            )
            raise ConflictError(
                detail="Cannot delete tour with active bookings. Cancel bookings first or set tour to inactive.",
                conflicting_resource={"tour_id": str(tour_id), "active_bookings": active_count},
                code="TOUR_HAS_BOOKINGS",
            )

        await self.db.execute(delete(Booking).where(Booking.tour_id == tour_id))
        await self.db.execute(delete(Tour).where(Tour.id == tour_id))
        await self.db.commit()

        logger.info("Tour deleted successfully", extra={"tour_id": str(tour_id)})

    async def list_tours(self, include_inactive: bool = False) -> list[TourSchema]:
        """List tours by start date, each with its available slots."""
        booked = (
            select(
                Booking.tour_id,
                func.sum(Booking.num_guests).label("guests")
            )
            .where(Booking.status != BookingStatus.CANCELLED.value)
            .group_by(Booking.tour_id)
            .subquery()
        )

        stmt = (
            select(Tour, func.coalesce(booked.c.guests, 0))
            .outerjoin(booked, booked.c.tour_id == Tour.id)
            .order_by(Tour.start_date.asc(), Tour.destination)
        )
        if not include_inactive:
            stmt = stmt.where(Tour.status == TourStatus.ACTIVE.value)

        result = await self.db.execute(stmt)
        return [
            TourSchema.from_model(tour, available_slots=remaining_slots(tour.capacity, int(guests)))
            for tour, guests in result
        ]

    async def get_tour(self, tour_id: UUID) -> TourSchema:
        """Get one tour with its available slots."""
        tour = await self.get_tour_by_id_or_raise(tour_id)
        available = await self.capacity_service.available_slots(tour_id)
        return TourSchema.from_model(tour, available_slots=available)

    async def check_availability(self, tour_id: UUID, num_guests: int) -> AvailabilityResponse:
        """
        Answer whether ``num_guests`` fit on the tour and quote the price.

        Raises:
            NotFoundError: If tour not found
            ValidationError: If the tour is not active
        """
        tour = await self.get_tour_by_id_or_raise(tour_id)
        if not tour.is_active:
            raise ValidationError(
                "This tour is not currently available.",
                code="TOUR_INACTIVE",
                extensions={"tour_id": str(tour_id)},
            )

        available_slots = await self.capacity_service.available_slots(tour_id)
        available = num_guests <= available_slots

        if not available:
            message = (
                f"Not enough capacity. Only {available_slots} slot(s) available, "
                f"but you requested {num_guests}."
            )
        elif available_slots <= LIMITED_AVAILABILITY_THRESHOLD:
            message = f"Limited availability! Only {available_slots} slot(s) remaining for this tour."
        else:
            message = f"Available! {available_slots} slot(s) available for this tour."

        return AvailabilityResponse(
            available=available,
            available_slots=available_slots,
            requested_slots=num_guests,
            total_price=Money(amount=tour.price_amount * num_guests, currency=tour.price_currency),
            message=message,
            tour=TourSchema.from_model(tour, available_slots=available_slots),
        )

    async def get_tour_by_id(self, tour_id: UUID) -> Optional[Tour]:
        """
        Get tour by ID.

        Args:
            tour_id: Tour ID to search for

        Returns:
            Tour if found, None otherwise
        """
        stmt = select(Tour).where(Tour.id == tour_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_tour_by_id_or_raise(self, tour_id: UUID) -> Tour:
        """
        Get tour by ID or raise NotFoundError.

        Raises:
            NotFoundError: If tour not found
        """
        tour = await self.get_tour_by_id(tour_id)
        if not tour:
            logger.warning(
                "Tour not found",
                extra={"tour_id": str(tour_id)}
            )
            raise NotFoundError(
                resource_type="tour",
                resource_id=str(tour_id)
            )
        return tour
