"""Capacity calculation for tours, derived from live booking rows."""

import logging
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.booking import Booking, BookingStatus
from ..models.tour import Tour

logger = logging.getLogger(__name__)


def remaining_slots(capacity: int, booked: int) -> int:
    """Slots left on a tour; never negative even if capacity was cut below bookings."""
    return max(0, capacity - booked)


class CapacityService:
    """
    Computes tour availability by summing guests over non-cancelled bookings.

    There is no stored counter: every call aggregates the current rows, so the
    answer cannot drift from the booking set.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def booked_guests(self, tour_id: UUID, exclude_booking_id: UUID | None = None) -> int:
        """
        Sum num_guests over bookings on the tour that still hold slots.

        Args:
            tour_id: Tour to aggregate
            exclude_booking_id: Booking left out of the sum (the one being edited)

        Returns:
            Number of guests currently booked
        """
        stmt = select(func.coalesce(func.sum(Booking.num_guests), 0)).where(
            Booking.tour_id == tour_id,
            Booking.status != BookingStatus.CANCELLED.value
        )
        if exclude_booking_id is not None:
            stmt = stmt.where(Booking.id != exclude_booking_id)

        result = await self.db.execute(stmt)
        return int(result.scalar() or 0)

    async def available_slots(self, tour_id: UUID, exclude_booking_id: UUID | None = None) -> int:
        """
        Remaining slots on a tour.

        Returns 0 for an unknown tour; callers that need to tell "full" from
        "missing" must look the tour up themselves.
        """
        capacity = await self._get_capacity(tour_id)
        if capacity is None:
            return 0

        booked = await self.booked_guests(tour_id, exclude_booking_id)
        return remaining_slots(capacity, booked)

    async def has_capacity(
        self,
        tour_id: UUID,
        num_guests: int,
        exclude_booking_id: UUID | None = None
    ) -> bool:
        """Return True when ``num_guests`` fit on the tour."""
        available = await self.available_slots(tour_id, exclude_booking_id)
        return num_guests <= available

    async def lock_tour(self, tour_id: UUID) -> Tour | None:
        """
        Load the tour row with a write lock held until the transaction ends.

        Serializes check-and-write sequences on the same tour. SQLite has no
        row locks; FOR UPDATE is dropped there and the post-write check in
        the booking service is what catches a lost race.
        """
        stmt = select(Tour).where(Tour.id == tour_id).with_for_update()
        result = await self.db.execute(stmt)
        tour = result.scalar_one_or_none()

        logger.debug(
            "Acquired tour row lock",
            extra={"tour_id": str(tour_id), "found": tour is not None}
        )

        return tour

    async def _get_capacity(self, tour_id: UUID) -> int | None:
        stmt = select(Tour.capacity).where(Tour.id == tour_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()
