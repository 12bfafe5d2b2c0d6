"""Unit tests for derived tour capacity."""

from uuid import uuid4

import pytest

from tourdesk.services.capacity_service import CapacityService, remaining_slots


def test_remaining_slots_never_negative():
    assert remaining_slots(10, 4) == 6
    assert remaining_slots(10, 10) == 0
    # Capacity lowered below what is already booked
    assert remaining_slots(5, 8) == 0


@pytest.mark.asyncio
async def test_available_slots_counts_only_holding_bookings(test_session, make_tour, make_customer, make_booking):
    """Pending and confirmed bookings hold slots; cancelled ones do not."""
    tour = await make_tour(capacity=10)
    customer = await make_customer()
    await make_booking(tour, customer, num_guests=3, status="pending")
    await make_booking(tour, customer, num_guests=2, status="confirmed")
    await make_booking(tour, customer, num_guests=4, status="cancelled", payment_status="refunded")

    service = CapacityService(test_session)

    assert await service.booked_guests(tour.id) == 5
    assert await service.available_slots(tour.id) == 5
    assert await service.has_capacity(tour.id, 5)
    assert not await service.has_capacity(tour.id, 6)


@pytest.mark.asyncio
async def test_available_slots_excludes_booking_under_edit(test_session, make_tour, make_customer, make_booking):
    tour = await make_tour(capacity=10)
    customer = await make_customer()
    own = await make_booking(tour, customer, num_guests=6)
    await make_booking(tour, customer, num_guests=2)

    service = CapacityService(test_session)

    assert await service.available_slots(tour.id) == 2
    assert await service.available_slots(tour.id, exclude_booking_id=own.id) == 8


@pytest.mark.asyncio
async def test_available_slots_for_unknown_tour_is_zero(test_session):
    service = CapacityService(test_session)

    assert await service.available_slots(uuid4()) == 0
    assert not await service.has_capacity(uuid4(), 1)


@pytest.mark.asyncio
async def test_available_slots_for_empty_tour_is_capacity(test_session, make_tour):
    tour = await make_tour(capacity=7)
    service = CapacityService(test_session)

    assert await service.booked_guests(tour.id) == 0
    assert await service.available_slots(tour.id) == 7


@pytest.mark.asyncio
async def test_lock_tour_returns_row(test_session, make_tour):
    tour = await make_tour()
    service = CapacityService(test_session)

    locked = await service.lock_tour(tour.id)

    assert locked is not None
    assert locked.id == tour.id
    assert await service.lock_tour(uuid4()) is None
