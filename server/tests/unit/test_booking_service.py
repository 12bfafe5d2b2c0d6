"""Unit tests for the booking lifecycle service."""

from uuid import uuid4

import pytest
from sqlalchemy import func, select

from tourdesk.core.auth import AuthContext
from tourdesk.core.database import utcnow
from tourdesk.core.exceptions import (
    AuthorizationError,
    CapacityExceededError,
    NotFoundError,
    ValidationError,
)
from tourdesk.models import Booking
from tourdesk.schemas.booking import BookingListQuery, CreateBookingRequest, UpdateBookingRequest
from tourdesk.services.booking_service import BookingService
from tourdesk.services.booking_validator import BookingValidator
from tourdesk.services.capacity_service import CapacityService


def booking_request(tour, customer, **overrides) -> CreateBookingRequest:
    values = {
        "tour_id": str(tour.id),
        "customer_id": str(customer.id),
        "booking_date": utcnow().date().isoformat(),
    }
    values.update(overrides)
    return CreateBookingRequest(**values)


async def count_bookings(session) -> int:
    result = await session.execute(select(func.count(Booking.id)))
    return result.scalar_one()


@pytest.mark.asyncio
async def test_create_booking_returns_joined_view(test_session, make_tour, make_customer, staff):
    tour = await make_tour(destination="Kyoto Temples", price_amount=12000)
    customer = await make_customer(first_name="Grace", last_name="Hopper", email="grace@example.com")
    service = BookingService(test_session)

    view = await service.create_booking(booking_request(tour, customer, num_guests=3), staff)

    assert view.tour_id == tour.id
    assert view.customer_id == customer.id
    assert view.num_guests == 3
    assert view.status == "pending"
    assert view.payment_status == "unpaid"
    assert view.total_amount == 36000
    assert view.currency == "USD"
    assert view.destination == "Kyoto Temples"
    assert view.customer_name == "Grace Hopper"
    assert view.customer_email == "grace@example.com"
    assert view.tour_start_date == tour.start_date


@pytest.mark.asyncio
async def test_create_booking_keeps_explicit_total(test_session, make_tour, make_customer, staff):
    tour = await make_tour(price_amount=12000)
    customer = await make_customer()
    service = BookingService(test_session)

    view = await service.create_booking(booking_request(tour, customer, num_guests=2, total_amount=0), staff)

    assert view.total_amount == 0


@pytest.mark.asyncio
async def test_scenario_a_capacity_filled_then_rejected(test_session, make_tour, make_customer, staff):
    """Filling a tour exactly succeeds; one more guest is rejected and nothing is stored."""
    tour = await make_tour(capacity=5)
    customer = await make_customer()
    service = BookingService(test_session)

    await service.create_booking(booking_request(tour, customer, num_guests=5), staff)

    with pytest.raises(CapacityExceededError) as exc_info:
        await service.create_booking(booking_request(tour, customer, num_guests=1), staff)

    assert exc_info.value.available_slots == 0
    assert exc_info.value.reason == "Not enough capacity. Only 0 slot(s) available."
    assert await count_bookings(test_session) == 1

    # Scenario D: availability reflects only the persisted booking
    assert await CapacityService(test_session).available_slots(tour.id) == 0


@pytest.mark.asyncio
async def test_scenario_b_update_excludes_own_guests(test_session, make_tour, make_customer, make_booking, staff):
    tour = await make_tour(capacity=10)
    customer = await make_customer()
    booking = await make_booking(tour, customer, num_guests=8, status="confirmed")
    service = BookingService(test_session)

    merged = {
        "tour_id": booking.tour_id,
        "customer_id": booking.customer_id,
        "booking_date": booking.booking_date,
        "num_guests": 10,
        "status": booking.status,
        "payment_status": booking.payment_status,
    }
    # Counted as a new booking, the 8 guests already held leave only 2 slots
    with pytest.raises(CapacityExceededError) as exc_info:
        await BookingValidator(test_session).validate(merged, exclude_booking_id=None)
    assert exc_info.value.available_slots == 2

    draft = await BookingValidator(test_session).validate(merged, exclude_booking_id=booking.id)
    assert draft.num_guests == 10

    view = await service.update_booking(booking.id, UpdateBookingRequest(num_guests=10), staff)
    assert view.num_guests == 10

    with pytest.raises(CapacityExceededError) as exc_info:
        await service.update_booking(booking.id, UpdateBookingRequest(num_guests=11), staff)
    assert exc_info.value.available_slots == 10


@pytest.mark.asyncio
async def test_scenario_c_cancel_on_full_tour(test_session, make_tour, make_customer, make_booking, staff):
    tour = await make_tour(capacity=4)
    customer = await make_customer()
    booking = await make_booking(tour, customer, num_guests=2, status="pending")
    await make_booking(tour, customer, num_guests=2, status="confirmed")
    service = BookingService(test_session)

    view = await service.update_booking(booking.id, UpdateBookingRequest(status="cancelled"), staff)

    assert view.status == "cancelled"
    assert view.payment_status == "refunded"
    assert await CapacityService(test_session).available_slots(tour.id) == 2


@pytest.mark.asyncio
async def test_cancel_with_explicit_payment_status_keeps_it(test_session, make_tour, make_customer, make_booking, staff):
    tour = await make_tour()
    customer = await make_customer()
    booking = await make_booking(tour, customer, payment_status="paid")
    service = BookingService(test_session)

    view = await service.update_booking(
        booking.id, UpdateBookingRequest(status="cancelled", payment_status="paid"), staff
    )

    assert view.status == "cancelled"
    assert view.payment_status == "paid"


@pytest.mark.asyncio
async def test_update_notes_on_full_tour_allowed(test_session, make_tour, make_customer, make_booking, staff):
    """A booking that alone fills the tour can still be edited."""
    tour = await make_tour(capacity=3)
    customer = await make_customer()
    booking = await make_booking(tour, customer, num_guests=3)
    service = BookingService(test_session)

    view = await service.update_booking(booking.id, UpdateBookingRequest(notes="Vegetarian meals"), staff)

    assert view.notes == "Vegetarian meals"
    assert view.num_guests == 3


@pytest.mark.asyncio
async def test_update_recomputes_total_when_guests_change(test_session, make_tour, make_customer, make_booking, staff):
    tour = await make_tour(price_amount=10000)
    customer = await make_customer()
    booking = await make_booking(tour, customer, num_guests=2, total_amount=15000)
    service = BookingService(test_session)

    # Unrelated change keeps the negotiated total
    view = await service.update_booking(booking.id, UpdateBookingRequest(notes="VIP"), staff)
    assert view.total_amount == 15000

    # Guest count change without a total re-derives it from the tour price
    view = await service.update_booking(booking.id, UpdateBookingRequest(num_guests=3), staff)
    assert view.total_amount == 30000

    # Supplied total always wins
    view = await service.update_booking(booking.id, UpdateBookingRequest(num_guests=4, total_amount=35000), staff)
    assert view.total_amount == 35000


@pytest.mark.asyncio
async def test_update_moves_booking_to_other_tour(test_session, make_tour, make_customer, make_booking, staff):
    source = await make_tour(capacity=5, price_amount=10000)
    target = await make_tour(capacity=2, destination="Patagonia Trek", price_amount=40000)
    customer = await make_customer()
    booking = await make_booking(source, customer, num_guests=2)
    service = BookingService(test_session)

    view = await service.update_booking(booking.id, UpdateBookingRequest(tour_id=str(target.id)), staff)

    assert view.tour_id == target.id
    assert view.destination == "Patagonia Trek"
    assert view.total_amount == 80000
    assert await CapacityService(test_session).available_slots(source.id) == 5
    assert await CapacityService(test_session).available_slots(target.id) == 0


@pytest.mark.asyncio
async def test_update_missing_booking_raises_not_found(test_session, staff):
    service = BookingService(test_session)

    with pytest.raises(NotFoundError) as exc_info:
        await service.update_booking(uuid4(), UpdateBookingRequest(notes="x"), staff)

    assert exc_info.value.reason == "Booking not found."


@pytest.mark.asyncio
async def test_update_validation_failure_leaves_row_unchanged(test_session, make_tour, make_customer, make_booking, staff):
    tour = await make_tour()
    customer = await make_customer()
    booking = await make_booking(tour, customer, num_guests=2)
    service = BookingService(test_session)

    with pytest.raises(ValidationError):
        await service.update_booking(booking.id, UpdateBookingRequest(num_guests=0), staff)

    view = await service.get_booking(booking.id, staff)
    assert view.num_guests == 2


@pytest.mark.asyncio
async def test_soft_delete_is_idempotent(test_session, make_tour, make_customer, make_booking, staff):
    tour = await make_tour(capacity=3)
    customer = await make_customer()
    booking = await make_booking(tour, customer, num_guests=3, payment_status="paid")
    service = BookingService(test_session)

    first = await service.delete_booking(booking.id, staff)
    second = await service.delete_booking(booking.id, staff)

    assert first.hard is False
    assert second.message == first.message
    view = await service.get_booking(booking.id, staff)
    assert view.status == "cancelled"
    assert view.payment_status == "refunded"
    assert await CapacityService(test_session).available_slots(tour.id) == 3


@pytest.mark.asyncio
async def test_soft_delete_skips_validation(test_session, make_tour, make_customer, make_booking, staff):
    """Cancelling works even when the stored row would no longer validate."""
    tour = await make_tour(status="inactive")
    customer = await make_customer()
    booking = await make_booking(tour, customer)
    service = BookingService(test_session)

    await service.delete_booking(booking.id, staff)

    view = await service.get_booking(booking.id, staff)
    assert view.status == "cancelled"


@pytest.mark.asyncio
async def test_hard_delete_removes_row(test_session, make_tour, make_customer, make_booking, staff):
    tour = await make_tour()
    customer = await make_customer()
    booking = await make_booking(tour, customer)
    service = BookingService(test_session)

    outcome = await service.delete_booking(booking.id, staff, hard=True)

    assert outcome.hard is True
    assert await count_bookings(test_session) == 0
    with pytest.raises(NotFoundError):
        await service.delete_booking(booking.id, staff)


@pytest.mark.asyncio
async def test_list_bookings_filters_sorts_and_counts(test_session, make_tour, make_customer, make_booking, staff):
    lisbon = await make_tour(destination="Lisbon Food Walk")
    oslo = await make_tour(destination="Oslo Fjords")
    ada = await make_customer(first_name="Ada", last_name="Byron", email="ada@example.com")
    alan = await make_customer(first_name="Alan", last_name="Turing", email="alan@example.com")
    await make_booking(lisbon, ada, total_amount=100)
    await make_booking(oslo, ada, total_amount=300, status="confirmed")
    await make_booking(oslo, alan, total_amount=200, status="cancelled", payment_status="refunded")
    service = BookingService(test_session)

    everything = await service.list_bookings(BookingListQuery(sort="total_amount", order="asc"), staff)
    assert everything.total == 3
    assert [b.total_amount for b in everything.items] == [100, 200, 300]

    by_destination = await service.list_bookings(BookingListQuery(search="oslo"), staff)
    assert by_destination.total == 2

    by_name = await service.list_bookings(BookingListQuery(search="Turing"), staff)
    assert [b.customer_email for b in by_name.items] == ["alan@example.com"]

    confirmed = await service.list_bookings(BookingListQuery(status="confirmed"), staff)
    assert confirmed.total == 1

    paged = await service.list_bookings(
        BookingListQuery(sort="total_amount", order="desc", limit=1, offset=1), staff
    )
    assert paged.total == 3
    assert [b.total_amount for b in paged.items] == [200]


@pytest.mark.asyncio
async def test_customer_create_is_pinned_to_own_profile(test_session, make_tour, make_customer):
    tour = await make_tour()
    me = await make_customer()
    other = await make_customer()
    auth = AuthContext.customer(me.id)
    service = BookingService(test_session)

    view = await service.create_booking(
        CreateBookingRequest(tour_id=str(tour.id), booking_date=utcnow().date().isoformat()), auth
    )
    assert view.customer_id == me.id

    with pytest.raises(AuthorizationError):
        await service.create_booking(booking_request(tour, other), auth)

    with pytest.raises(AuthorizationError):
        await service.create_booking(booking_request(tour, me, status="confirmed"), auth)

    with pytest.raises(AuthorizationError):
        await service.create_booking(booking_request(tour, me, payment_status="paid"), auth)

    # A customer-supplied total is ignored; the tour price applies
    priced = await service.create_booking(booking_request(tour, me, num_guests=4, total_amount=0), auth)
    assert priced.total_amount == tour.price_amount * 4


@pytest.mark.asyncio
async def test_customer_update_restrictions(test_session, make_tour, make_customer, make_booking):
    tour = await make_tour()
    me = await make_customer()
    other = await make_customer()
    mine = await make_booking(tour, me, num_guests=1)
    theirs = await make_booking(tour, other)
    auth = AuthContext.customer(me.id)
    service = BookingService(test_session)

    with pytest.raises(AuthorizationError):
        await service.update_booking(theirs.id, UpdateBookingRequest(notes="hi"), auth)

    with pytest.raises(AuthorizationError):
        await service.update_booking(mine.id, UpdateBookingRequest(status="confirmed"), auth)

    with pytest.raises(AuthorizationError):
        await service.update_booking(mine.id, UpdateBookingRequest(payment_status="paid"), auth)

    with pytest.raises(AuthorizationError):
        await service.update_booking(mine.id, UpdateBookingRequest(total_amount=1), auth)

    # Reassigning the customer is silently ignored
    view = await service.update_booking(
        mine.id, UpdateBookingRequest(num_guests=2, customer_id=str(other.id)), auth
    )
    assert view.customer_id == me.id
    assert view.num_guests == 2
    assert view.total_amount == tour.price_amount * 2

    # Echoing the stored total back is not a change
    view = await service.update_booking(
        mine.id, UpdateBookingRequest(notes="Window seat", total_amount=view.total_amount), auth
    )
    assert view.notes == "Window seat"

    await service.delete_booking(mine.id, auth)
    with pytest.raises(AuthorizationError):
        await service.update_booking(mine.id, UpdateBookingRequest(status="pending"), auth)

    reopened = await service.get_booking(mine.id, auth)
    assert reopened.status == "cancelled"
    assert reopened.payment_status == "refunded"


@pytest.mark.asyncio
async def test_customer_cancellation_forces_refund(test_session, make_tour, make_customer, make_booking):
    tour = await make_tour()
    me = await make_customer()
    booking = await make_booking(tour, me, payment_status="unpaid")
    auth = AuthContext.customer(me.id)
    service = BookingService(test_session)

    view = await service.update_booking(
        booking.id, UpdateBookingRequest(status="cancelled", payment_status="unpaid"), auth
    )

    assert view.status == "cancelled"
    assert view.payment_status == "refunded"


@pytest.mark.asyncio
async def test_customer_delete_is_always_soft(test_session, make_tour, make_customer, make_booking):
    tour = await make_tour()
    me = await make_customer()
    booking = await make_booking(tour, me)
    auth = AuthContext.customer(me.id)
    service = BookingService(test_session)

    outcome = await service.delete_booking(booking.id, auth, hard=True)

    assert outcome.hard is False
    assert await count_bookings(test_session) == 1


@pytest.mark.asyncio
async def test_customer_reads_only_own_bookings(test_session, make_tour, make_customer, make_booking):
    tour = await make_tour()
    me = await make_customer()
    other = await make_customer()
    mine = await make_booking(tour, me)
    theirs = await make_booking(tour, other)
    auth = AuthContext.customer(me.id)
    service = BookingService(test_session)

    listing = await service.list_bookings(BookingListQuery(customer_id=other.id), auth)
    assert [b.id for b in listing.items] == [mine.id]

    assert (await service.get_booking(mine.id, auth)).id == mine.id
    with pytest.raises(AuthorizationError):
        await service.get_booking(theirs.id, auth)
