"""Unit tests for dashboard statistics."""

from datetime import timedelta

import pytest

from tourdesk.core.database import utcnow
from tourdesk.services.dashboard_service import DashboardService


@pytest.mark.asyncio
async def test_empty_dashboard(test_session):
    stats = await DashboardService(test_session).get_dashboard_stats()

    assert stats.total_bookings == 0
    assert stats.total_revenue == 0
    assert stats.collected_revenue == 0
    assert stats.status_breakdown == []
    assert stats.upcoming_tours == []


@pytest.mark.asyncio
async def test_dashboard_counts_and_revenue(test_session, make_tour, make_customer, make_booking):
    tour = await make_tour(capacity=20)
    await make_tour(status="inactive")
    ada = await make_customer()
    await make_customer()
    await make_booking(tour, ada, num_guests=2, total_amount=1000, status="pending")
    await make_booking(tour, ada, num_guests=3, total_amount=2500, status="confirmed", payment_status="paid")
    await make_booking(tour, ada, num_guests=4, total_amount=4000, status="cancelled", payment_status="refunded")

    stats = await DashboardService(test_session).get_dashboard_stats()

    assert stats.total_bookings == 3
    assert stats.pending_bookings == 1
    assert stats.confirmed_bookings == 1
    assert stats.cancelled_bookings == 1
    assert stats.total_revenue == 3500
    assert stats.collected_revenue == 2500
    assert stats.active_tours == 1
    assert stats.total_customers == 2
    assert stats.recent_bookings == 3
    assert {s.status: s.count for s in stats.status_breakdown} == {
        "cancelled": 1,
        "confirmed": 1,
        "pending": 1,
    }


@pytest.mark.asyncio
async def test_upcoming_tours_ordering_and_occupancy(test_session, make_tour, make_customer, make_booking):
    today = utcnow().date()
    later = await make_tour(destination="Later", start_date=today + timedelta(days=60),
                            end_date=today + timedelta(days=65), capacity=8)
    sooner = await make_tour(destination="Sooner", start_date=today + timedelta(days=5),
                             end_date=today + timedelta(days=9), capacity=4)
    await make_tour(destination="Started", start_date=today, end_date=today + timedelta(days=3))
    await make_tour(destination="Inactive", start_date=today + timedelta(days=2),
                    end_date=today + timedelta(days=3), status="inactive")
    customer = await make_customer()
    await make_booking(sooner, customer, num_guests=3)
    await make_booking(sooner, customer, num_guests=1, status="cancelled", payment_status="refunded")
    await make_booking(later, customer, num_guests=2, status="confirmed")

    stats = await DashboardService(test_session).get_dashboard_stats()

    assert [t.destination for t in stats.upcoming_tours] == ["Sooner", "Later"]
    first, second = stats.upcoming_tours
    assert (first.booking_count, first.guests_booked, first.available_slots) == (1, 3, 1)
    assert (second.booking_count, second.guests_booked, second.available_slots) == (1, 2, 6)


@pytest.mark.asyncio
async def test_upcoming_tours_limited_to_five(test_session, make_tour):
    today = utcnow().date()
    for offset in range(1, 8):
        await make_tour(destination=f"Tour {offset}", start_date=today + timedelta(days=offset),
                        end_date=today + timedelta(days=offset + 1))

    stats = await DashboardService(test_session).get_dashboard_stats()

    assert [t.destination for t in stats.upcoming_tours] == [f"Tour {n}" for n in range(1, 6)]


@pytest.mark.asyncio
async def test_recent_bookings_window_uses_utc(test_session, make_tour, make_customer, make_booking):
    """Bookings are stamped in UTC by the app, so the 7-day window lines up with utcnow()."""
    tour = await make_tour(capacity=20)
    ada = await make_customer()
    fresh = await make_booking(tour, ada)
    await make_booking(tour, ada, created_at=utcnow() - timedelta(days=6, hours=23))
    await make_booking(tour, ada, created_at=utcnow() - timedelta(days=7, hours=1))

    assert abs(fresh.created_at - utcnow()) < timedelta(minutes=1)

    stats = await DashboardService(test_session).get_dashboard_stats()

    assert stats.total_bookings == 3
    assert stats.recent_bookings == 2
