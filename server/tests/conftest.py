"""Test configuration and fixtures."""

from datetime import date, timedelta

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from tourdesk.core.auth import AuthContext
from tourdesk.core.database import Base, get_db, utcnow
from tourdesk.core.dependencies import issue_token
from tourdesk.models import *  # noqa: F403 - Import all models
from tourdesk.models import Booking, Customer, Tour

# Test database URL (in-memory SQLite for speed)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


def today() -> date:
    return utcnow().date()


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create a test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # Create tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Drop tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def test_session(test_engine):
    """Create a test database session."""
    async_session = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with async_session() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def test_app(test_session):
    """Create a test FastAPI application."""
    from fastapi import FastAPI
    from fastapi.exceptions import RequestValidationError

    from tourdesk.core.exceptions import (
        ProblemDetailsException,
        generic_exception_handler,
        problem_details_handler,
        request_validation_handler,
    )
    from tourdesk.core.middleware import setup_middleware
    from tourdesk.routers import availability_router, booking_router, customer_router, system_router, tour_router

    # Create a simplified test app without lifespan
    app = FastAPI(
        title="Tour Desk API (Test)",
        description="Test version of the API",
        version="1.0.0-test",
    )

    setup_middleware(app, enable_logging=True)

    # Register exception handlers
    app.add_exception_handler(ProblemDetailsException, problem_details_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    # Register API routers
    app.include_router(system_router)
    app.include_router(tour_router)
    app.include_router(availability_router)
    app.include_router(customer_router)
    app.include_router(booking_router)

    # Override database dependency
    async def override_get_db():
        yield test_session

    app.dependency_overrides[get_db] = override_get_db

    yield app

    # Clean up
    app.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def test_client(test_app):
    """Create a test HTTP client."""
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def make_tour(test_session):
    """Factory persisting an active tour starting in 30 days."""

    async def _make_tour(**overrides) -> Tour:
        start_date = today() + timedelta(days=30)
        values = {
            "destination": "Reykjavik Northern Lights",
            "description": "Aurora hunting with expert guides",
            "start_date": start_date,
            "end_date": start_date + timedelta(days=7),
            "capacity": 10,
            "price_amount": 50000,
            "price_currency": "USD",
            "status": "active",
        }
        values.update(overrides)
        tour = Tour(**values)
        test_session.add(tour)
        await test_session.commit()
        return tour

    return _make_tour


@pytest.fixture
def make_customer(test_session):
    """Factory persisting a customer with a unique email."""
    counter = {"n": 0}

    async def _make_customer(**overrides) -> Customer:
        counter["n"] += 1
        values = {
            "first_name": "Ada",
            "last_name": f"Lovelace{counter['n']}",
            "email": f"ada{counter['n']}@example.com",
        }
        values.update(overrides)
        customer = Customer(**values)
        test_session.add(customer)
        await test_session.commit()
        return customer

    return _make_customer


@pytest.fixture
def make_booking(test_session):
    """Factory persisting a booking row directly, bypassing validation."""

    async def _make_booking(tour: Tour, customer: Customer, **overrides) -> Booking:
        values = {
            "tour_id": tour.id,
            "customer_id": customer.id,
            "booking_date": today(),
            "num_guests": 1,
            "status": "pending",
            "payment_status": "unpaid",
            "total_amount": tour.price_amount * overrides.get("num_guests", 1),
        }
        values.update(overrides)
        booking = Booking(**values)
        test_session.add(booking)
        await test_session.commit()
        return booking

    return _make_booking


@pytest.fixture
def staff() -> AuthContext:
    return AuthContext.staff()


@pytest.fixture
def staff_headers() -> dict[str, str]:
    """Bearer headers for an admin account."""
    return {"Authorization": f"Bearer {issue_token('admin-1', ['admin'])}"}


@pytest.fixture
def customer_headers():
    """Build bearer headers for an account linked to a customer."""

    def _headers(customer: Customer) -> dict[str, str]:
        token = issue_token(f"user-{customer.id}", ["customer"], customer_id=customer.id)
        return {"Authorization": f"Bearer {token}"}

    return _headers
