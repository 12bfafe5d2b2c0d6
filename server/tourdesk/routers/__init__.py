"""FastAPI routers package."""

from .booking import router as booking_router
from .customer import router as customer_router
from .system import router as system_router
from .tour import availability_router
from .tour import router as tour_router

__all__ = [
    "availability_router",
    "booking_router",
    "customer_router",
    "system_router",
    "tour_router",
]
