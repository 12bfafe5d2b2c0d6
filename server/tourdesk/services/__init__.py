"""Service layer package."""

from .booking_service import BookingService
from .booking_validator import BookingValidator
from .capacity_service import CapacityService
from .customer_service import CustomerService
from .dashboard_service import DashboardService
from .tour_service import TourService

__all__ = [
    "BookingService",
    "BookingValidator",
    "CapacityService",
    "CustomerService",
    "DashboardService",
    "TourService",
]
