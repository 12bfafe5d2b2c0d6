"""Models module exporting all database models."""

from .booking import Booking, BookingStatus, PaymentStatus
from .customer import Customer
from .tour import Tour, TourStatus

__all__ = [
    # Catalogue
    "Tour",
    "TourStatus",

    # People
    "Customer",

    # Booking entities
    "Booking",
    "BookingStatus",
    "PaymentStatus",
]
