"""Ordered, fail-fast validation of booking data."""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Callable, Mapping
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..core.database import utcnow
from ..core.exceptions import CapacityExceededError, ReferenceNotFoundError, ValidationError
from ..models.booking import BookingStatus, PaymentStatus
from ..models.customer import Customer
from ..models.tour import Tour
from .capacity_service import CapacityService

logger = logging.getLogger(__name__)

VALID_STATUSES = [s.value for s in BookingStatus]
VALID_PAYMENT_STATUSES = [s.value for s in PaymentStatus]

BOOKING_DATE_FORMAT = "%Y-%m-%d"
PAST_WINDOW_YEARS = 1
FUTURE_WINDOW_YEARS = 2


def utc_today() -> date:
    return utcnow().date()


def shift_years(day: date, years: int) -> date:
    """Move a date by whole years; 29 February falls back to the 28th."""
    try:
        return day.replace(year=day.year + years)
    except ValueError:
        return day.replace(year=day.year + years, day=28)


def is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def parse_uuid(value: Any) -> UUID | None:
    if isinstance(value, UUID):
        return value
    if isinstance(value, str):
        try:
            return UUID(value.strip())
        except ValueError:
            return None
    return None


def parse_booking_date(value: Any, today: date) -> date:
    """
    Parse a ``YYYY-MM-DD`` booking date and check it lies within
    [today - 1 year, today + 2 years], both ends inclusive.
    """
    if isinstance(value, datetime):
        parsed = value.date()
    elif isinstance(value, date):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = datetime.strptime(value, BOOKING_DATE_FORMAT).date()
        except ValueError:
            parsed = None
        if parsed is None or parsed.strftime(BOOKING_DATE_FORMAT) != value:
            raise ValidationError("Invalid date format. Use YYYY-MM-DD.")
    else:
        raise ValidationError("Invalid date format. Use YYYY-MM-DD.")

    if parsed < shift_years(today, -PAST_WINDOW_YEARS):
        raise ValidationError("Booking date cannot be more than 1 year in the past.")
    if parsed > shift_years(today, FUTURE_WINDOW_YEARS):
        raise ValidationError("Booking date cannot be more than 2 years in the future.")

    return parsed


def check_num_guests(value: Any, max_guests: int | None = None) -> int:
    """Return the guest count (default 1) once it is a whole number in range."""
    if max_guests is None:
        max_guests = settings.max_guests_per_booking
    if value is None:
        return 1
    if isinstance(value, bool):
        raise ValidationError("Number of guests must be a whole number.")
    try:
        num_guests = int(value)
    except (TypeError, ValueError):
        raise ValidationError("Number of guests must be a whole number.") from None
    if isinstance(value, float) and value != num_guests:
        raise ValidationError("Number of guests must be a whole number.")

    if num_guests < 1:
        raise ValidationError("Number of guests must be at least 1.")
    if num_guests > max_guests:
        raise ValidationError(f"Number of guests cannot exceed {max_guests} per booking.")
    return num_guests


def _check_choice(value: Any, default: str, choices: list[str], label: str) -> str:
    if value is None:
        return default
    if isinstance(value, (BookingStatus, PaymentStatus)):
        value = value.value
    if value not in choices:
        raise ValidationError(f"Invalid {label}. Must be: {', '.join(choices)}")
    return value


def check_status(value: Any) -> str:
    return _check_choice(value, BookingStatus.PENDING.value, VALID_STATUSES, "status")


def check_payment_status(value: Any) -> str:
    return _check_choice(value, PaymentStatus.UNPAID.value, VALID_PAYMENT_STATUSES, "payment status")


def check_total_amount(value: Any) -> int | None:
    """None means "not supplied"; the lifecycle layer derives it from the tour price."""
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError("Total amount must be a whole number of minor currency units.")
    if value < 0:
        raise ValidationError("Total amount cannot be negative.")
    return value


@dataclass
class BookingDraft:
    """Booking fields after validation, ready to be written."""

    tour: Tour
    customer_id: UUID
    booking_date: date
    num_guests: int
    status: str
    payment_status: str
    total_amount: int | None
    notes: str | None

    @property
    def holds_capacity(self) -> bool:
        return self.status != BookingStatus.CANCELLED.value


class BookingValidator:
    """
    Validates booking data in a fixed order and stops at the first failure.

    The order is: required fields, tour, customer, booking date, guest count,
    status, payment status, total amount, capacity. Only the first failing
    rule's message reaches the caller.
    """

    def __init__(
        self,
        db: AsyncSession,
        capacity_service: CapacityService | None = None,
        today: Callable[[], date] = utc_today,
    ):
        self.db = db
        self.capacity_service = capacity_service or CapacityService(db)
        self.today = today

    async def validate(
        self,
        data: Mapping[str, Any],
        exclude_booking_id: UUID | None = None
    ) -> BookingDraft:
        """
        Validate a full booking view (for updates: the existing row overlaid with changes).

        Args:
            data: Raw booking fields
            exclude_booking_id: Booking whose own guests are left out of the capacity sum

        Returns:
            Normalized booking draft

        Raises:
            ValidationError: First rule violated, with a human-readable reason
            ReferenceNotFoundError: Tour or customer does not exist
            CapacityExceededError: Not enough slots left on the tour
        """
        if is_blank(data.get("tour_id")):
            raise ValidationError("Tour is required.")
        if is_blank(data.get("customer_id")):
            raise ValidationError("Customer is required.")
        if is_blank(data.get("booking_date")):
            raise ValidationError("Booking date is required.")

        tour = await self._resolve_tour(data["tour_id"])
        customer_id = await self._resolve_customer(data["customer_id"])

        booking_date = parse_booking_date(data["booking_date"], self.today())
        num_guests = check_num_guests(data.get("num_guests"))
        status = check_status(data.get("status"))
        payment_status = check_payment_status(data.get("payment_status"))
        total_amount = check_total_amount(data.get("total_amount"))

        draft = BookingDraft(
            tour=tour,
            customer_id=customer_id,
            booking_date=booking_date,
            num_guests=num_guests,
            status=status,
            payment_status=payment_status,
            total_amount=total_amount,
            notes=data.get("notes"),
        )

        # A cancelled booking holds no slots, so it can never oversell
        if draft.holds_capacity:
            await self.check_capacity(tour.id, num_guests, exclude_booking_id)

        return draft

    async def check_capacity(
        self,
        tour_id: UUID,
        num_guests: int,
        exclude_booking_id: UUID | None = None
    ) -> None:
        available = await self.capacity_service.available_slots(tour_id, exclude_booking_id)
        if num_guests > available:
            logger.info(
                "Booking rejected - insufficient capacity",
                extra={
                    "tour_id": str(tour_id),
                    "requested_slots": num_guests,
                    "available_slots": available,
                    "exclude_booking_id": str(exclude_booking_id) if exclude_booking_id else None
                }
            )
            raise CapacityExceededError(
                tour_id=str(tour_id),
                requested_slots=num_guests,
                available_slots=available
            )

    async def _resolve_tour(self, raw_tour_id: Any) -> Tour:
        tour_id = parse_uuid(raw_tour_id)
        tour = await self.db.get(Tour, tour_id) if tour_id else None
        if tour is None:
            raise ReferenceNotFoundError("tour", str(raw_tour_id))
        if not tour.is_active:
            raise ValidationError(
                "This tour is no longer available for booking.",
                code="TOUR_INACTIVE",
                extensions={"tour_id": str(tour.id)},
            )
        return tour

    async def _resolve_customer(self, raw_customer_id: Any) -> UUID:
        customer_id = parse_uuid(raw_customer_id)
        found = None
        if customer_id:
            result = await self.db.execute(select(Customer.id).where(Customer.id == customer_id))
            found = result.scalar_one_or_none()
        if found is None:
            raise ReferenceNotFoundError("customer", str(raw_customer_id))
        return found
