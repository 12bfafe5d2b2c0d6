"""Booking service for business logic operations."""

import logging
from datetime import date
from typing import Any, Callable, Mapping
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy import asc, delete, desc, func, or_, select
from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.auth import AuthContext
from ..core.exceptions import AuthorizationError, BookingConflictError, NotFoundError, ValidationError
from ..core.observability import get_logger, metrics_collector
from ..models.booking import Booking, BookingStatus, PaymentStatus
from ..models.customer import Customer
from ..models.tour import Tour
from ..schemas.booking import BookingDetails, BookingListQuery, BookingListResponse, DeleteBookingResponse
from .booking_validator import BookingValidator, is_blank, parse_uuid, utc_today
from .capacity_service import CapacityService

logger = logging.getLogger(__name__)
audit_logger = get_logger("tourdesk.audit")

# Serialization failure, deadlock detected, lock not available
WRITE_CONFLICT_SQLSTATES = frozenset({"40001", "40P01", "55P03"})

BOOKING_FIELDS = (
    "tour_id",
    "customer_id",
    "booking_date",
    "num_guests",
    "status",
    "payment_status",
    "total_amount",
    "notes",
)

CUSTOMER_NAME = (Customer.first_name + " " + Customer.last_name).label("customer_name")

SORT_COLUMNS = {
    "booking_id": Booking.id,
    "booking_date": Booking.booking_date,
    "created_at": Booking.created_at,
    "total_amount": Booking.total_amount,
    "customer_name": CUSTOMER_NAME,
    "destination": Tour.destination,
}


def _is_write_conflict(exc: DBAPIError) -> bool:
    """True when the driver error means a concurrent writer got in the way."""
    if isinstance(exc, OperationalError):
        return True
    orig = exc.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    return code in WRITE_CONFLICT_SQLSTATES


def _as_dict(data: BaseModel | Mapping[str, Any], partial: bool = False) -> dict[str, Any]:
    if isinstance(data, BaseModel):
        return data.model_dump(exclude_unset=partial)
    return dict(data)


def booking_view_query():
    """Booking rows joined with tour destination/dates and customer name/email."""
    return (
        select(
            Booking.id,
            Booking.tour_id,
            Booking.customer_id,
            Booking.booking_date,
            Booking.num_guests,
            Booking.status,
            Booking.payment_status,
            Booking.total_amount,
            Tour.price_currency.label("currency"),
            Booking.notes,
            Booking.created_at,
            Booking.updated_at,
            Tour.destination,
            Tour.start_date.label("tour_start_date"),
            Tour.end_date.label("tour_end_date"),
            CUSTOMER_NAME,
            Customer.email.label("customer_email"),
        )
        .join(Tour, Booking.tour_id == Tour.id)
        .join(Customer, Booking.customer_id == Customer.id)
    )


class BookingService:
    """
    Service for booking lifecycle operations.

    Every write runs in the caller's session as one transaction: the tour row
    is locked, the booking is validated against live capacity, written, and the
    tour is summed again before commit. A sum above capacity at that point
    means a concurrent writer slipped in, and the write is rolled back with a
    retryable ``BookingConflictError``.
    """

    def __init__(self, db: AsyncSession, today: Callable[[], date] = utc_today):
        self.db = db
        self.capacity_service = CapacityService(db)
        self.validator = BookingValidator(db, self.capacity_service, today=today)

    async def create_booking(self, data: BaseModel | Mapping[str, Any], auth: AuthContext) -> BookingDetails:
        """
        Create a booking.

        Args:
            data: Booking fields; total_amount defaults to tour price times guests
            auth: Caller context

        Returns:
            Denormalized view of the stored booking

        Raises:
            AuthorizationError: Customer acting outside their own scope
            ValidationError: First failing business rule
            BookingConflictError: Lost a race against a concurrent write
        """
        payload = self._scope_create(_as_dict(data), auth)

        tour_id = parse_uuid(payload.get("tour_id"))
        if tour_id is not None:
            await self.capacity_service.lock_tour(tour_id)

        draft = await self._validate(payload)

        total_amount = draft.total_amount
        if total_amount is None:
            total_amount = draft.tour.price_amount * draft.num_guests

        booking = Booking(
            tour_id=draft.tour.id,
            customer_id=draft.customer_id,
            booking_date=draft.booking_date,
            num_guests=draft.num_guests,
            status=draft.status,
            payment_status=draft.payment_status,
            total_amount=total_amount,
            notes=draft.notes,
        )
        self.db.add(booking)

        await self._commit_checked(draft.tour.id, draft.tour.capacity, verify=draft.holds_capacity)

        metrics_collector.record_booking_created(booking.status)
        audit_logger.with_context(
            booking_id=str(booking.id),
            actor=auth.user_id,
            role=auth.role.value,
        ).info(
            "booking.created",
            tour_id=str(booking.tour_id),
            customer_id=str(booking.customer_id),
            num_guests=booking.num_guests,
            status=booking.status,
            total_amount=booking.total_amount,
        )

        return await self._require_view(booking.id)

    async def get_booking(self, booking_id: UUID, auth: AuthContext) -> BookingDetails:
        """
        Get one booking view.

        Raises:
            NotFoundError: If booking not found
            AuthorizationError: Customer reading another customer's booking
        """
        view = await self.get_booking_view(booking_id)
        if view is None:
            raise NotFoundError(resource_type="booking", resource_id=str(booking_id))
        if not auth.can_access_customer(view.customer_id):
            raise AuthorizationError(detail="You can only access your own bookings.")
        return view

    async def get_booking_view(self, booking_id: UUID) -> BookingDetails | None:
        result = await self.db.execute(booking_view_query().where(Booking.id == booking_id))
        row = result.one_or_none()
        if row is None:
            return None
        return BookingDetails.model_validate(dict(row._mapping))

    async def list_bookings(self, query: BookingListQuery, auth: AuthContext) -> BookingListResponse:
        """List booking views matching the filters, with the unpaged total."""
        stmt = booking_view_query()

        if auth.is_customer:
            stmt = stmt.where(Booking.customer_id == auth.require_customer_id())
        elif query.customer_id:
            stmt = stmt.where(Booking.customer_id == query.customer_id)

        if query.status:
            stmt = stmt.where(Booking.status == query.status)
        if query.payment_status:
            stmt = stmt.where(Booking.payment_status == query.payment_status)
        if query.tour_id:
            stmt = stmt.where(Booking.tour_id == query.tour_id)
        if query.date_from:
            stmt = stmt.where(Booking.booking_date >= query.date_from)
        if query.date_to:
            stmt = stmt.where(Booking.booking_date <= query.date_to)
        if query.search:
            pattern = f"%{query.search.strip()}%"
            stmt = stmt.where(
                or_(
                    CUSTOMER_NAME.ilike(pattern),
                    Customer.email.ilike(pattern),
                    Tour.destination.ilike(pattern),
                )
            )

        count_result = await self.db.execute(select(func.count()).select_from(stmt.subquery()))
        total = count_result.scalar_one()

        direction = asc if query.order == "asc" else desc
        stmt = stmt.order_by(direction(SORT_COLUMNS[query.sort]), direction(Booking.id))
        if query.offset:
            stmt = stmt.offset(query.offset)
        if query.limit is not None:
            stmt = stmt.limit(query.limit)

        result = await self.db.execute(stmt)
        items = [BookingDetails.model_validate(dict(row._mapping)) for row in result]

        return BookingListResponse(items=items, total=total)

    async def update_booking(
        self,
        booking_id: UUID,
        data: BaseModel | Mapping[str, Any],
        auth: AuthContext
    ) -> BookingDetails:
        """
        Apply a partial update and re-validate the merged booking.

        The booking's own guests are excluded from the capacity sum, so
        editing notes on a booking that fills the tour is still allowed.

        Raises:
            NotFoundError: If booking not found
            AuthorizationError: Customer acting outside their own scope
            ValidationError: First failing business rule on the merged row
            BookingConflictError: Lost a race against a concurrent write
        """
        booking = await self.get_booking_by_id_or_raise(booking_id)
        self._ensure_access(booking, auth)

        changes = self._scope_update(_as_dict(data, partial=True), booking, auth)
        was_cancelled = not booking.holds_capacity

        merged = {field: getattr(booking, field) for field in BOOKING_FIELDS}
        merged.update(changes)

        moving_to_cancelled = merged["status"] == BookingStatus.CANCELLED.value and not was_cancelled
        if moving_to_cancelled and (auth.is_customer or "payment_status" not in changes):
            merged["payment_status"] = PaymentStatus.REFUNDED.value

        target_tour_id = parse_uuid(merged["tour_id"])
        for tour_id in sorted({booking.tour_id, target_tour_id} - {None}, key=str):
            await self.capacity_service.lock_tour(tour_id)

        draft = await self._validate(merged, exclude_booking_id=booking.id)

        total_amount = draft.total_amount
        if "total_amount" not in changes and (
            draft.num_guests != booking.num_guests or draft.tour.id != booking.tour_id
        ):
            total_amount = draft.tour.price_amount * draft.num_guests
        elif total_amount is None:
            total_amount = booking.total_amount

        booking.tour_id = draft.tour.id
        booking.customer_id = draft.customer_id
        booking.booking_date = draft.booking_date
        booking.num_guests = draft.num_guests
        booking.status = draft.status
        booking.payment_status = draft.payment_status
        booking.total_amount = total_amount
        booking.notes = draft.notes

        await self._commit_checked(draft.tour.id, draft.tour.capacity, verify=draft.holds_capacity)

        if moving_to_cancelled:
            metrics_collector.record_booking_cancelled(auth.role.value)
        audit_logger.with_context(
            booking_id=str(booking_id),
            actor=auth.user_id,
            role=auth.role.value,
        ).info("booking.updated", fields=sorted(changes), status=draft.status)

        return await self._require_view(booking_id)

    async def delete_booking(self, booking_id: UUID, auth: AuthContext, hard: bool = False) -> DeleteBookingResponse:
        """
        Cancel (soft) or remove (hard) a booking.

        A soft delete sets status cancelled and payment refunded without
        re-validating the row; repeating it changes nothing. Customers can
        only soft delete.

        Raises:
            NotFoundError: If booking not found
            AuthorizationError: Customer deleting another customer's booking
        """
        booking = await self.get_booking_by_id_or_raise(booking_id)
        self._ensure_access(booking, auth)

        if hard and not auth.is_staff:
            logger.info(
                "Hard delete requested by customer - falling back to cancellation",
                extra={"booking_id": str(booking_id), "user_id": auth.user_id}
            )
            hard = False

        if hard:
            await self.db.execute(delete(Booking).where(Booking.id == booking_id))
            await self.db.commit()

            audit_logger.with_context(
                booking_id=str(booking_id),
                actor=auth.user_id,
                role=auth.role.value,
            ).info("booking.deleted")

            return DeleteBookingResponse(
                message="Booking deleted successfully.",
                booking_id=booking_id,
                hard=True,
            )

        was_cancelled = not booking.holds_capacity
        booking.status = BookingStatus.CANCELLED.value
        booking.payment_status = PaymentStatus.REFUNDED.value
        await self.db.commit()

        if not was_cancelled:
            metrics_collector.record_booking_cancelled(auth.role.value)
            audit_logger.with_context(
                booking_id=str(booking_id),
                actor=auth.user_id,
                role=auth.role.value,
            ).info("booking.cancelled")
        else:
            logger.info(
                "Booking already cancelled",
                extra={"booking_id": str(booking_id)}
            )

        return DeleteBookingResponse(
            message="Booking cancelled successfully.",
            booking_id=booking_id,
            hard=False,
        )

    async def get_booking_by_id(self, booking_id: UUID) -> Booking | None:
        """Get booking by ID."""
        stmt = select(Booking).where(Booking.id == booking_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_booking_by_id_or_raise(self, booking_id: UUID) -> Booking:
        """Get booking by ID or raise NotFoundError."""
        booking = await self.get_booking_by_id(booking_id)
        if not booking:
            logger.warning(
                "Booking not found",
                extra={"booking_id": str(booking_id)}
            )
            raise NotFoundError(
                resource_type="booking",
                resource_id=str(booking_id)
            )
        return booking

    async def _validate(self, data: Mapping[str, Any], exclude_booking_id: UUID | None = None):
        try:
            return await self.validator.validate(data, exclude_booking_id=exclude_booking_id)
        except ValidationError as e:
            metrics_collector.record_rejection(e.code or "VALIDATION_ERROR")
            logger.info(
                "Booking rejected",
                extra={"code": e.code, "reason": e.reason, "booking_id": str(exclude_booking_id)}
            )
            raise

    async def _commit_checked(self, tour_id: UUID, capacity: int, verify: bool) -> None:
        """
        Flush, re-sum the tour and commit.

        ``tour_id`` and ``capacity`` are passed in as plain values because a
        rollback expires every loaded object.
        """
        try:
            await self.db.flush()
            if verify:
                booked = await self.capacity_service.booked_guests(tour_id)
                if booked > capacity:
                    await self.db.rollback()
                    metrics_collector.record_conflict()
                    logger.warning(
                        "Concurrent booking oversold tour - write rolled back",
                        extra={"tour_id": str(tour_id), "booked": booked, "capacity": capacity}
                    )
                    raise BookingConflictError(str(tour_id))
            await self.db.commit()
        except DBAPIError as e:
            if not _is_write_conflict(e):
                raise
            await self.db.rollback()
            metrics_collector.record_conflict()
            logger.warning(
                "Booking write hit a lock or serialization failure",
                extra={"tour_id": str(tour_id), "error": str(e)}
            )
            raise BookingConflictError(str(tour_id)) from e

    async def _require_view(self, booking_id: UUID) -> BookingDetails:
        view = await self.get_booking_view(booking_id)
        if view is None:
            raise NotFoundError(resource_type="booking", resource_id=str(booking_id))
        return view

    def _ensure_access(self, booking: Booking, auth: AuthContext) -> None:
        if not auth.can_access_customer(booking.customer_id):
            logger.warning(
                "Booking access denied",
                extra={"booking_id": str(booking.id), "user_id": auth.user_id}
            )
            raise AuthorizationError(detail="You can only access your own bookings.")

    def _scope_create(self, payload: dict[str, Any], auth: AuthContext) -> dict[str, Any]:
        """Pin a customer's create request to their own profile and defaults."""
        if auth.is_staff:
            return payload

        own_id = auth.require_customer_id()
        requested = payload.get("customer_id")
        if not is_blank(requested) and parse_uuid(requested) != own_id:
            raise AuthorizationError(detail="You can only create bookings for yourself.")

        status = payload.get("status")
        if status is not None and status != BookingStatus.PENDING.value:
            raise AuthorizationError(detail="Customers cannot set the booking status.")
        payment_status = payload.get("payment_status")
        if payment_status is not None and payment_status != PaymentStatus.UNPAID.value:
            raise AuthorizationError(detail="Customers cannot set the payment status.")

        # Customers always pay the tour price
        scoped = {key: value for key, value in payload.items() if key != "total_amount"}
        scoped["customer_id"] = str(own_id)
        return scoped

    def _scope_update(self, changes: dict[str, Any], booking: Booking, auth: AuthContext) -> dict[str, Any]:
        """Drop null fields (except notes) and apply the customer restrictions."""
        changes = {
            key: value for key, value in changes.items()
            if key in BOOKING_FIELDS and (value is not None or key == "notes")
        }
        if auth.is_staff:
            return changes

        # Bookings cannot be moved to another customer
        changes.pop("customer_id", None)

        status = changes.get("status")
        if status is not None and status != booking.status:
            if not booking.holds_capacity:
                raise AuthorizationError(detail="Customers cannot reopen a cancelled booking.")
            if status == BookingStatus.CONFIRMED.value:
                raise AuthorizationError(detail="Customers cannot confirm bookings.")
            if status != BookingStatus.CANCELLED.value:
                raise AuthorizationError(detail="Customers can only cancel their bookings.")

        payment_status = changes.get("payment_status")
        if payment_status is not None and payment_status != booking.payment_status:
            raise AuthorizationError(detail="Customers cannot change the payment status.")

        total_amount = changes.get("total_amount")
        if total_amount is not None and total_amount != booking.total_amount:
            raise AuthorizationError(detail="Customers cannot change the booking total.")
        # An unchanged total must not block the recompute when guests change
        changes.pop("total_amount", None)

        return changes
