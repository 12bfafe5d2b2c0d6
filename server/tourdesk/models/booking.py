"""Booking model definition."""

from datetime import date, datetime
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.dialects.postgresql import UUID as PgUUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.database import Base, utcnow

if TYPE_CHECKING:
    from .customer import Customer
    from .tour import Tour


class BookingStatus(str, Enum):
    """Booking status enumeration."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    """Payment status enumeration."""
    UNPAID = "unpaid"
    PARTIAL = "partial"
    PAID = "paid"
    REFUNDED = "refunded"


class Booking(Base):
    """Booking entity: guests of one customer holding slots on one tour."""

    __tablename__ = "bookings"

    # Primary key
    id: Mapped[UUID] = mapped_column(
        PgUUID(as_uuid=True),
        primary_key=True,
        default=uuid4
    )

    tour_id: Mapped[UUID] = mapped_column(
        PgUUID(as_uuid=True),
        ForeignKey("tours.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    customer_id: Mapped[UUID] = mapped_column(
        PgUUID(as_uuid=True),
        ForeignKey("customers.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    # Administrative date of the booking, distinct from the tour's travel dates
    booking_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    num_guests: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=BookingStatus.PENDING.value,
        index=True
    )
    payment_status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=PaymentStatus.UNPAID.value
    )

    # Minor units, in the tour's currency
    total_amount: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Timestamps, stamped in UTC by the application; the server default covers raw inserts
    created_at: Mapped[datetime] = mapped_column(
        nullable=False,
        default=utcnow,
        server_default=func.now(),
        index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        nullable=False,
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow
    )

    # Constraints
    __table_args__ = (
        CheckConstraint("num_guests >= 1", name="ck_booking_num_guests_positive"),
        CheckConstraint("total_amount >= 0", name="ck_booking_total_amount_non_negative"),
        CheckConstraint(
            "status IN ('pending', 'confirmed', 'cancelled')",
            name="ck_booking_status_valid"
        ),
        CheckConstraint(
            "payment_status IN ('unpaid', 'partial', 'paid', 'refunded')",
            name="ck_booking_payment_status_valid"
        ),
        # Capacity sums filter on tour and status together
        Index("ix_bookings_tour_id_status", "tour_id", "status"),
    )

    # Relationships
    tour: Mapped["Tour"] = relationship("Tour", back_populates="bookings")
    customer: Mapped["Customer"] = relationship("Customer", back_populates="bookings")

    @property
    def holds_capacity(self) -> bool:
        """Cancelled bookings release their slots."""
        return self.status != BookingStatus.CANCELLED.value

    def __repr__(self) -> str:
        return (
            f"<Booking(id={self.id}, tour_id={self.tour_id}, customer_id={self.customer_id}, "
            f"num_guests={self.num_guests}, status={self.status})>"
        )
