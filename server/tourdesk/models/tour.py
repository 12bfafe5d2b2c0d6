"""Tour model definition."""

from datetime import date, datetime
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, Date, Integer, String, Text, func
from sqlalchemy.dialects.postgresql import UUID as PgUUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.database import Base, utcnow

if TYPE_CHECKING:
    from .booking import Booking


class TourStatus(str, Enum):
    """Tour status enumeration."""
    ACTIVE = "active"
    INACTIVE = "inactive"


class Tour(Base):
    """Tour entity: a dated trip to a destination with a fixed number of guest slots."""

    __tablename__ = "tours"

    # Primary key
    id: Mapped[UUID] = mapped_column(
        PgUUID(as_uuid=True),
        primary_key=True,
        default=uuid4
    )

    # Tour information
    destination: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    start_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False)

    # Price per guest (stored as minor units, e.g., cents)
    price_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    price_currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=TourStatus.ACTIVE.value,
        index=True
    )
    image_url: Mapped[str | None] = mapped_column(String(512), nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        nullable=False,
        default=utcnow,
        server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        nullable=False,
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow
    )

    # Constraints
    __table_args__ = (
        CheckConstraint("capacity > 0", name="ck_tour_capacity_positive"),
        CheckConstraint("price_amount >= 0", name="ck_tour_price_amount_non_negative"),
        CheckConstraint("end_date >= start_date", name="ck_tour_end_after_start"),
        CheckConstraint("length(price_currency) = 3", name="ck_tour_price_currency_length"),
    )

    # Relationships (deletes are issued as bulk statements, never through this collection)
    bookings: Mapped[list["Booking"]] = relationship(
        "Booking",
        back_populates="tour",
        passive_deletes=True
    )

    @property
    def is_active(self) -> bool:
        return self.status == TourStatus.ACTIVE.value

    def __repr__(self) -> str:
        return (
            f"<Tour(id={self.id}, destination='{self.destination}', "
            f"start_date={self.start_date}, capacity={self.capacity}, status={self.status})>"
        )
