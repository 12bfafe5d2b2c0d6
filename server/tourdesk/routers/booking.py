"""Booking router for booking lifecycle operations."""

import logging
from datetime import date
from typing import Literal, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.auth import AuthContext
from ..core.database import get_db
from ..core.dependencies import RequiredAuth, StaffAuth
from ..core.exceptions import ProblemDetailsException
from ..schemas.booking import (
    BookingDetails,
    BookingListQuery,
    BookingListResponse,
    CreateBookingRequest,
    DeleteBookingResponse,
    SortField,
    UpdateBookingRequest,
)
from ..schemas.common import PROBLEM_RESPONSES
from ..schemas.dashboard import DashboardStats
from ..services.booking_service import BookingService
from ..services.dashboard_service import DashboardService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bookings", tags=["bookings"], responses=PROBLEM_RESPONSES)

# Define dependencies to avoid B008 linting errors
DB_DEPENDENCY = Depends(get_db)


def _internal_error(operation: str, e: Exception, **context) -> HTTPException:
    logger.error(
        f"Unexpected error in {operation}",
        extra={**context, "error": str(e)},
        exc_info=True
    )
    return HTTPException(status_code=500, detail="Internal server error")


@router.post("", response_model=BookingDetails, status_code=201)
async def create_booking(
    request: CreateBookingRequest,
    auth: AuthContext = RequiredAuth,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """
    Create a booking.

    Capacity is checked against live bookings on the tour; the response is
    the stored booking joined with its tour and customer.
    """
    try:
        booking = await BookingService(db).create_booking(request, auth)
        return JSONResponse(status_code=201, content=booking.model_dump(mode="json"))
    except ProblemDetailsException:
        raise
    except Exception as e:
        raise _internal_error("booking creation", e, tour_id=request.tour_id) from e


@router.get("", response_model=BookingListResponse)
async def list_bookings(
    status: Optional[str] = Query(None, description="Filter by booking status"),
    payment_status: Optional[str] = Query(None, description="Filter by payment status"),
    tour_id: Optional[UUID] = Query(None),
    customer_id: Optional[UUID] = Query(None, description="Ignored for customers"),
    date_from: Optional[date] = Query(None, description="Earliest booking date"),
    date_to: Optional[date] = Query(None, description="Latest booking date"),
    search: Optional[str] = Query(None, description="Customer name, email or destination"),
    sort: SortField = Query("created_at"),
    order: Literal["asc", "desc"] = Query("desc"),
    limit: Optional[int] = Query(None, ge=1, le=500),
    offset: int = Query(0, ge=0),
    auth: AuthContext = RequiredAuth,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """List bookings visible to the caller, with the unpaged total."""
    query = BookingListQuery(
        status=status,
        payment_status=payment_status,
        tour_id=tour_id,
        customer_id=customer_id,
        date_from=date_from,
        date_to=date_to,
        search=search,
        sort=sort,
        order=order,
        limit=limit,
        offset=offset,
    )
    try:
        bookings = await BookingService(db).list_bookings(query, auth)
        return JSONResponse(status_code=200, content=bookings.model_dump(mode="json"))
    except ProblemDetailsException:
        raise
    except Exception as e:
        raise _internal_error("booking listing", e) from e


@router.get("/stats", response_model=DashboardStats)
async def booking_stats(
    auth: AuthContext = StaffAuth,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """Dashboard statistics (staff only)."""
    try:
        stats = await DashboardService(db).get_dashboard_stats()
        return JSONResponse(status_code=200, content=stats.model_dump(mode="json"))
    except ProblemDetailsException:
        raise
    except Exception as e:
        raise _internal_error("dashboard statistics", e) from e


@router.get("/{booking_id}", response_model=BookingDetails)
async def get_booking(
    booking_id: UUID,
    auth: AuthContext = RequiredAuth,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """Get one booking."""
    try:
        booking = await BookingService(db).get_booking(booking_id, auth)
        return JSONResponse(status_code=200, content=booking.model_dump(mode="json"))
    except ProblemDetailsException:
        raise
    except Exception as e:
        raise _internal_error("booking retrieval", e, booking_id=str(booking_id)) from e


@router.put("/{booking_id}", response_model=BookingDetails)
async def update_booking(
    booking_id: UUID,
    request: UpdateBookingRequest,
    auth: AuthContext = RequiredAuth,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """
    Update a booking.

    Omitted fields keep their stored values. Moving a booking to cancelled
    without a payment status marks it refunded.
    """
    try:
        booking = await BookingService(db).update_booking(booking_id, request, auth)
        return JSONResponse(status_code=200, content=booking.model_dump(mode="json"))
    except ProblemDetailsException:
        raise
    except Exception as e:
        raise _internal_error("booking update", e, booking_id=str(booking_id)) from e


@router.delete("/{booking_id}", response_model=DeleteBookingResponse)
async def delete_booking(
    booking_id: UUID,
    hard: bool = Query(False, description="Remove the row instead of cancelling (staff only)"),
    auth: AuthContext = RequiredAuth,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """Cancel a booking, or remove it entirely with ``hard=true``."""
    try:
        outcome = await BookingService(db).delete_booking(booking_id, auth, hard=hard)
        return JSONResponse(status_code=200, content=outcome.model_dump(mode="json"))
    except ProblemDetailsException:
        raise
    except Exception as e:
        raise _internal_error("booking deletion", e, booking_id=str(booking_id)) from e
