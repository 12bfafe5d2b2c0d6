"""Tour router for tour management and availability checks."""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.auth import AuthContext
from ..core.database import get_db
from ..core.dependencies import StaffAuth
from ..core.exceptions import ProblemDetailsException
from ..schemas.common import PROBLEM_RESPONSES, MessageResponse
from ..schemas.tour import (
    AvailabilityRequest,
    AvailabilityResponse,
    CreateTourRequest,
    Tour,
    TourListResponse,
    UpdateTourRequest,
)
from ..services.tour_service import TourService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tours", tags=["tours"], responses=PROBLEM_RESPONSES)
availability_router = APIRouter(prefix="/availability", tags=["availability"], responses=PROBLEM_RESPONSES)

DB_DEPENDENCY = Depends(get_db)


@router.get("", response_model=TourListResponse)
async def list_tours(
    include_inactive: bool = Query(False, description="Include inactive tours"),
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """List tours by start date with their available slots."""
    tours = await TourService(db).list_tours(include_inactive=include_inactive)
    response_data = TourListResponse(items=tours)
    return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))


@router.get("/{tour_id}", response_model=Tour)
async def get_tour(
    tour_id: UUID,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """Get one tour, including available slots."""
    tour = await TourService(db).get_tour(tour_id)
    return JSONResponse(status_code=200, content=tour.model_dump(mode="json"))


@router.post("", response_model=Tour, status_code=201)
async def create_tour(
    request: CreateTourRequest,
    auth: AuthContext = StaffAuth,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """Create a new tour (staff only)."""
    try:
        tour = await TourService(db).create_tour(request)

        logger.info(
            "Tour created via API",
            extra={"tour_id": str(tour.id), "user_id": auth.user_id}
        )

        return JSONResponse(status_code=201, content=tour.model_dump(mode="json"))

    except ProblemDetailsException:
        # Re-raise Problem Details exceptions as-is
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in tour creation",
            extra={"destination": request.destination, "error": str(e)},
            exc_info=True
        )
        raise HTTPException(
            status_code=500,
            detail="Internal server error"
        ) from e


@router.put("/{tour_id}", response_model=Tour)
async def update_tour(
    tour_id: UUID,
    request: UpdateTourRequest,
    auth: AuthContext = StaffAuth,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """Partially update a tour (staff only)."""
    tour = await TourService(db).update_tour(tour_id, request)
    return JSONResponse(status_code=200, content=tour.model_dump(mode="json"))


@router.delete("/{tour_id}", response_model=MessageResponse)
async def delete_tour(
    tour_id: UUID,
    auth: AuthContext = StaffAuth,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """Delete a tour that has no active bookings (staff only)."""
    await TourService(db).delete_tour(tour_id)
    return JSONResponse(
        status_code=200,
        content=MessageResponse(message="Tour deleted successfully.").model_dump()
    )


@availability_router.post("/check", response_model=AvailabilityResponse)
async def check_availability(
    request: AvailabilityRequest,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """Check whether a number of guests fits on a tour and quote the price."""
    availability = await TourService(db).check_availability(request.tour_id, request.num_guests)
    return JSONResponse(status_code=200, content=availability.model_dump(mode="json"))
