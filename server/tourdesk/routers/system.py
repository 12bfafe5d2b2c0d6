"""Liveness, readiness, service info and Prometheus metrics endpoints."""

import logging

from fastapi import APIRouter, Depends, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..core.database import get_db, ping_db
from ..core.observability import SERVICE_NAME, SERVICE_VERSION, get_prometheus_metrics

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "/health",
    status_code=status.HTTP_200_OK,
    tags=["Health"],
    summary="Health Check",
    description="Check if the service is healthy and responsive",
    response_model=dict,
)
async def health_check():
    """
    Health check endpoint that returns service status.

    Returns:
        dict: Health status information
    """
    return {
        "status": "healthy",
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "environment": settings.environment,
        "debug": settings.debug,
    }


@router.get(
    "/ready",
    tags=["Health"],
    summary="Readiness Check",
    description="Check that the database answers queries",
    response_model=dict,
)
async def readiness_check(db: AsyncSession = Depends(get_db)) -> JSONResponse:
    """
    Readiness check endpoint that pings the database.

    Returns 503 while the database is unreachable.
    """
    try:
        database_ok = await ping_db(db)
    except (SQLAlchemyError, OSError) as e:
        logger.warning("Readiness check failed", extra={"error": str(e)})
        database_ok = False

    return JSONResponse(
        status_code=status.HTTP_200_OK if database_ok else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "ready" if database_ok else "unavailable",
            "service": SERVICE_NAME,
            "checks": {"database": "ok" if database_ok else "unreachable"},
        },
    )


@router.get(
    "/info",
    status_code=status.HTTP_200_OK,
    tags=["Info"],
    summary="Service Information",
    description="Get detailed information about the service",
    response_model=dict,
)
async def service_info():
    """Service information endpoint."""
    return {
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "description": "Tour booking desk with derived capacity and role-scoped booking management",
        "environment": settings.environment,
        "debug": settings.debug,
        "limits": {
            "max_guests_per_booking": settings.max_guests_per_booking,
        },
        "features": {
            "authentication": True,
            "tracing": settings.otlp_endpoint is not None,
            "problem_details": True,
        },
        "endpoints": {
            "health": "/health",
            "readiness": "/ready",
            "info": "/info",
            "metrics": "/metrics",
            "docs": "/docs" if settings.debug else None,
        },
    }


@router.get(
    "/metrics",
    summary="Prometheus Metrics",
    description="Endpoint for Prometheus to scrape metrics",
    response_class=Response,
    tags=["Observability"]
)
async def metrics():
    """
    Return Prometheus metrics.

    Returns:
        Response: Prometheus metrics in text format
    """
    metrics_data = get_prometheus_metrics()
    return Response(
        content=metrics_data,
        media_type="text/plain; version=0.0.4; charset=utf-8"
    )
