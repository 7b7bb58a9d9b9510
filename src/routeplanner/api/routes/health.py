"""Health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, status

from ...config import settings

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


@router.get("/health/config", status_code=status.HTTP_200_OK)
def health_config() -> dict:
    """Report whether the remote services can be called at all."""
    return {
        "api_key_configured": bool(settings.ptv_api_key),
        "optimization_base_url": settings.optimization_base_url,
        "geocoding_base_url": settings.geocoding_base_url,
        "max_stops": settings.max_stops,
    }
