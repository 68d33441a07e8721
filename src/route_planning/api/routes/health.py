"""Health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, status

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


@router.get("/health/persistence", status_code=status.HTTP_200_OK)
def health_persistence() -> dict:
    """Report which route store backs schedule edits."""
    try:
        from .schedules import get_gateway

        gateway = get_gateway()
        return {"service": "persistence", "backend": type(gateway).__name__, "healthy": True}
    except Exception as e:
        return {"service": "persistence", "healthy": False, "error": str(e)}
