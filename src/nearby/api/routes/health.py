"""Health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, status

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


def _get_backend_health_check():
    """Lazy import to avoid startup failures."""
    from ...services.backend.client import check_health as backend_health_check
    return backend_health_check


@router.get("/health/backend", status_code=status.HTTP_200_OK)
def health_backend() -> dict:
    """Check merchant backend reachability."""
    try:
        backend_health_check = _get_backend_health_check()
        return {"service": "merchant-backend", "healthy": backend_health_check()}
    except Exception as e:
        return {"service": "merchant-backend", "healthy": False, "error": str(e)}
