"""Health check endpoints."""

from fastapi import APIRouter

from clinic_ledger import __version__

router = APIRouter()


@router.get("/health")
async def health_check() -> dict:
    """Basic health check."""
    return {
        "status": "healthy",
        "service": "clinic-ledger",
        "version": __version__,
    }
