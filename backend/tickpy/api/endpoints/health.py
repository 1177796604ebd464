"""
Health check endpoints.
"""

from fastapi import APIRouter

from ... import __version__

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/healthz")
async def healthz():
    """Simple health check endpoint for orchestrator probes."""
    return {"status": "ok", "version": __version__}
