"""Health Probe — liveness endpoint for container orchestration.

Invariants:
    - GET /health/ always returns 200 if the process is up
    - The probe never calls the Anthropic API (liveness must not depend on upstreams)
"""

import logging

from fastapi import APIRouter, Depends, status

from archlens.api.routes.dependencies import get_store
from archlens.services.space_store import SpaceStore

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/health", tags=["health"])


@router.get("/", status_code=status.HTTP_200_OK)
async def health_check(store: SpaceStore = Depends(get_store)):
    """Basic liveness probe. Returns 200 if the process is up."""
    return {
        "status": "healthy",
        "service": "archlens-api",
        "version": "1.0.0",
        "spaces": len(store),
    }
