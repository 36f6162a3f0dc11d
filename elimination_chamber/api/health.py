"""
Health check and system status endpoints
"""
from fastapi import APIRouter, Depends

from elimination_chamber.api.deps import get_lifecycle
from elimination_chamber.services.session import SessionLifecycle


router = APIRouter(tags=["health"])


@router.get("/")
def health_check(lifecycle: SessionLifecycle = Depends(get_lifecycle)):
    """Health check endpoint"""
    return {
        "status": "ok",
        "message": "Elimination Chamber Session Server",
        "version": "1.0.0",
        "session_active": lifecycle.active,
        "local_maps": lifecycle.pipeline.storage.count(),
    }
