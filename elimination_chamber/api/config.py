"""
Configuration endpoints
"""
from fastapi import APIRouter, Depends

from elimination_chamber.api.deps import get_lifecycle
from elimination_chamber.services.session import SessionLifecycle


router = APIRouter(tags=["config"])


@router.get("/config")
def get_config(lifecycle: SessionLifecycle = Depends(get_lifecycle)):
    """Effective configuration, plus the snapshot of the running session if any"""
    session_config = lifecycle.session_config
    return {
        "config": lifecycle.config.model_dump(by_alias=True),
        "session": session_config.model_dump() if session_config else None,
        "next_session_lives": lifecycle.next_lives,
    }
