"""
Admin endpoints for session management

Handlers are plain functions: starting a session and skipping maps call the
map exchange synchronously, so FastAPI runs them in its thread pool.
"""
from fastapi import APIRouter, Depends, HTTPException, Request
from typing import Optional
import logging

from elimination_chamber.api.deps import get_lifecycle
from elimination_chamber.config import resolve_config_path, update_lives_start
from elimination_chamber.errors import StorageFailure
from elimination_chamber.services.session import LIVES_RANGE_MESSAGE, SessionLifecycle, lives_in_range


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


def _parse_lives(value) -> int:
    if isinstance(value, bool):
        raise HTTPException(status_code=400, detail="lives must be a number")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise HTTPException(status_code=400, detail="lives must be a number")


@router.post("/start")
def start_session(
    request: Optional[dict] = None,
    lifecycle: SessionLifecycle = Depends(get_lifecycle),
):
    """
    Admin: Start an elimination session

    Request:
        {
            "lives": 3   # optional, default from config / POST /admin/lives
        }
    """
    lives = (request or {}).get("lives")
    if lives is not None:
        lives = _parse_lives(lives)
        if not lives_in_range(lives):
            raise HTTPException(status_code=400, detail=LIVES_RANGE_MESSAGE)

    result = lifecycle.start(lives)
    if not result.success:
        raise HTTPException(status_code=409, detail=result.message)

    status = lifecycle.status()
    return {
        "success": True,
        "lives": status.lives,
        "queue_size": status.queue_size,
        "message": result.message,
    }


@router.post("/stop")
def stop_session(lifecycle: SessionLifecycle = Depends(get_lifecycle)):
    """Admin: Stop the running session"""
    result = lifecycle.stop()
    return {"success": result.success, "message": result.message}


@router.post("/lives")
def set_lives(
    request: dict,
    http_request: Request,
    lifecycle: SessionLifecycle = Depends(get_lifecycle),
):
    """
    Admin: Set starting lives for the next session

    Request:
        {
            "lives": 5,         # 1..10
            "persist": true     # optional, also save as the default in the config file
        }
    """
    if "lives" not in request:
        raise HTTPException(status_code=400, detail="lives required")

    lives = _parse_lives(request["lives"])
    result = lifecycle.set_next_lives(lives)
    if not result.success:
        raise HTTPException(status_code=400, detail=result.message)

    persisted = False
    if request.get("persist"):
        config_path = resolve_config_path(http_request.app.state.config_path)
        try:
            update_lives_start(lives, config_path)
        except (FileNotFoundError, StorageFailure, ValueError) as e:
            logger.error(f"❌ Failed to persist lives: {e}")
            raise HTTPException(status_code=409, detail="Failed to save lives to the config file.")
        lifecycle.config = lifecycle.config.model_copy(update={"lives_start": lives})
        persisted = True

    return {
        "success": True,
        "lives": lifecycle.next_lives,
        "persisted": persisted,
        "message": result.message,
    }

@router.post("/next")
def force_next_map(lifecycle: SessionLifecycle = Depends(get_lifecycle)):
    """Admin: Skip to the next map"""
    result = lifecycle.force_next()
    if not result.success:
        raise HTTPException(status_code=409, detail=result.message)

    return {"success": True, "queue_size": lifecycle.pipeline.queue.size(), "message": result.message}


@router.get("/status")
def get_status(lifecycle: SessionLifecycle = Depends(get_lifecycle)):
    """Session state, queued maps and (advisory) player states"""
    return lifecycle.status().model_dump()
