"""
Host event endpoints

The host server's event dispatcher posts map and player events here. Events
are handled in the order they arrive.
"""
from fastapi import APIRouter, Depends, HTTPException, Request

from elimination_chamber.api.deps import get_lifecycle
from elimination_chamber.models import Player
from elimination_chamber.services.session import SessionLifecycle


router = APIRouter(prefix="/events", tags=["events"])


def _player_from(payload: dict) -> Player:
    login = payload.get("login")
    if not login:
        raise HTTPException(status_code=400, detail="login required")
    return Player(login=login, nickname=payload.get("nickname") or payload.get("nickName") or "")


@router.post("/map-begin")
def map_begin(lifecycle: SessionLifecycle = Depends(get_lifecycle)):
    lifecycle.on_map_begin()
    return {"success": True, "queue_size": lifecycle.pipeline.queue.size()}


@router.post("/map-end")
def map_end(lifecycle: SessionLifecycle = Depends(get_lifecycle)):
    lifecycle.on_map_end()
    return {"success": True, "queue_size": lifecycle.pipeline.queue.size()}


@router.post("/player-join")
def player_join(
    payload: dict,
    request: Request,
    lifecycle: SessionLifecycle = Depends(get_lifecycle),
):
    """
    Player connected

    Request:
        {"login": "abc", "nickname": "Abc"}
    """
    player = _player_from(payload)
    players = getattr(request.app.state, "players", None)
    if players is not None:
        players.connect(player)
    lifecycle.on_player_join(player)
    return {"success": True}


@router.post("/player-leave")
def player_leave(
    payload: dict,
    request: Request,
    lifecycle: SessionLifecycle = Depends(get_lifecycle),
):
    """
    Player disconnected

    Request:
        {"login": "abc"}
    """
    player = _player_from(payload)
    lifecycle.on_player_leave(player)
    players = getattr(request.app.state, "players", None)
    if players is not None:
        players.disconnect(player.login)
    return {"success": True}
