"""
Host server collaborators

The scripted game mode and the HUD live on the host game server. The session
only talks to them through these interfaces. The default implementations keep
everything in process, which is what the HTTP server uses when no host adapter
is wired in.
"""
import logging
import threading
from typing import Any, Dict, List, Mapping, Optional, Protocol, Tuple

from elimination_chamber.models import Player


logger = logging.getLogger(__name__)


class GameMode(Protocol):
    """Scripted game mode running on the host server"""

    def set_mode(self, script: str) -> None: ...

    def set_settings(self, settings: Mapping[str, Any]) -> None: ...

    def load_match_settings(self, path: str) -> None: ...

    def restart_map(self) -> None: ...

    def next_map(self) -> None: ...


class Hud(Protocol):
    """Per-player HUD on the host server"""

    def connected_players(self) -> List[Player]: ...

    def show(self, player: Player, state: Mapping[str, Any]) -> None: ...

    def update(self, player: Player, state: Mapping[str, Any]) -> None: ...

    def hide(self, player: Player) -> None: ...


class LoggingGameMode:
    """Game mode stand-in that records and logs every call"""

    def __init__(self) -> None:
        self.script: Optional[str] = None
        self.settings: Dict[str, Any] = {}
        self.match_settings: Optional[str] = None
        self.calls: List[Tuple[str, Any]] = []

    def _record(self, name: str, arg: Any = None) -> None:
        self.calls.append((name, arg))
        logger.info(f"Game mode: {name} {arg if arg is not None else ''}".rstrip())

    def set_mode(self, script: str) -> None:
        self.script = script
        self._record("set_mode", script)

    def set_settings(self, settings: Mapping[str, Any]) -> None:
        self.settings.update(settings)
        self._record("set_settings", dict(settings))

    def load_match_settings(self, path: str) -> None:
        self.match_settings = path
        self._record("load_match_settings", path)

    def restart_map(self) -> None:
        self._record("restart_map")

    def next_map(self) -> None:
        self._record("next_map")


class InMemoryHud:
    """
    Tracks connected players and what their HUD currently shows

    Connections are fed by the host's player join/leave events.
    """

    def __init__(self) -> None:
        self._players: Dict[str, Player] = {}
        self.visible: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()

    def connect(self, player: Player) -> None:
        with self._lock:
            self._players[player.login] = player

    def disconnect(self, login: str) -> None:
        with self._lock:
            self._players.pop(login, None)
            self.visible.pop(login, None)

    def connected_players(self) -> List[Player]:
        with self._lock:
            return list(self._players.values())

    def show(self, player: Player, state: Mapping[str, Any]) -> None:
        with self._lock:
            self.visible[player.login] = dict(state)

    def update(self, player: Player, state: Mapping[str, Any]) -> None:
        with self._lock:
            if player.login in self.visible:
                self.visible[player.login].update(state)
            else:
                self.visible[player.login] = dict(state)

    def hide(self, player: Player) -> None:
        with self._lock:
            self.visible.pop(player.login, None)
