"""
Elimination session lifecycle

State machine: Inactive -> Active -> Inactive (restartable). Rounds, lives and
skip votes are run by the scripted game mode; this class keeps the map supply
flowing and mirrors player state for the HUD.
"""
import logging
import threading
from typing import Any, Callable, Dict, Optional

from elimination_chamber.errors import AlreadyActive, ChamberError, GameModeError, NotActive
from elimination_chamber.models import (
    ChamberConfig, CommandResult, Player, PlayerState, SessionConfig, SessionStatus
)
from elimination_chamber.services.host import GameMode, Hud
from elimination_chamber.services.pipeline import MapAcquisitionPipeline


logger = logging.getLogger(__name__)

INITIAL_QUEUE_SIZE = 20     # maps queued when a session starts
LOW_WATER_MARK = 5          # refill when fewer maps than this are queued
REFILL_SIZE = 10
MIN_LIVES = 1
MAX_LIVES = 10
LIVES_RANGE_MESSAGE = f"Lives must be between {MIN_LIVES} and {MAX_LIVES}."


def lives_in_range(lives: int) -> bool:
    return MIN_LIVES <= lives <= MAX_LIVES


class SessionLifecycle:
    """
    Owns one elimination session at a time

    Args:
        config: Server configuration, snapshotted at each start
        pipeline: Map acquisition pipeline (owns the map queue)
        game_mode: Scripted game mode on the host
        hud: Player HUD on the host
    """

    def __init__(
        self,
        config: ChamberConfig,
        pipeline: MapAcquisitionPipeline,
        game_mode: GameMode,
        hud: Hud,
    ) -> None:
        self.config = config
        self.pipeline = pipeline
        self.game_mode = game_mode
        self.hud = hud

        self.session_config: Optional[SessionConfig] = None
        self.player_states: Dict[str, PlayerState] = {}    # advisory, see PlayerState
        self.next_lives: Optional[int] = None
        self._active = False
        self._generation = 0
        self._lock = threading.RLock()

    # ------------------------------------------------------------ state
    @property
    def active(self) -> bool:
        return self._active

    def _resolution_guard(self) -> Callable[[], bool]:
        generation = self._generation
        return lambda: self._active and self._generation == generation

    def _hud_state(self, login: str) -> Dict[str, Any]:
        player_state = self.player_states.get(login)
        return {
            "lives": player_state.lives if player_state else 0,
            "status": player_state.status if player_state else "UNKNOWN",
            "skipThreshold": self.session_config.skip_threshold_percent if self.session_config else 0,
            "roundTimeoutSec": self.session_config.round_timeout_sec if self.session_config else 0,
        }

    # ------------------------------------------------------------ operator commands
    def start(self, lives: Optional[int] = None) -> CommandResult:
        """
        Start a session

        Queues maps from the exchange, materializes the first one, then
        configures and restarts the game mode. On any failure the session
        stays inactive; maps already queued are kept.

        Args:
            lives: Starting lives, overrides the pending next-session value
                and the configured default
        """
        if lives is not None and not lives_in_range(lives):
            return CommandResult(success=False, message=LIVES_RANGE_MESSAGE)

        with self._lock:
            if self._active:
                logger.warning(str(AlreadyActive()))
                return CommandResult(success=False, message="Session already active.")

            chosen_lives = lives if lives is not None else self.next_lives
            snapshot = SessionConfig.snapshot(self.config, chosen_lives)
            self.pipeline.use_filters(snapshot.search_filters)

            try:
                self.pipeline.refill(INITIAL_QUEUE_SIZE)
            except ChamberError as exc:
                logger.error(f"Failed to queue maps from exchange: {exc}")
                return CommandResult(success=False, message="Failed to queue maps from the map exchange.")

            first_map = self.pipeline.resolve_next()
            if first_map is None:
                logger.error("Failed to add first map")
                return CommandResult(success=False, message="Failed to add the first map.")

            try:
                self.game_mode.set_mode(self.config.mode_script)
                self.game_mode.set_settings(snapshot.mode_settings())
                self.game_mode.load_match_settings(snapshot.playlist_path)
                self.game_mode.restart_map()
            except GameModeError as exc:
                logger.error(f"Failed to configure game mode: {exc}")
                return CommandResult(success=False, message="Failed to configure the game mode.")

            self.session_config = snapshot
            self._active = True
            self._generation += 1
            self.next_lives = None
            self.player_states = {
                player.login: PlayerState(lives=snapshot.lives_start)
                for player in self.hud.connected_players()
            }
            for player in self.hud.connected_players():
                self.hud.show(player, self._hud_state(player.login))

        logger.info(f"✅ Session started with {snapshot.lives_start} lives, first map {first_map.display_name}")
        return CommandResult(success=True, message=f"Session started with {snapshot.lives_start} lives.")

    def stop(self) -> CommandResult:
        """Stop the session; calling it while inactive does nothing"""
        with self._lock:
            if not self._active:
                return CommandResult(success=True, message="No session is active.")

            self._active = False
            self.player_states = {}
            for player in self.hud.connected_players():
                self.hud.hide(player)
            dropped = self.pipeline.queue.clear()
            self.session_config = None

        logger.info(f"🛑 Session stopped, {dropped} queued maps dropped")
        return CommandResult(success=True, message="Session stopped.")

    def set_next_lives(self, lives: int) -> CommandResult:
        """Starting lives for the next session (a running session is not changed)"""
        if not lives_in_range(lives):
            return CommandResult(success=False, message=LIVES_RANGE_MESSAGE)
        self.next_lives = lives
        logger.info(f"Lives for next session set to {lives}")
        return CommandResult(success=True, message=f"Lives setting changed to {lives} (takes effect next session).")

    def force_next(self) -> CommandResult:
        """Stage the next queued map and make the mode skip to it"""
        with self._lock:
            if not self._active:
                return CommandResult(success=False, message=str(NotActive()))
            guard = self._resolution_guard()

        self._stage_next_map(guard)
        try:
            self.game_mode.next_map()
        except GameModeError as exc:
            logger.error(f"Failed to skip map: {exc}")
            return CommandResult(success=False, message="Failed to skip to the next map.")

        logger.info("Forced next map")
        return CommandResult(success=True, message="Forced next map.")

    def status(self) -> SessionStatus:
        with self._lock:
            active = self._active
            if self.session_config is not None:
                lives = self.session_config.lives_start
            else:
                lives = self.next_lives if self.next_lives is not None else self.config.lives_start
            player_states = {login: state.model_copy() for login, state in self.player_states.items()}

        queued = self.pipeline.queue.snapshot()
        return SessionStatus(
            active=active,
            lives=lives,
            queue_size=len(queued),
            queued_maps=queued,
            player_states=player_states,
        )

    # ------------------------------------------------------------ host events
    def on_map_begin(self) -> None:
        with self._lock:
            if not self._active:
                return
            for player in self.hud.connected_players():
                self.hud.update(player, self._hud_state(player.login))

        if self.pipeline.queue.size() < LOW_WATER_MARK:
            try:
                self.pipeline.refill(REFILL_SIZE)
            except ChamberError as exc:
                logger.warning(f"Map queue refill failed: {exc}")

        logger.info("Map began")

    def on_map_end(self) -> None:
        with self._lock:
            if not self._active:
                return
            guard = self._resolution_guard()

        self._stage_next_map(guard)
        logger.info("Map ended")

    def on_player_join(self, player: Player) -> None:
        with self._lock:
            if not self._active:
                return
            if player.login not in self.player_states:
                self.player_states[player.login] = PlayerState(lives=self.session_config.lives_start)
            self.hud.show(player, self._hud_state(player.login))

        logger.info(f"Player {player.nickname or player.login} connected")

    def on_player_leave(self, player: Player) -> None:
        with self._lock:
            if not self._active:
                return
            self.player_states.pop(player.login, None)

        logger.info(f"Player {player.nickname or player.login} disconnected")

    def hooks(self) -> Dict[str, Callable[..., Any]]:
        """Named callback slots for the host's event dispatcher"""
        return {
            "on_session_start": self.start,
            "on_session_stop": self.stop,
            "on_map_begin": self.on_map_begin,
            "on_map_end": self.on_map_end,
            "on_player_join": self.on_player_join,
            "on_player_leave": self.on_player_leave,
        }

    def _stage_next_map(self, guard: Callable[[], bool]) -> None:
        local_map = self.pipeline.resolve_next(guard=guard)
        if local_map is None:
            logger.warning("No new map staged, rotation continues with the current playlist")
