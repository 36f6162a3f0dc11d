"""
Data models for the elimination chamber session server
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Dict, List, Optional


MAP_FILE_SUFFIX = ".Map.Gbx"


def map_filename(external_id: int) -> str:
    """Local filename of a map downloaded from the exchange"""
    return f"{external_id}{MAP_FILE_SUFFIX}"


class SearchFilters(BaseModel):
    """Map exchange search filters (tmxFilters in the YAML config)"""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    style: str = "Race"
    length_min: int = Field(30, alias="lengthMin")          # seconds
    length_max: int = Field(90, alias="lengthMax")          # seconds
    uploaded_after: str = Field("2020-01-01", alias="uploadedAfter")
    difficulty: Optional[str] = None


class ExchangeSettings(BaseModel):
    """Connection settings for the map exchange"""
    model_config = ConfigDict(populate_by_name=True)

    base_url: str = Field("https://trackmania.exchange", alias="baseUrl")
    timeout_sec: float = Field(30.0, alias="timeoutSec")
    verify_tls: bool = Field(True, alias="verifyTls")
    user_agent: str = Field("EliminationChamber/1.0", alias="userAgent")


class ChamberConfig(BaseModel):
    """
    Server configuration, loaded from YAML

    Keys follow the game server plugin settings (camelCase).
    """
    model_config = ConfigDict(populate_by_name=True)

    lives_start: int = Field(3, alias="livesStart")
    skip_threshold_percent: int = Field(51, alias="skipThresholdPercent")
    round_timeout_sec: int = Field(300, alias="roundTimeoutSec")    # 0 = disabled
    winners_count: int = Field(1, alias="winnersCount")
    mode_script: str = Field("EliminationChamber.Script.txt", alias="modeScript")
    search_filters: SearchFilters = Field(default_factory=SearchFilters, alias="tmxFilters")
    maps_path: str = Field("UserData/Maps/EliminationChamber/", alias="mapsPath")
    playlist_path: str = Field(
        "UserData/Maps/MatchSettings/EliminationChamber.txt", alias="matchsettingsPath"
    )
    exchange: ExchangeSettings = Field(default_factory=ExchangeSettings)


class SessionConfig(BaseModel):
    """Immutable snapshot of the settings a session was started with"""
    model_config = ConfigDict(frozen=True)

    lives_start: int
    skip_threshold_percent: int
    round_timeout_sec: int
    winners_count: int
    search_filters: SearchFilters
    maps_storage_path: str
    playlist_path: str

    @classmethod
    def snapshot(cls, config: ChamberConfig, lives: Optional[int] = None) -> "SessionConfig":
        return cls(
            lives_start=lives if lives is not None else config.lives_start,
            skip_threshold_percent=config.skip_threshold_percent,
            round_timeout_sec=config.round_timeout_sec,
            winners_count=config.winners_count,
            search_filters=config.search_filters,
            maps_storage_path=config.maps_path,
            playlist_path=config.playlist_path,
        )

    def mode_settings(self) -> Dict[str, int]:
        """Script settings pushed to the game mode at session start"""
        return {
            "S_LivesStart": self.lives_start,
            "S_SkipThresholdPercent": self.skip_threshold_percent,
            "S_RoundTimeoutSec": self.round_timeout_sec,
            "S_WinnersCount": self.winners_count,
        }


class MapDescriptor(BaseModel):
    """Remote map entry, queued before download"""
    external_id: int
    name: str
    author: str
    author_time_ms: int
    materialized: bool = False

    @property
    def filename(self) -> str:
        return map_filename(self.external_id)


class LocalMap(BaseModel):
    """Map known to local storage"""
    filename: str
    display_name: str
    storage_path: str


class Player(BaseModel):
    """Player connected to the host server"""
    login: str
    nickname: str = ""


class PlayerState(BaseModel):
    """
    Advisory mirror of a player's lives and status

    The scripted game mode owns the real counters; these values can be stale.
    """
    lives: int
    status: str = "ALIVE"    # "ALIVE" | "ELIMINATED" | "UNKNOWN"


class CommandResult(BaseModel):
    """Outcome of an operator command"""
    success: bool
    message: str


class SessionStatus(BaseModel):
    """Read-only view of the session"""
    active: bool
    lives: Optional[int] = None
    queue_size: int = 0
    queued_maps: List[MapDescriptor] = []
    player_states: Dict[str, PlayerState] = {}
