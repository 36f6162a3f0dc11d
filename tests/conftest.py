"""
Shared fixtures and fakes
"""
from typing import Callable, Dict, List, Optional

import pytest

from elimination_chamber.errors import RemoteUnavailable
from elimination_chamber.models import ChamberConfig, MapDescriptor, SearchFilters
from elimination_chamber.services.host import InMemoryHud, LoggingGameMode
from elimination_chamber.services.map_queue import MapQueue
from elimination_chamber.services.pipeline import MapAcquisitionPipeline
from elimination_chamber.services.playlist import MatchSettingsPlaylist
from elimination_chamber.services.session import SessionLifecycle
from elimination_chamber.services.storage import LocalMapStorage


def make_descriptor(external_id: int, name: Optional[str] = None) -> MapDescriptor:
    return MapDescriptor(
        external_id=external_id,
        name=name or f"Map {external_id}",
        author="author",
        author_time_ms=45000,
    )


class FakeExchangeClient:
    """In-memory map exchange: canned search results, counted downloads"""

    def __init__(self, results: Optional[List[MapDescriptor]] = None) -> None:
        self.results = results if results is not None else [make_descriptor(i) for i in range(1, 41)]
        self.search_error: Optional[Exception] = None
        self.failing_ids = set()
        self.search_calls: List[int] = []
        self.downloads: List[int] = []
        self.on_download: Optional[Callable[[int], None]] = None
        self.closed = False

    def search(self, filters: SearchFilters, desired_count: int) -> List[MapDescriptor]:
        self.search_calls.append(desired_count)
        if self.search_error is not None:
            raise self.search_error
        return [item.model_copy() for item in self.results[:desired_count]]

    def download(self, external_id: int) -> bytes:
        self.downloads.append(external_id)
        if self.on_download is not None:
            self.on_download(external_id)
        if external_id in self.failing_ids:
            raise RemoteUnavailable("Map download failed", external_id=external_id, status=503)
        return f"GBX-{external_id}".encode()

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def config(tmp_path) -> ChamberConfig:
    return ChamberConfig(
        mapsPath=str(tmp_path / "Maps" / "EliminationChamber"),
        matchsettingsPath=str(tmp_path / "Maps" / "MatchSettings" / "EliminationChamber.txt"),
    )


@pytest.fixture
def client() -> FakeExchangeClient:
    return FakeExchangeClient()


@pytest.fixture
def pipeline(config, client) -> MapAcquisitionPipeline:
    return MapAcquisitionPipeline(
        client=client,
        queue=MapQueue(),
        storage=LocalMapStorage(config.maps_path),
        playlist=MatchSettingsPlaylist(config.playlist_path),
        filters=config.search_filters,
    )


@pytest.fixture
def game_mode() -> LoggingGameMode:
    return LoggingGameMode()


@pytest.fixture
def hud() -> InMemoryHud:
    return InMemoryHud()


@pytest.fixture
def lifecycle(config, pipeline, game_mode, hud) -> SessionLifecycle:
    return SessionLifecycle(config=config, pipeline=pipeline, game_mode=game_mode, hud=hud)


def call_names(game_mode: LoggingGameMode) -> List[str]:
    return [name for name, _ in game_mode.calls]


def hud_logins(hud: InMemoryHud) -> Dict[str, dict]:
    return dict(hud.visible)
