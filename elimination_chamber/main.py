"""
FastAPI main application
Elimination Chamber - session server for last-player-standing sessions

Modular architecture with separated API routers in elimination_chamber/api/:
- health.py: Health check and system status
- admin.py: Operator commands (start/stop session, lives, next map, status)
- events.py: Host event callbacks (map begin/end, player join/leave)
- config.py: Configuration retrieval

All routers reach the session through app.state.lifecycle, built once per
process in create_app()/lifespan.
"""
from fastapi import FastAPI
from contextlib import asynccontextmanager
from typing import Optional
import logging

from elimination_chamber.config import load_config_or_default, resolve_config_path
from elimination_chamber.models import ChamberConfig
from elimination_chamber.services.exchange_client import MapExchangeClient
from elimination_chamber.services.host import GameMode, InMemoryHud, LoggingGameMode
from elimination_chamber.services.map_queue import MapQueue
from elimination_chamber.services.pipeline import MapAcquisitionPipeline
from elimination_chamber.services.playlist import MatchSettingsPlaylist
from elimination_chamber.services.session import SessionLifecycle
from elimination_chamber.services.storage import LocalMapStorage

# Import all API routers
from elimination_chamber.api import health, admin, events
from elimination_chamber.api import config as config_router


# Setup logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def build_lifecycle(
    config: ChamberConfig,
    *,
    client: Optional[MapExchangeClient] = None,
    game_mode: Optional[GameMode] = None,
    hud: Optional[InMemoryHud] = None,
) -> SessionLifecycle:
    """
    Wire the session lifecycle and its pipeline from configuration

    Args:
        config: Server configuration
        client: Map exchange client (default: built from config.exchange)
        game_mode: Host game mode adapter (default: LoggingGameMode)
        hud: Player HUD (default: InMemoryHud)
    """
    storage = LocalMapStorage(config.maps_path)
    storage.scan()

    pipeline = MapAcquisitionPipeline(
        client=client or MapExchangeClient(config.exchange),
        queue=MapQueue(),
        storage=storage,
        playlist=MatchSettingsPlaylist(config.playlist_path),
        filters=config.search_filters,
    )
    return SessionLifecycle(
        config=config,
        pipeline=pipeline,
        game_mode=game_mode or LoggingGameMode(),
        hud=hud if hud is not None else InMemoryHud(),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events"""
    # Startup: build the session service unless one was injected
    if app.state.lifecycle is None:
        try:
            config = load_config_or_default(app.state.config_path)
        except Exception as e:
            logger.error(f"❌ Failed to load config {resolve_config_path(app.state.config_path)}: {e}")
            raise
        players = InMemoryHud()
        app.state.players = players
        app.state.lifecycle = build_lifecycle(config, hud=players)
        logger.info("✅ Session server started")

    yield

    # Shutdown: a running session does not survive the process
    lifecycle = app.state.lifecycle
    lifecycle.stop()
    lifecycle.pipeline.client.close()
    logger.info("🛑 Server shutting down")


def create_app(
    lifecycle: Optional[SessionLifecycle] = None,
    config_path: Optional[str] = None,
) -> FastAPI:
    """
    Create the FastAPI application

    Args:
        lifecycle: Prebuilt session lifecycle (tests, custom host adapters)
        config_path: YAML config path, default $CHAMBER_CONFIG or
            config/elimination_chamber.yaml
    """
    app = FastAPI(
        title="Elimination Chamber - Session Server",
        description="Last-player-standing sessions with maps from the map exchange",
        version="1.0.0",
        lifespan=lifespan
    )
    app.state.lifecycle = lifecycle
    app.state.config_path = config_path
    app.state.players = lifecycle.hud if lifecycle is not None and isinstance(lifecycle.hud, InMemoryHud) else None

    # ==================== INCLUDE ROUTERS ====================

    # Health check (GET /)
    app.include_router(health.router)

    # Admin endpoints (POST /admin/start, /admin/stop, ...)
    app.include_router(admin.router)

    # Host events (POST /events/map-begin, ...)
    app.include_router(events.router)

    # Config endpoint (GET /config)
    app.include_router(config_router.router)

    return app


app = create_app()


# ==================== RUN SERVER ====================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
