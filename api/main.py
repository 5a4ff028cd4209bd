import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from autoradio.config_loader import Config
from autoradio.engine.config import DEFAULT_ENGINE_CONFIG, EngineConfig, config_as_dict
from autoradio.logging_utils import configure_logging, set_session_id
from autoradio.snapshot import DEFAULT_LIMIT, recommend_from_snapshot, track_to_dict

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "AUTORADIO_CONFIG_PATH"

app = FastAPI(title="Autoradio API")

config: Optional[Config] = None
engine_config: Optional[EngineConfig] = None

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

TrackId = Union[int, str]
RawTrack = Dict[str, Any]


class AutoplayRequest(BaseModel):
    current_track: Optional[RawTrack] = Field(None, description="Now-playing track descriptor")
    queue: List[Optional[RawTrack]] = Field(default_factory=list)
    history: List[Optional[RawTrack]] = Field(
        default_factory=list,
        description="Most recent first; items may wrap a track with listen_ratio/listen_seconds/skipped",
    )
    favorites: List[Optional[RawTrack]] = Field(default_factory=list)
    trending: List[Optional[RawTrack]] = Field(default_factory=list)
    sources: List[Optional[List[Optional[RawTrack]]]] = Field(
        default_factory=list,
        description="Raw candidate lists; null lists and items contribute nothing",
    )
    played_ids: Optional[List[TrackId]] = None
    played_title_keys: Optional[List[str]] = None
    recent_artists: Optional[List[str]] = None
    trending_ids: Optional[List[TrackId]] = None
    max_plays: Optional[float] = Field(None, ge=0)
    limit: Optional[int] = Field(None, le=200, description="Non-positive limits return no tracks")
    mmr_lambda: Optional[float] = Field(None, ge=0, le=1)
    session_seed: Optional[TrackId] = Field(None, description="Used for deterministic jitter and shuffling")
    relatedness_floor: Optional[float] = None
    min_related: Optional[int] = None
    jitter_scale: Optional[float] = None


class AutoplayTrack(BaseModel):
    id: Any = None
    title: str = ""
    artists: List[str] = Field(default_factory=list)
    album: Optional[str] = None
    genre: Optional[str] = None
    duration: float = 0.0
    plays: Optional[float] = None


class AutoplayResponse(BaseModel):
    track_ids: List[Any]
    tracks: List[AutoplayTrack]
    stats: Dict[str, Any]


def _config_path() -> Optional[Path]:
    value = os.getenv(CONFIG_ENV_VAR)
    return Path(value) if value else None


def _init_services() -> None:
    """Load configuration once for the API process."""
    global config, engine_config
    if engine_config is not None:
        return

    path = _config_path()
    if path is not None:
        config = Config(str(path))
        configure_logging(level=config.log_level, log_file=config.log_file, show_session_id=config.show_session_id)
        engine_config = config.engine_config()
        logger.info("Loaded engine config from %s", path)
    else:
        configure_logging()
        engine_config = DEFAULT_ENGINE_CONFIG
        logger.info("No %s set; using engine defaults", CONFIG_ENV_VAR)


@asynccontextmanager
async def lifespan(_: FastAPI):
    _init_services()
    yield


app.router.lifespan_context = lifespan


@app.get("/api/health")
def health() -> Dict[str, Any]:
    """Report liveness and the effective engine configuration."""
    _init_services()
    path = _config_path()
    return {
        "status": "ok",
        "config_path": str(path) if path else None,
        "engine": config_as_dict(engine_config),
    }


@app.post("/api/autoplay/next", response_model=AutoplayResponse)
def autoplay_next(request: AutoplayRequest) -> AutoplayResponse:
    """
    Pick the next tracks for a playback session from the supplied candidates.
    """
    _init_services()
    assert engine_config is not None

    set_session_id(request.session_seed)
    default_limit = config.default_limit if config is not None else DEFAULT_LIMIT
    result = recommend_from_snapshot(
        request.model_dump(),
        config=engine_config,
        default_limit=default_limit,
    )

    return AutoplayResponse(
        track_ids=list(result.track_ids),
        tracks=[AutoplayTrack(**track_to_dict(t)) for t in result.tracks],
        stats=result.stats,
    )
