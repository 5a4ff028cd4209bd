"""
Session snapshot adapter shared by the API service and the CLI.

A snapshot is a plain dict (parsed JSON) describing one autoplay decision:

    {
        "current_track": {...},
        "queue": [...], "history": [...], "favorites": [...], "trending": [...],
        "sources": [[...], [...]],
        "played_ids": [...], "played_title_keys": [...], "recent_artists": [...],
        "limit": 20, "mmr_lambda": 0.7, "session_seed": "abc",
        "relatedness_floor": 0.12, "min_related": 12, "jitter_scale": 0.04,
        "max_plays": 1000
    }

Every key is optional.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

from autoradio.engine.config import DEFAULT_ENGINE_CONFIG, EngineConfig
from autoradio.engine.pipeline import AutoplayResult, recommend_next
from autoradio.engine.session import SessionContext, build_session_context
from autoradio.engine.tracks import Track

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 20


def context_from_snapshot(
    snapshot: Mapping[str, Any],
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
) -> SessionContext:
    """Build the SessionContext described by a snapshot."""
    return build_session_context(
        current_track=snapshot.get("current_track"),
        queue=snapshot.get("queue"),
        history=snapshot.get("history"),
        favorites=snapshot.get("favorites"),
        trending=snapshot.get("trending"),
        played_ids=snapshot.get("played_ids"),
        played_title_keys=snapshot.get("played_title_keys"),
        recent_artists=snapshot.get("recent_artists"),
        trending_ids=snapshot.get("trending_ids"),
        max_plays=snapshot.get("max_plays"),
        session_seed=snapshot.get("session_seed"),
        relatedness_floor=snapshot.get("relatedness_floor"),
        min_related=snapshot.get("min_related"),
        jitter_scale=snapshot.get("jitter_scale"),
        recent_artist_window=config.candidate_pool.recent_artist_window,
        candidate_sources=snapshot.get("sources"),
    )


def recommend_from_snapshot(
    snapshot: Mapping[str, Any],
    config: Optional[EngineConfig] = None,
    default_limit: int = DEFAULT_LIMIT,
) -> AutoplayResult:
    """Run one autoplay decision for a snapshot."""
    cfg = config or DEFAULT_ENGINE_CONFIG
    limit = snapshot.get("limit")
    context = context_from_snapshot(snapshot, cfg)
    return recommend_next(
        snapshot.get("sources"),
        context,
        limit=default_limit if limit is None else limit,
        config=cfg,
        mmr_lambda=snapshot.get("mmr_lambda"),
    )


def track_to_dict(track: Track) -> Dict[str, Any]:
    return {
        "id": track.id,
        "title": track.title,
        "artists": list(track.artists),
        "album": track.album,
        "genre": track.genre,
        "duration": track.duration,
        "plays": track.plays,
    }


def result_to_dict(result: AutoplayResult) -> Dict[str, Any]:
    """JSON-ready response body."""
    return {
        "track_ids": list(result.track_ids),
        "tracks": [track_to_dict(t) for t in result.tracks],
        "stats": result.stats,
    }
