"""
Autoplay pipeline: candidate pool -> MMR rerank.

Callers build a SessionContext per decision (build_session_context) and hand
in the raw candidate lists gathered from their collaborators.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Hashable, Iterable, List, Optional

from autoradio.logging_utils import stage_timer

from .candidate_pool import build_candidate_pool
from .config import DEFAULT_ENGINE_CONFIG, EngineConfig
from .reranker import rerank_candidates
from .session import SessionContext
from .tracks import Track

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AutoplayResult:
    """
    Outcome of one autoplay decision.

    Attributes:
        tracks: Ordered tracks to append to the queue
        track_ids: Their ids (None for tracks without one)
        stats: Pool and rerank diagnostics plus per-stage timings (ms)
    """
    tracks: List[Track]
    track_ids: List[Optional[Hashable]]
    stats: Dict[str, Any] = field(default_factory=dict)


def recommend_next(
    sources: Optional[Iterable[Any]],
    context: SessionContext,
    limit: int = 20,
    config: Optional[EngineConfig] = None,
    mmr_lambda: Optional[float] = None,
) -> AutoplayResult:
    """
    Choose the next tracks for the session.

    Args:
        sources: Raw candidate lists (each a list of tracks or raw records)
        context: Session context for this decision
        limit: Number of tracks wanted
        config: Engine configuration (defaults when None)
        mmr_lambda: Optional override of config.rerank.mmr_lambda

    Returns:
        AutoplayResult; empty when nothing survives filtering or limit <= 0
    """
    cfg = config or DEFAULT_ENGINE_CONFIG
    timings: Dict[str, float] = {}

    with stage_timer("candidate_pool", logger, timings):
        pool = build_candidate_pool(
            sources=sources,
            current_track=context.current_track,
            queue=context.queue,
            played_ids=context.played_ids,
            played_title_keys=context.played_title_keys,
            recent_artists=context.recent_artists,
            limit=cfg.candidate_pool.capacity,
        )

    with stage_timer("rerank", logger, timings):
        reranked = rerank_candidates(
            pool.tracks, context, limit=limit, mmr_lambda=mmr_lambda, config=cfg,
        )

    tracks = reranked.tracks
    stats = {
        "pool": pool.stats,
        "rerank": reranked.stats,
        "timings_ms": timings,
    }
    logger.info(
        "Autoplay: pool=%d selected=%d/%s (%.1fms)",
        len(pool.tracks), len(tracks), limit, sum(timings.values()),
    )
    return AutoplayResult(
        tracks=tracks,
        track_ids=[t.id for t in tracks],
        stats=stats,
    )
