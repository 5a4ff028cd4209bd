"""
Diversity-aware reranking (Maximal Marginal Relevance) for autoplay.

Pipeline per call:
1. Score every candidate (relevance, relatedness to the current track,
   affinity) and draw its session jitter.
2. Keep the "related" pool (relatedness >= floor, or any affinity) when it
   is large enough; otherwise fall back to every candidate.
3. Sort by relevance, jitter breaking ties.
4. Greedily pick argmax(lambda * relevance - (1 - lambda) * max_sim_to_selected + jitter).
5. With a session seed, shuffle inside consecutive windows of the output.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from .config import DEFAULT_ENGINE_CONFIG, EngineConfig
from .features import TrackFeatures, extract_features
from .randomizer import SessionRandom, resolve_jitter_scale
from .scoring import ScoredCandidate, affinity_signals, pairwise_similarity, score_features
from .session import HistoryLookup, SessionContext, resolve_min_related, resolve_relatedness_floor
from .tracks import Track, track_from_raw

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RerankResult:
    selected: List[ScoredCandidate]
    stats: Dict[str, Any] = field(default_factory=dict)

    @property
    def tracks(self) -> List[Track]:
        return [item.track for item in self.selected]


def _unique_features(candidates: Iterable[Any]) -> List[TrackFeatures]:
    """Adapt candidates, dropping unusable ones and repeated identity keys (first wins)."""
    seen = set()
    unique = []
    for raw in candidates:
        track = track_from_raw(raw)
        if track is None:
            continue
        feat = extract_features(track)
        if not feat.key or feat.key in seen:
            continue
        seen.add(feat.key)
        unique.append(feat)
    return unique


def _narrow_to_current_genre(
    pool: List[TrackFeatures],
    current: Optional[TrackFeatures],
    minimum: Optional[int],
) -> List[TrackFeatures]:
    if minimum is None or current is None or not current.genre_bucket:
        return pool
    same_genre = [f for f in pool if f.genre_bucket == current.genre_bucket]
    return same_genre if len(same_genre) >= minimum else pool


def rerank_candidates(
    candidates: Optional[Iterable[Any]],
    ctx: SessionContext,
    limit: int = 20,
    mmr_lambda: Optional[float] = None,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
) -> RerankResult:
    """
    MMR selection returning the scored picks and diagnostics.

    Args:
        candidates: Tracks or raw track records (typically the candidate pool)
        ctx: Session context
        limit: Maximum number of tracks to return; non-positive yields nothing
        mmr_lambda: Relevance/diversity trade-off (default from config, 0.7)
        config: Engine weights and rerank defaults

    Returns:
        RerankResult with at most min(limit, unique candidates) selections
    """
    limit = int(limit) if limit is not None else 0
    if candidates is None or isinstance(candidates, (str, bytes)):
        candidates = ()
    pool_features = _unique_features(list(candidates))
    if limit <= 0 or not pool_features:
        return RerankResult(selected=[], stats={"input": len(pool_features), "selected": 0})

    rerank_cfg = config.rerank
    lam = rerank_cfg.mmr_lambda if mmr_lambda is None else min(1.0, max(0.0, float(mmr_lambda)))

    rng = SessionRandom(ctx.session_seed)
    jitter_scale = resolve_jitter_scale(ctx.jitter_scale, rerank_cfg.jitter, rerank_cfg.max_jitter)
    relatedness_floor = resolve_relatedness_floor(ctx, rerank_cfg.relatedness_floor)
    min_related = resolve_min_related(ctx, rerank_cfg.min_related, limit)

    current = extract_features(ctx.current_track) if ctx.current_track is not None else None
    lookup = HistoryLookup.from_history(ctx.history)

    pool_features = _narrow_to_current_genre(pool_features, current, rerank_cfg.min_same_genre_candidates)

    scored: List[ScoredCandidate] = []
    for feat in pool_features:
        signals = affinity_signals(feat, ctx, lookup, config.affinity)
        scored.append(ScoredCandidate(
            track=feat.track,
            features=feat,
            score=score_features(feat, ctx, current, config, lookup, signals),
            relatedness=pairwise_similarity(feat, current, config.redundancy),
            affinity=signals.affinity,
            jitter=rng.jitter(jitter_scale),
        ))

    related = [c for c in scored if c.relatedness >= relatedness_floor or c.affinity > 0]
    use_related_only = len(related) >= min(min_related, limit)
    pool = related if use_related_only else list(scored)

    # Stable sort: equal (score, jitter) pairs keep encounter order
    pool.sort(key=lambda c: (-c.score, -c.jitter))

    selected: List[ScoredCandidate] = []
    while len(selected) < limit and pool:
        best_index = 0
        best_mmr = float("-inf")
        best_base = float("-inf")
        for index, item in enumerate(pool):
            max_sim = 0.0
            for chosen in selected:
                sim = pairwise_similarity(item.features, chosen.features, config.redundancy)
                if sim > max_sim:
                    max_sim = sim
            mmr = lam * item.score - (1.0 - lam) * max_sim + item.jitter
            if mmr > best_mmr or (mmr == best_mmr and item.score > best_base):
                best_mmr = mmr
                best_base = item.score
                best_index = index
        selected.append(pool.pop(best_index))

    shuffled = False
    if rng.seeded and len(selected) > 1:
        rng.shuffle_windows(selected, rerank_cfg.shuffle_window)
        shuffled = True

    stats = {
        "input": len(scored),
        "related": len(related),
        "used_related_only": use_related_only,
        "relatedness_floor": relatedness_floor,
        "min_related": min_related,
        "jitter_scale": jitter_scale,
        "lambda": lam,
        "seeded": rng.seeded,
        "window_shuffled": shuffled,
        "selected": len(selected),
    }
    logger.info(
        "MMR rerank: input=%d related=%d related_only=%s lambda=%.2f selected=%d seeded=%s",
        len(scored), len(related), use_related_only, lam, len(selected), rng.seeded,
    )
    if logger.isEnabledFor(logging.DEBUG):
        for position, item in enumerate(selected):
            logger.debug(
                "  #%d %s | score=%.3f related=%.3f affinity=%.3f jitter=%+.4f",
                position + 1, item.key, item.score, item.relatedness, item.affinity, item.jitter,
            )

    return RerankResult(selected=selected, stats=stats)


def rank_with_mmr(
    candidates: Optional[Iterable[Any]],
    ctx: SessionContext,
    limit: int = 20,
    mmr_lambda: Optional[float] = None,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
) -> List[Track]:
    """Ordered autoplay tracks; see rerank_candidates() for scores and stats."""
    return rerank_candidates(candidates, ctx, limit=limit, mmr_lambda=mmr_lambda, config=config).tracks
