"""
Relevance scoring for autoplay candidates.

score = w_sim * similarity + w_aff * affinity + w_trend * trending + w_pop * popularity

Every sub-score is clamped to [0, 1] and the blend weights sum to 1.0, so the
final score is bounded to [0, 1] as well. A skip penalty from history
(listener skipped the track) is subtracted before the final clamp.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from autoradio.string_utils import jaccard

from .config import DEFAULT_ENGINE_CONFIG, AffinityWeights, EngineConfig, RedundancyWeights, SimilarityWeights
from .features import TrackFeatures, extract_features
from .session import HistoryEntry, HistoryLookup, SessionContext
from .tracks import Track, track_from_raw

logger = logging.getLogger(__name__)


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return min(high, max(low, value))


@dataclass(frozen=True)
class AffinitySignals:
    is_favorite: bool
    history_weight: float
    listen_ratio: float
    skipped: bool
    affinity: float
    skip_penalty: float


@dataclass(frozen=True)
class ScoredCandidate:
    """Transient per-call record: a candidate with its scores and jitter."""
    track: Track
    features: TrackFeatures
    score: float
    relatedness: float
    affinity: float
    jitter: float = 0.0

    @property
    def key(self) -> str:
        return self.features.key


def similarity_to_current(
    candidate: TrackFeatures,
    current: Optional[TrackFeatures],
    weights: SimilarityWeights = DEFAULT_ENGINE_CONFIG.similarity,
) -> float:
    """Topical similarity of a candidate to the now-playing track (0 without one)."""
    if current is None:
        return 0.0

    same_artist = bool(candidate.artist_key) and candidate.artist_key == current.artist_key
    same_album = bool(candidate.album_key) and candidate.album_key == current.album_key
    same_genre = bool(candidate.genre_bucket) and candidate.genre_bucket == current.genre_bucket
    title_overlap = jaccard(candidate.title_tokens, current.title_tokens)

    duration_match = False
    if candidate.duration > 0 and current.duration > 0:
        diff = abs(candidate.duration - current.duration) / current.duration
        duration_match = diff <= weights.duration_tolerance

    return clamp(
        (weights.same_artist if same_artist else 0.0)
        + (weights.same_album if same_album else 0.0)
        + (weights.same_genre if same_genre else 0.0)
        + title_overlap * weights.title_overlap
        + (weights.duration_match if duration_match else 0.0)
    )


def pairwise_similarity(
    a: Optional[TrackFeatures],
    b: Optional[TrackFeatures],
    weights: RedundancyWeights = DEFAULT_ENGINE_CONFIG.redundancy,
) -> float:
    """Symmetric track-to-track similarity used for relatedness and MMR redundancy."""
    if a is None or b is None:
        return 0.0
    score = 0.0
    if a.artist_key and b.artist_key and a.artist_key == b.artist_key:
        score += weights.artist
    if a.album_key and b.album_key and a.album_key == b.album_key:
        score += weights.album
    if a.genre_bucket and b.genre_bucket and a.genre_bucket == b.genre_bucket:
        score += weights.genre
    score += jaccard(a.title_tokens, b.title_tokens) * weights.title_overlap
    return clamp(score)


def _listen_ratio(entry: Optional[HistoryEntry]) -> float:
    if entry is None:
        return 1.0
    if entry.listen_ratio is not None:
        return clamp(entry.listen_ratio)
    duration = entry.track.duration
    if entry.listen_seconds is not None and duration > 0:
        return clamp(entry.listen_seconds / duration)
    return 1.0


def affinity_signals(
    candidate: TrackFeatures,
    ctx: SessionContext,
    lookup: Optional[HistoryLookup] = None,
    weights: AffinityWeights = DEFAULT_ENGINE_CONFIG.affinity,
) -> AffinitySignals:
    """
    Favorite and recency-weighted history signals for a candidate.

    Recency weight = 1 - position / max(1, len(history) - 1), position 0 being
    the most recent play. The history term is scaled by the listen ratio
    (1.0 when unknown).
    """
    track_id = candidate.track.id
    key = candidate.key

    is_favorite = (track_id is not None and track_id in ctx.favorite_ids) or (
        bool(key) and key in ctx.favorite_keys
    )

    lookup = lookup if lookup is not None else HistoryLookup.from_history(ctx.history)
    position = lookup.position(track_id, key)

    history_weight = 0.0
    entry = None
    if position is not None:
        history_weight = 1.0 - (position / max(1, lookup.length - 1))
        entry = ctx.history[position]

    ratio = _listen_ratio(entry)
    skipped = bool(entry is not None and entry.skipped)
    skip_penalty = (
        weights.skip_penalty * max(0.35, 1.0 - ratio) * (0.6 + history_weight * 0.4)
        if skipped
        else 0.0
    )

    affinity = clamp(
        (weights.favorite if is_favorite else 0.0)
        + history_weight * weights.history * ratio
    )
    return AffinitySignals(
        is_favorite=bool(is_favorite),
        history_weight=history_weight,
        listen_ratio=ratio,
        skipped=skipped,
        affinity=affinity,
        skip_penalty=skip_penalty,
    )


def score_features(
    candidate: TrackFeatures,
    ctx: SessionContext,
    current: Optional[TrackFeatures],
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
    lookup: Optional[HistoryLookup] = None,
    signals: Optional[AffinitySignals] = None,
) -> float:
    """Relevance score for pre-extracted features; see score_track()."""
    weights = config.scoring

    similarity = similarity_to_current(candidate, current, config.similarity)
    if signals is None:
        signals = affinity_signals(candidate, ctx, lookup, config.affinity)

    track_id = candidate.track.id
    trending = clamp(weights.trending_boost) if track_id is not None and track_id in ctx.trending_ids else 0.0

    popularity = 0.0
    if ctx.max_plays and ctx.max_plays > 0:
        popularity = clamp((candidate.track.plays or 0.0) / ctx.max_plays)

    score = (
        weights.similarity * similarity
        + weights.affinity * signals.affinity
        + weights.trending * trending
        + weights.popularity * popularity
        - signals.skip_penalty
    )
    return clamp(score)


def score_track(
    candidate: Any,
    ctx: SessionContext,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
) -> float:
    """
    Score one candidate against the session (usable standalone for diagnostics).

    Args:
        candidate: Track or raw track record
        ctx: Session context (current track, favorites, history, trending, max plays)
        config: Engine weights

    Returns:
        Relevance in [0, 1]; 0.0 for an unusable candidate
    """
    track = track_from_raw(candidate)
    if track is None:
        return 0.0
    current = extract_features(ctx.current_track) if ctx.current_track is not None else None
    return score_features(extract_features(track), ctx, current, config)
