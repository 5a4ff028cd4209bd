from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, Hashable, Iterable, List, Mapping, Optional

from autoradio.logging_utils import truncate_list
from autoradio.string_utils import normalize_text

from .features import TrackFeatures, extract_features, title_key
from .tracks import Track, track_from_raw, tracks_from_raw, tracks_from_source

logger = logging.getLogger(__name__)

DEFAULT_POOL_CAPACITY = 300

# Exclusion reasons, also used as stats keys
EXCLUDE_NO_KEY = "no_identity_key"
EXCLUDE_CURRENT = "current_track"
EXCLUDE_QUEUED = "already_queued"
EXCLUDE_PLAYED = "already_played"
EXCLUDE_SAME_TITLE = "same_title"
EXCLUDE_RECENT_ARTIST = "recent_artist"
EXCLUDE_GENRE = "genre_mismatch"
EXCLUDE_CAPACITY = "over_capacity"


@dataclass(frozen=True)
class CandidatePoolResult:
    """
    Deduplicated, filtered candidates in first-accepted order.

    Attributes:
        tracks: Accepted tracks (the best-known record per identity key)
        features: Features for each accepted track, aligned with tracks
        stats: Exclusion counters and source sizes
    """
    tracks: List[Track]
    features: List[TrackFeatures]
    stats: Dict[str, Any] = field(default_factory=dict)


def _play_count(track: Track) -> float:
    return track.plays or 0.0


def should_replace(incoming: Track, existing: Track) -> bool:
    """
    Completeness tie-break between two records sharing an identity key.

    Prefers strictly more plays, then a known positive duration, then
    artwork; otherwise the existing record is kept.
    """
    incoming_plays = _play_count(incoming)
    existing_plays = _play_count(existing)
    if incoming_plays != existing_plays:
        return incoming_plays > existing_plays

    incoming_duration = incoming.duration > 0
    existing_duration = existing.duration > 0
    if incoming_duration != existing_duration:
        return incoming_duration

    return incoming.has_artwork and not existing.has_artwork


def build_candidate_pool(
    *,
    sources: Optional[Iterable[Any]],
    current_track: Any = None,
    queue: Optional[Iterable[Any]] = None,
    played_ids: Optional[Iterable[Hashable]] = None,
    played_title_keys: Optional[Iterable[str]] = None,
    recent_artists: Optional[Iterable[str]] = None,
    limit: int = DEFAULT_POOL_CAPACITY,
) -> CandidatePoolResult:
    """
    Merge raw candidate lists into one deduplicated, filtered pool.

    For each track, in source order:
    - tracks without an identity key are dropped
    - a repeated key may replace the stored record (should_replace); such an
      update is not re-filtered
    - a new key is rejected if it is the current track, already queued or
      played (by id or title key), by a cooled-down artist, or outside the
      current track's genre bucket without sharing its artist
    - accepted tracks are inserted while the pool is below capacity

    Absent or empty sources contribute nothing; nothing here raises on
    incomplete input.
    """
    # Snapshot every input before iterating so caller mutation is never observed
    if sources is None or isinstance(sources, (str, bytes, Mapping)):
        sources = ()
    source_lists = [tracks_from_source(s) for s in list(sources)]
    capacity = DEFAULT_POOL_CAPACITY if limit is None else max(0, int(limit))

    current = track_from_raw(current_track)
    current_features = extract_features(current) if current is not None else None
    current_id = current.id if current is not None else None
    current_key = current_features.key if current_features is not None else ""
    current_title = current_features.title_key if current_features is not None else ""
    current_artist = current_features.artist_key if current_features is not None else ""
    current_genre = current_features.genre_bucket if current_features is not None else ""

    queue_tracks = tracks_from_raw(queue)
    queued_ids = {t.id for t in queue_tracks if t.id is not None}
    queued_titles = {k for k in (title_key(t.title) for t in queue_tracks) if k}
    played = frozenset(i for i in (played_ids or ()) if i is not None)
    played_titles = frozenset(k for k in (played_title_keys or ()) if k)
    recent_artist_set = frozenset(k for k in (normalize_text(a) for a in (recent_artists or ())) if k)

    by_key: Dict[str, TrackFeatures] = {}
    excluded: Counter = Counter()
    replaced = 0

    def _exclusion_reason(feat: TrackFeatures) -> Optional[str]:
        track = feat.track
        if (current_id is not None and track.id == current_id) or (current_key and feat.key == current_key):
            return EXCLUDE_CURRENT
        if track.id is not None:
            if track.id in queued_ids:
                return EXCLUDE_QUEUED
            if track.id in played:
                return EXCLUDE_PLAYED
        if feat.title_key:
            if current_title and feat.title_key == current_title:
                return EXCLUDE_SAME_TITLE
            if feat.title_key in queued_titles:
                return EXCLUDE_QUEUED
            if feat.title_key in played_titles:
                return EXCLUDE_PLAYED
        if feat.artist_key and feat.artist_key in recent_artist_set:
            return EXCLUDE_RECENT_ARTIST
        if current_genre and feat.genre_bucket != current_genre and feat.artist_key != current_artist:
            return EXCLUDE_GENRE
        return None

    for tracks in source_lists:
        for track in tracks:
            feat = extract_features(track)
            if not feat.key:
                excluded[EXCLUDE_NO_KEY] += 1
                continue

            existing = by_key.get(feat.key)
            if existing is not None:
                if should_replace(track, existing.track):
                    by_key[feat.key] = feat
                    replaced += 1
                continue

            reason = _exclusion_reason(feat)
            if reason is not None:
                excluded[reason] += 1
                continue

            if len(by_key) >= capacity:
                excluded[EXCLUDE_CAPACITY] += 1
                continue

            by_key[feat.key] = feat

    features = list(by_key.values())
    stats = {
        "sources": len(source_lists),
        "raw_candidates": sum(len(s) for s in source_lists),
        "admitted": len(features),
        "replaced": replaced,
        "capacity": capacity,
        "current_genre": current_genre,
        "excluded": dict(excluded),
    }
    logger.info(
        "Candidate pool: sources=%d raw=%d admitted=%d replaced=%d excluded=%d genre=%s",
        stats["sources"], stats["raw_candidates"], stats["admitted"], replaced,
        sum(excluded.values()), current_genre or "unknown",
    )
    if logger.isEnabledFor(logging.DEBUG):
        logger.debug("Candidate pool head: %s", truncate_list([f.key for f in features], max_items=5))
        if excluded:
            logger.debug("Candidate pool exclusions: %s", dict(excluded.most_common()))

    return CandidatePoolResult(
        tracks=[f.track for f in features],
        features=features,
        stats=stats,
    )


def build_candidates(
    sources: Optional[Iterable[Any]],
    current_track: Any = None,
    queue: Optional[Iterable[Any]] = None,
    played_ids: Optional[Iterable[Hashable]] = None,
    played_title_keys: Optional[Iterable[str]] = None,
    recent_artists: Optional[Iterable[str]] = None,
    limit: int = DEFAULT_POOL_CAPACITY,
) -> List[Track]:
    """Candidate list only; see build_candidate_pool() for the stats-bearing variant."""
    return build_candidate_pool(
        sources=sources,
        current_track=current_track,
        queue=queue,
        played_ids=played_ids,
        played_title_keys=played_title_keys,
        recent_artists=recent_artists,
        limit=limit,
    ).tracks

