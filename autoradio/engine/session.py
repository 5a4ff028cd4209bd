"""
Session context for one autoplay decision.

The caller rebuilds a SessionContext before every decision. All collections
are frozen snapshots (tuples / frozensets), so mutating the caller's lists
after the call starts is never observed by the engine.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Hashable, Iterable, Mapping, Optional, Tuple

from .features import artist_key, identity_key, title_key
from .tracks import Track, track_from_raw, tracks_from_raw, tracks_from_source

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HistoryEntry:
    """
    One play in the session history.

    Attributes:
        track: The played track
        listen_ratio: Fraction of the track listened to, if known
        listen_seconds: Seconds listened, used when listen_ratio is absent
        skipped: Whether the listener skipped it
    """
    track: Track
    listen_ratio: Optional[float] = None
    listen_seconds: Optional[float] = None
    skipped: bool = False


@dataclass(frozen=True)
class SessionContext:
    current_track: Optional[Track] = None
    queue: Tuple[Track, ...] = ()
    played_ids: FrozenSet[Hashable] = frozenset()
    played_title_keys: FrozenSet[str] = frozenset()
    recent_artists: Tuple[str, ...] = ()
    favorite_ids: FrozenSet[Hashable] = frozenset()
    favorite_keys: FrozenSet[str] = frozenset()
    history: Tuple[HistoryEntry, ...] = ()  # most recent first
    trending_ids: FrozenSet[Hashable] = frozenset()
    max_plays: float = 0.0
    session_seed: Optional[Any] = None
    relatedness_floor: Optional[float] = None
    min_related: Optional[int] = None
    jitter_scale: Optional[float] = None


@dataclass(frozen=True)
class HistoryLookup:
    """First (most recent) history position per track id and identity key."""
    length: int
    index_by_id: Dict[Hashable, int] = field(default_factory=dict)
    index_by_key: Dict[str, int] = field(default_factory=dict)

    @classmethod
    def from_history(cls, history: Tuple[HistoryEntry, ...]) -> "HistoryLookup":
        by_id: Dict[Hashable, int] = {}
        by_key: Dict[str, int] = {}
        for index, entry in enumerate(history):
            track_id = entry.track.id
            if track_id is not None:
                by_id.setdefault(track_id, index)
            key = identity_key(entry.track)
            if key:
                by_key.setdefault(key, index)
        return cls(length=len(history), index_by_id=by_id, index_by_key=by_key)

    def position(self, track_id: Optional[Hashable], key: str) -> Optional[int]:
        if self.length <= 0:
            return None
        index = self.index_by_id.get(track_id) if track_id is not None else None
        if index is None and key:
            index = self.index_by_key.get(key)
        return index


def _finite_or_none(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def resolve_relatedness_floor(ctx: SessionContext, default: float) -> float:
    value = _finite_or_none(ctx.relatedness_floor)
    if value is None:
        return default
    return min(1.0, max(0.0, value))


def resolve_min_related(ctx: SessionContext, default: int, limit: int) -> int:
    value = _finite_or_none(ctx.min_related)
    if value is None:
        return min(default, limit)
    return max(0, int(value))


def _history_entry_from_raw(raw: Any) -> Optional[HistoryEntry]:
    if isinstance(raw, HistoryEntry):
        return raw
    if isinstance(raw, Mapping) and isinstance(raw.get("track"), (Mapping, Track)):
        track = track_from_raw(raw.get("track"))
        if track is None:
            return None
        return HistoryEntry(
            track=track,
            listen_ratio=_finite_or_none(raw.get("listen_ratio")),
            listen_seconds=_finite_or_none(raw.get("listen_seconds")),
            skipped=bool(raw.get("skipped", False)),
        )
    track = track_from_raw(raw)
    return HistoryEntry(track=track) if track is not None else None


def _recent_artist_keys(
    history: Iterable[HistoryEntry], window: int, current: Optional[Track]
) -> Tuple[str, ...]:
    # The now-playing artist stays eligible; coherence scoring handles it
    current_artist = artist_key(current) if current is not None else ""
    keys = []
    for entry in history:
        if len(keys) >= window:
            break
        key = artist_key(entry.track)
        if key and key != current_artist and key not in keys:
            keys.append(key)
    return tuple(keys)


def _ids(tracks: Iterable[Track]) -> FrozenSet[Hashable]:
    return frozenset(t.id for t in tracks if t.id is not None)


def build_session_context(
    *,
    current_track: Any = None,
    queue: Optional[Iterable[Any]] = None,
    history: Optional[Iterable[Any]] = None,
    favorites: Optional[Iterable[Any]] = None,
    trending: Optional[Iterable[Any]] = None,
    played_ids: Optional[Iterable[Hashable]] = None,
    played_title_keys: Optional[Iterable[str]] = None,
    recent_artists: Optional[Iterable[str]] = None,
    trending_ids: Optional[Iterable[Hashable]] = None,
    max_plays: Optional[float] = None,
    session_seed: Optional[Any] = None,
    relatedness_floor: Optional[float] = None,
    min_related: Optional[int] = None,
    jitter_scale: Optional[float] = None,
    recent_artist_window: int = 4,
    candidate_sources: Optional[Iterable[Any]] = None,
) -> SessionContext:
    """
    Build an immutable SessionContext from raw collaborator data.

    Anything not supplied explicitly is derived:
    - played ids / title keys from the current track (history tracks stay
      eligible so they can earn affinity)
    - recent artists from the most recent distinct history artists
    - trending ids from the trending pool
    - max plays from every track handed in, candidate sources included

    History items may be raw tracks, HistoryEntry objects, or mappings of
    the form {"track": {...}, "listen_ratio": .., "listen_seconds": .., "skipped": ..}.
    """
    current = track_from_raw(current_track)
    queue_tracks = tracks_from_raw(queue)
    favorite_tracks = tracks_from_raw(favorites)
    trending_tracks = tracks_from_raw(trending)
    history_entries = tuple(
        e for e in (_history_entry_from_raw(item) for item in (history or ())) if e is not None
    )
    history_tracks = [e.track for e in history_entries]

    # History is the long-term store; only the session decides what was "played"
    if played_ids is None:
        played = frozenset([current.id]) if current is not None and current.id is not None else frozenset()
    else:
        played = frozenset(i for i in played_ids if i is not None)

    if played_title_keys is None:
        current_title = title_key(current.title) if current is not None else ""
        played_titles = frozenset([current_title]) if current_title else frozenset()
    else:
        played_titles = frozenset(k for k in played_title_keys if k)

    if recent_artists is None:
        recent = _recent_artist_keys(history_entries, recent_artist_window, current)
    else:
        recent = tuple(k for k in recent_artists if k)

    trending_id_set = frozenset(trending_ids) if trending_ids is not None else _ids(trending_tracks)

    if max_plays is None:
        every_track = [*queue_tracks, *favorite_tracks, *trending_tracks, *history_tracks]
        if candidate_sources is not None and not isinstance(candidate_sources, (str, bytes, Mapping)):
            for source in candidate_sources:
                every_track.extend(tracks_from_source(source))
        if current is not None:
            every_track.append(current)
        max_plays = max((t.plays or 0.0 for t in every_track), default=0.0)

    ctx = SessionContext(
        current_track=current,
        queue=queue_tracks,
        played_ids=played,
        played_title_keys=played_titles,
        recent_artists=recent,
        favorite_ids=_ids(favorite_tracks),
        favorite_keys=frozenset(k for k in (identity_key(t) for t in favorite_tracks) if k),
        history=history_entries,
        trending_ids=trending_id_set,
        max_plays=max(0.0, _finite_or_none(max_plays) or 0.0),
        session_seed=session_seed,
        relatedness_floor=relatedness_floor,
        min_related=min_related,
        jitter_scale=jitter_scale,
    )
    logger.debug(
        "Session context: queue=%d history=%d favorites=%d trending=%d recent_artists=%d max_plays=%.0f",
        len(ctx.queue), len(ctx.history), len(ctx.favorite_ids), len(ctx.trending_ids),
        len(ctx.recent_artists), ctx.max_plays,
    )
    return ctx
