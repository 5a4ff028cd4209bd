"""
Canonical track records and the adapters that build them from raw shapes.

Candidate lists arrive from several collaborators (recommendation results,
trending lists, history/favorites stores) and disagree on field layout:
artists as a string, a list of strings or a list of objects; genres as a
string or a nested object; album as a string or an object. Every raw
record is mapped exactly once, at ingestion, by track_from_raw(). Nothing
downstream inspects raw fields.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Hashable, Iterable, List, Mapping, Optional, Tuple

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Track:
    id: Optional[Hashable]
    title: str = ""
    artists: Tuple[str, ...] = ()
    album: Optional[str] = None
    genre: Optional[str] = None
    duration: float = 0.0
    plays: Optional[float] = None
    has_artwork: bool = False
    raw: Any = field(default=None, compare=False, hash=False, repr=False)


def _to_number(value: Any) -> float:
    """Coerce to a finite float; anything else becomes 0.0."""
    if isinstance(value, bool) or value is None:
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def _name_of(value: Any) -> str:
    """Name of a string-or-object field ({"name": ...} / {"title": ...})."""
    if isinstance(value, str):
        return value
    if isinstance(value, Mapping):
        name = value.get("name") or value.get("title")
        return name if isinstance(name, str) else ""
    return ""


def _artists_from_raw(raw: Mapping[str, Any]) -> Tuple[str, ...]:
    artists = raw.get("artists")
    if isinstance(artists, (list, tuple)) and artists:
        names = tuple(name for name in (_name_of(a) for a in artists) if name)
        if names:
            return names
    single = _name_of(raw.get("artist"))
    return (single,) if single else ()


def _album_from_raw(raw: Mapping[str, Any]) -> Optional[str]:
    album = raw.get("album")
    if isinstance(album, Mapping):
        title = album.get("title") or album.get("name")
        return title if isinstance(title, str) and title else None
    return album if isinstance(album, str) and album else None


def _first_genre(genres: Any) -> str:
    if isinstance(genres, (list, tuple)) and genres:
        return _name_of(genres[0])
    return ""


def _genre_from_raw(raw: Mapping[str, Any]) -> Optional[str]:
    genre = _name_of(raw.get("genre"))
    if genre:
        return genre
    album = raw.get("album")
    if isinstance(album, Mapping):
        genre = _name_of(album.get("genre")) or _first_genre(album.get("genres"))
        if genre:
            return genre
    return _first_genre(raw.get("genres")) or None


def _plays_from_raw(raw: Mapping[str, Any]) -> Optional[float]:
    for key in ("plays", "play_count", "playcount"):
        if raw.get(key) is not None:
            return max(0.0, _to_number(raw.get(key)))
    return None


def _has_artwork(raw: Mapping[str, Any]) -> bool:
    if raw.get("cover") or raw.get("artwork"):
        return True
    album = raw.get("album")
    return isinstance(album, Mapping) and bool(album.get("cover"))


def _id_from_raw(raw: Mapping[str, Any]) -> Optional[Hashable]:
    for key in ("id", "track_id"):
        value = raw.get(key)
        if value is None or value == "":
            continue
        if isinstance(value, Hashable):
            return value
        return str(value)
    return None


def _track_from_mapping(raw: Mapping[str, Any]) -> Track:
    title = raw.get("title")
    if not isinstance(title, str):
        title = raw.get("name") if isinstance(raw.get("name"), str) else ""
    return Track(
        id=_id_from_raw(raw),
        title=title,
        artists=_artists_from_raw(raw),
        album=_album_from_raw(raw),
        genre=_genre_from_raw(raw),
        duration=max(0.0, _to_number(raw.get("duration"))),
        plays=_plays_from_raw(raw),
        has_artwork=_has_artwork(raw),
        raw=raw,
    )


def track_from_raw(raw: Any) -> Optional[Track]:
    """
    Map a raw track record into a canonical Track.

    Args:
        raw: A Track (returned as-is) or a mapping in any supported shape

    Returns:
        Track, or None when the value cannot describe a track
    """
    if raw is None:
        return None
    if isinstance(raw, Track):
        return raw
    if isinstance(raw, Mapping):
        return _track_from_mapping(raw)
    logger.debug("Ignoring unsupported raw track of type %s", type(raw).__name__)
    return None


def tracks_from_source(source: Any) -> List[Track]:
    """
    Adapt one raw candidate list.

    None, non-list values and unadaptable items contribute nothing.
    """
    if not isinstance(source, (list, tuple)):
        if source is not None:
            logger.debug("Ignoring candidate source of type %s", type(source).__name__)
        return []
    tracks = []
    for raw in source:
        track = track_from_raw(raw)
        if track is not None:
            tracks.append(track)
    return tracks


def tracks_from_raw(items: Optional[Iterable[Any]]) -> Tuple[Track, ...]:
    """Adapt an optional iterable of raw tracks into an immutable tuple."""
    if items is None or isinstance(items, (str, bytes, Mapping)):
        return ()
    return tuple(t for t in (track_from_raw(item) for item in items) if t is not None)
