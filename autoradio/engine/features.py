from __future__ import annotations

from dataclasses import dataclass
from typing import FrozenSet, Optional

from autoradio.genre_buckets import genre_bucket
from autoradio.string_utils import join_artist_names, normalize_text, tokenize

from .tracks import Track

UNKNOWN_ARTIST = "Unknown Artist"


def title_key(title: Optional[str]) -> str:
    """Normalized title used for same-song exclusion."""
    return normalize_text(title)


def artist_key(track: Optional[Track]) -> str:
    """Normalized joined artist names, with the "Unknown Artist" fallback."""
    if track is None:
        return ""
    return normalize_text(join_artist_names(track.artists, fallback=UNKNOWN_ARTIST))


def album_key(track: Optional[Track]) -> str:
    if track is None:
        return ""
    return normalize_text(track.album)


def _genre_context_text(track: Track) -> str:
    # The unknown-artist fallback must not feed genre inference
    parts = [track.title or "", join_artist_names(track.artists), track.album or ""]
    return " ".join(part for part in parts if part)


def identity_key(track: Optional[Track]) -> str:
    """
    Deduplication key for a track.

    Prefers "t:<title>|a:<artist>" when the track has a title or a declared
    artist, falls back to "id:<id>", and returns "" when neither exists
    (such a track is malformed and gets dropped).
    """
    if track is None:
        return ""
    title = title_key(track.title)
    declared_artist = normalize_text(join_artist_names(track.artists))
    if title or declared_artist:
        return f"t:{title}|a:{artist_key(track)}"
    if track.id is not None and track.id != "":
        return f"id:{track.id}"
    return ""


@dataclass(frozen=True)
class TrackFeatures:
    track: Track
    key: str
    title_key: str
    title_tokens: FrozenSet[str]
    artist_key: str
    album_key: str
    genre_bucket: str
    duration: float


def extract_features(track: Track) -> TrackFeatures:
    """Derive the canonical feature record for a track (pure, no caching)."""
    return TrackFeatures(
        track=track,
        key=identity_key(track),
        title_key=title_key(track.title),
        title_tokens=frozenset(tokenize(track.title)),
        artist_key=artist_key(track),
        album_key=album_key(track),
        genre_bucket=genre_bucket(track.genre, _genre_context_text(track)),
        duration=track.duration if track.duration > 0 else 0.0,
    )
