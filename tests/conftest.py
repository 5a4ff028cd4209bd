"""Test configuration and fixtures."""

import logging
import sys
from pathlib import Path

import pytest

# Add repo root to path for imports
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import autoradio.logging_utils as logging_utils
from autoradio.engine.session import build_session_context


def make_track(track_id, title, artist="X", genre=None, duration=200, plays=None, album=None, **extra):
    """Raw track record in the flat collaborator shape."""
    raw = {"id": track_id, "title": title, "artists": [artist] if artist else [], "duration": duration}
    if genre is not None:
        raw["genre"] = genre
    if plays is not None:
        raw["plays"] = plays
    if album is not None:
        raw["album"] = album
    raw.update(extra)
    return raw


@pytest.fixture()
def track():
    """Factory for raw track records."""
    return make_track


@pytest.fixture()
def current_track():
    return make_track(1, "Midnight", artist="X", genre="trap", duration=200)


@pytest.fixture()
def context_for():
    """Build a SessionContext with quiet defaults (no jitter, no seed)."""

    def _build(current=None, **kwargs):
        kwargs.setdefault("jitter_scale", 0)
        return build_session_context(current_track=current, **kwargs)

    return _build


@pytest.fixture()
def trap_pool():
    """Ten same-artist near-duplicates of the current track plus two genre-compatible alternatives."""
    same_artist = [make_track(100 + i, f"Midnight Run {i}", artist="X", genre="trap") for i in range(10)]
    alternatives = [make_track(200 + i, f"Midnight Glow {i}", artist="Y", genre="trap") for i in range(2)]
    return same_artist + alternatives


@pytest.fixture(autouse=True)
def _isolate_logging():
    """Drop handlers installed by configure_logging() so each test starts unconfigured."""
    yield
    root = logging.getLogger()
    for handler in root.handlers[:]:
        if getattr(handler, "_autoradio_handler", False):
            root.removeHandler(handler)
            handler.close()
    logging_utils._logging_configured = False  # type: ignore[attr-defined]
    logging_utils.set_session_id(None)
