"""
Per-call pseudo-random source for tie-breaking jitter and local shuffling.

A SessionRandom is built fresh for every rerank call and never shared. With
a session seed it is fully deterministic: the seed is folded into 32-bit
state (numbers by truncation, anything else by FNV-1a over its UTF-16 code
units) and each draw advances the state with a mulberry32 mixing step.
Without a seed it draws from numpy's default generator.
"""
from __future__ import annotations

import math
from typing import Any, List, MutableSequence, Optional

import numpy as np

_MASK32 = 0xFFFFFFFF
_FNV_OFFSET = 2166136261
_FNV_PRIME = 16777619
_MULBERRY_INCREMENT = 0x6D2B79F5
_TWO_POW_32 = 4294967296.0


def _imul(a: int, b: int) -> int:
    """Low 32 bits of a 32-bit integer product."""
    return (a * b) & _MASK32


def _utf16_units(text: str) -> List[int]:
    data = text.encode("utf-16-le", errors="surrogatepass")
    return [data[i] | (data[i + 1] << 8) for i in range(0, len(data), 2)]


def has_seed(seed: Any) -> bool:
    """A seed counts as supplied unless it is None or an empty string."""
    return seed is not None and seed != ""


def hash_seed(seed: Any) -> int:
    """Fold a session seed (number or anything stringable) into 32-bit state."""
    if isinstance(seed, (int, float)) and not isinstance(seed, bool) and math.isfinite(seed):
        return int(seed) & _MASK32
    text = "" if seed is None else str(seed)
    state = _FNV_OFFSET
    for unit in _utf16_units(text):
        state ^= unit
        state = _imul(state, _FNV_PRIME)
    return state & _MASK32


def resolve_jitter_scale(value: Any, default: float = 0.04, maximum: float = 0.15) -> float:
    """Jitter magnitude from session context: non-finite -> default, clamped to [0, maximum]."""
    if value is None or isinstance(value, bool):
        return default
    try:
        scale = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(scale):
        return default
    return min(maximum, max(0.0, scale))


class SessionRandom:
    """Uniform [0, 1) source, deterministic when seeded."""

    def __init__(self, seed: Optional[Any] = None):
        self.seed = seed
        self.seeded = has_seed(seed)
        self._state = hash_seed(seed) if self.seeded else 0
        self._fallback = None if self.seeded else np.random.default_rng()

    def random(self) -> float:
        if not self.seeded:
            return float(self._fallback.random())
        self._state = (self._state + _MULBERRY_INCREMENT) & _MASK32
        t = self._state
        t = _imul(t ^ (t >> 15), t | 1)
        t ^= (t + _imul(t ^ (t >> 7), t | 61)) & _MASK32
        return ((t ^ (t >> 14)) & _MASK32) / _TWO_POW_32

    def jitter(self, scale: float) -> float:
        """Centered jitter in [-scale/2, scale/2); no draw is consumed when scale is 0."""
        if scale <= 0:
            return 0.0
        return (self.random() - 0.5) * scale

    def shuffle_windows(self, items: MutableSequence[Any], window: int = 5) -> None:
        """
        In-place Fisher-Yates shuffle restricted to consecutive, non-overlapping
        windows, so short-range order varies while the overall trend survives.
        """
        if window < 2:
            return
        for start in range(0, len(items), window):
            end = min(len(items), start + window)
            for i in range(end - 1, start, -1):
                j = start + int(self.random() * (i - start + 1))
                items[i], items[j] = items[j], items[i]
