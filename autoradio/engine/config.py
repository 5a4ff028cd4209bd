from __future__ import annotations

import math
from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, Optional

_WEIGHT_SUM_TOLERANCE = 1e-6


def _require_non_negative(section: str, values: Dict[str, float]) -> None:
    for name, value in values.items():
        if not isinstance(value, (int, float)) or not math.isfinite(value) or value < 0:
            raise ValueError(f"{section}.{name} must be a finite non-negative number (got {value!r})")


@dataclass(frozen=True)
class SimilarityWeights:
    """Per-feature weights of the similarity sub-score (candidate vs current track)."""
    same_artist: float = 1.0
    same_album: float = 0.3
    same_genre: float = 0.8
    title_overlap: float = 0.1
    duration_match: float = 0.05
    duration_tolerance: float = 0.15  # relative difference still counted as a match

    def __post_init__(self) -> None:
        _require_non_negative("similarity", {f.name: getattr(self, f.name) for f in fields(self)})


@dataclass(frozen=True)
class RedundancyWeights:
    """Pairwise track similarity used for relatedness and MMR redundancy."""
    artist: float = 0.55
    album: float = 0.15
    genre: float = 0.2
    title_overlap: float = 0.1

    def __post_init__(self) -> None:
        _require_non_negative("redundancy", {f.name: getattr(self, f.name) for f in fields(self)})


@dataclass(frozen=True)
class AffinityWeights:
    favorite: float = 0.5
    history: float = 0.3
    skip_penalty: float = 0.7

    def __post_init__(self) -> None:
        _require_non_negative("affinity", {f.name: getattr(self, f.name) for f in fields(self)})


@dataclass(frozen=True)
class ScoringWeights:
    """Top-level blend of the four relevance sub-scores (must sum to 1.0)."""
    similarity: float = 0.55
    affinity: float = 0.20
    trending: float = 0.10
    popularity: float = 0.15
    trending_boost: float = 0.2  # trending sub-score for a trending candidate

    def __post_init__(self) -> None:
        blend = {
            "similarity": self.similarity,
            "affinity": self.affinity,
            "trending": self.trending,
            "popularity": self.popularity,
        }
        _require_non_negative("scoring", {**blend, "trending_boost": self.trending_boost})
        total = sum(blend.values())
        if abs(total - 1.0) > _WEIGHT_SUM_TOLERANCE:
            raise ValueError(f"scoring weights must sum to 1.0 (got {total:.6f})")


@dataclass(frozen=True)
class CandidatePoolConfig:
    capacity: int = 300
    recent_artist_window: int = 4  # distinct artists kept in the cooldown list

    def __post_init__(self) -> None:
        if int(self.capacity) < 0:
            raise ValueError(f"candidate_pool.capacity must be >= 0 (got {self.capacity})")
        if int(self.recent_artist_window) < 0:
            raise ValueError(
                f"candidate_pool.recent_artist_window must be >= 0 (got {self.recent_artist_window})"
            )


@dataclass(frozen=True)
class RerankConfig:
    """
    MMR reranking defaults.

    Session-level knobs (relatedness floor, min related, jitter) can also be
    set per session on SessionContext; these values apply when it does not.
    """
    mmr_lambda: float = 0.7
    shuffle_window: int = 5
    relatedness_floor: float = 0.12
    min_related: int = 12
    jitter: float = 0.04
    max_jitter: float = 0.15
    min_same_genre_candidates: Optional[int] = None

    def __post_init__(self) -> None:
        if not 0.0 <= float(self.mmr_lambda) <= 1.0:
            raise ValueError(f"rerank.mmr_lambda must be within [0, 1] (got {self.mmr_lambda})")
        if int(self.shuffle_window) < 1:
            raise ValueError(f"rerank.shuffle_window must be >= 1 (got {self.shuffle_window})")
        if self.max_jitter < 0:
            raise ValueError(f"rerank.max_jitter must be >= 0 (got {self.max_jitter})")
        if self.min_same_genre_candidates is not None and self.min_same_genre_candidates < 0:
            raise ValueError(
                f"rerank.min_same_genre_candidates must be >= 0 (got {self.min_same_genre_candidates})"
            )


@dataclass(frozen=True)
class EngineConfig:
    candidate_pool: CandidatePoolConfig = field(default_factory=CandidatePoolConfig)
    similarity: SimilarityWeights = field(default_factory=SimilarityWeights)
    redundancy: RedundancyWeights = field(default_factory=RedundancyWeights)
    affinity: AffinityWeights = field(default_factory=AffinityWeights)
    scoring: ScoringWeights = field(default_factory=ScoringWeights)
    rerank: RerankConfig = field(default_factory=RerankConfig)


DEFAULT_ENGINE_CONFIG = EngineConfig()

_SECTIONS = ("candidate_pool", "similarity", "redundancy", "affinity", "scoring", "rerank")


def default_engine_config(overrides: Optional[Dict[str, Any]] = None) -> EngineConfig:
    """
    Return the engine defaults with optional per-section overrides.

    Args:
        overrides: Dict shaped like the `engine:` section of config.yaml, e.g.
            {"scoring": {"similarity": 0.6, "affinity": 0.15}, "rerank": {"mmr_lambda": 0.5}}

    Raises:
        ValueError: unknown section/key, or values failing validation
    """
    if not overrides:
        return DEFAULT_ENGINE_CONFIG

    unknown = set(overrides) - set(_SECTIONS)
    if unknown:
        raise ValueError(f"Unknown engine config section(s): {', '.join(sorted(unknown))}")

    updates: Dict[str, Any] = {}
    for section in _SECTIONS:
        section_overrides = overrides.get(section)
        if not section_overrides:
            continue
        if not isinstance(section_overrides, dict):
            raise ValueError(f"engine.{section} must be a mapping")
        current = getattr(DEFAULT_ENGINE_CONFIG, section)
        known = {f.name for f in fields(current)}
        bad_keys = set(section_overrides) - known
        if bad_keys:
            raise ValueError(f"Unknown key(s) in engine.{section}: {', '.join(sorted(bad_keys))}")
        updates[section] = replace(current, **section_overrides)

    return replace(DEFAULT_ENGINE_CONFIG, **updates)


def config_as_dict(cfg: EngineConfig) -> Dict[str, Dict[str, Any]]:
    """Flatten an EngineConfig for logging and diagnostics."""
    return {section: dict(getattr(cfg, section).__dict__) for section in _SECTIONS}
