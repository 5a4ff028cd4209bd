"""Autoplay engine: candidate pool, scoring, MMR reranking."""

from .config import (
    AffinityWeights,
    CandidatePoolConfig,
    EngineConfig,
    RedundancyWeights,
    RerankConfig,
    ScoringWeights,
    SimilarityWeights,
    DEFAULT_ENGINE_CONFIG,
    default_engine_config,
)
from .tracks import Track, track_from_raw, tracks_from_raw
from .features import TrackFeatures, extract_features, identity_key
from .session import HistoryEntry, SessionContext, build_session_context
from .candidate_pool import CandidatePoolResult, build_candidate_pool, build_candidates
from .scoring import ScoredCandidate, score_track
from .randomizer import SessionRandom
from .reranker import RerankResult, rank_with_mmr, rerank_candidates
from .pipeline import AutoplayResult, recommend_next

__all__ = [
    "AffinityWeights",
    "CandidatePoolConfig",
    "EngineConfig",
    "RedundancyWeights",
    "RerankConfig",
    "ScoringWeights",
    "SimilarityWeights",
    "DEFAULT_ENGINE_CONFIG",
    "default_engine_config",
    "Track",
    "track_from_raw",
    "tracks_from_raw",
    "TrackFeatures",
    "extract_features",
    "identity_key",
    "HistoryEntry",
    "SessionContext",
    "build_session_context",
    "CandidatePoolResult",
    "build_candidate_pool",
    "build_candidates",
    "ScoredCandidate",
    "score_track",
    "SessionRandom",
    "RerankResult",
    "rank_with_mmr",
    "rerank_candidates",
    "AutoplayResult",
    "recommend_next",
]
