"""
Shared string normalization utilities used across the autoplay engine.

Every key the engine compares (title keys, artist keys, album keys, genre
buckets) goes through normalize_text() so that the pool builder, scorer
and reranker agree on identity.
"""
import re
from typing import Iterable, List, Sequence

# Parenthesized / bracketed annotations ("(Remix)", "[Official Video]")
_PAREN_PATTERN = re.compile(r"\(.*?\)")
_BRACKET_PATTERN = re.compile(r"\[.*?\]")

# Keep ASCII letters, digits, Latin-1 accented letters and whitespace
_DISALLOWED_CHARS = re.compile(r"[^a-z0-9\u00c0-\u00ff\s]")
_WHITESPACE = re.compile(r"\s+")


def normalize_text(text) -> str:
    """
    Normalize text for key comparisons.

    Steps:
    - Lowercase
    - Strip parenthesized and bracketed substrings
    - Replace punctuation/symbols with spaces (accented letters survive)
    - Collapse whitespace and trim

    Args:
        text: Any value; None and empty values yield ""

    Returns:
        Normalized text string
    """
    if text is None:
        return ""
    text = str(text)
    if not text:
        return ""

    normalized = text.lower()
    normalized = _PAREN_PATTERN.sub(" ", normalized)
    normalized = _BRACKET_PATTERN.sub(" ", normalized)
    normalized = _DISALLOWED_CHARS.sub(" ", normalized)
    normalized = _WHITESPACE.sub(" ", normalized)
    return normalized.strip()


def tokenize(text) -> List[str]:
    """Split normalized text into tokens, dropping empties."""
    normalized = normalize_text(text)
    return [token for token in normalized.split(" ") if token] if normalized else []


def jaccard(tokens_a: Iterable[str], tokens_b: Iterable[str]) -> float:
    """
    Jaccard index of two token collections (treated as sets).

    Returns 0.0 when either side is empty.
    """
    set_a = set(tokens_a or ())
    set_b = set(tokens_b or ())
    if not set_a or not set_b:
        return 0.0
    intersection = len(set_a & set_b)
    union = len(set_a) + len(set_b) - intersection
    return intersection / union if union > 0 else 0.0


def join_artist_names(names: Sequence[str], fallback: str = "") -> str:
    """Join artist names with ", ", using fallback when none are present."""
    present = [str(name) for name in names if name]
    if not present:
        return fallback
    return ", ".join(present)
