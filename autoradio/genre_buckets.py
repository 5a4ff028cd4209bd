"""
Genre Buckets
=============
Coarse canonical genre tags used for genre coherence.

Rules:
- An explicit genre label wins; it is normalized with normalize_text()
- Without a label, the bucket is inferred from title + artist + album text
  by scanning synonym groups in fixed priority order
- Residual synonyms (any funk/phonk, kpop or reggaeton variant) collapse
  onto their canonical bucket name
- No match yields "" (unknown genre)
"""
from typing import Optional, Tuple

from .string_utils import normalize_text

PHONK_FUNK = "phonk_funk"
KPOP = "kpop"
REGGAETON = "reggaeton"
TRAP = "trap"
DRILL = "drill"

# Inference groups, checked in order. Terms match as substrings of the
# normalized text ("k-pop" normalizes to "k pop").
INFERENCE_GROUPS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    (PHONK_FUNK, ("phonk",)),
    (PHONK_FUNK, ("funk", "montagem", "baile", "mandelao")),
    (KPOP, ("k pop", "kpop", "bts")),
    (REGGAETON, ("reggaeton", "regueton")),
    (TRAP, ("trap",)),
    (DRILL, ("drill",)),
)

# Synonym collapse applied to explicit and inferred labels alike
COLLAPSE_GROUPS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    (PHONK_FUNK, ("phonk", "funk")),
    (KPOP, ("k pop", "kpop")),
    (REGGAETON, ("reggaeton", "regueton")),
)


def infer_genre_bucket(text: str) -> str:
    """Infer a bucket from free text (title/artist/album). Returns "" when unknown."""
    normalized = normalize_text(text)
    if not normalized:
        return ""
    for bucket, terms in INFERENCE_GROUPS:
        if any(term in normalized for term in terms):
            return bucket
    return ""


def collapse_genre(label: str) -> str:
    """Collapse a normalized genre label onto its canonical bucket name."""
    if not label:
        return ""
    for bucket, terms in COLLAPSE_GROUPS:
        if any(term in label for term in terms):
            return bucket
    return label


def genre_bucket(explicit_genre: Optional[str], context_text: str = "") -> str:
    """
    Resolve the genre bucket for a track.

    Args:
        explicit_genre: Genre label supplied by the source, if any
        context_text: Title, artist and album text used for inference

    Returns:
        Canonical bucket, or "" for unknown genre
    """
    base = normalize_text(explicit_genre) or infer_genre_bucket(context_text)
    return collapse_genre(base)
