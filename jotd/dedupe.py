"""Duplicate guard for admin submissions.

Every existing joke is compared with the candidate in normalized form. An
exact match stops the scan immediately; otherwise the closest joke by
trigram Jaccard score is kept and reported when it reaches the threshold.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional

from .errors import DuplicateError, SimilarError
from .logging_setup import get_logger
from .normalization import normalize
from .similarity import jaccard, trigram_set

SIMILARITY_THRESHOLD = 0.82

logger = get_logger(__name__)


class VerdictKind(str, enum.Enum):
    EXACT_MATCH = "exact_match"
    SIMILAR = "similar"
    NOVEL = "novel"


@dataclass(frozen=True)
class Verdict:
    kind: VerdictKind
    joke: Optional[Mapping[str, Any]] = None
    score: float = 0.0

    @property
    def display_score(self) -> float:
        return round(self.score, 3)

    @property
    def is_novel(self) -> bool:
        return self.kind is VerdictKind.NOVEL


def classify(
    candidate_text: Optional[str],
    existing: Iterable[Mapping[str, Any]],
    threshold: float = SIMILARITY_THRESHOLD,
) -> Verdict:
    norm_new = normalize(candidate_text)
    new_trigrams = trigram_set(norm_new)
    best_score = 0.0
    best_joke: Optional[Mapping[str, Any]] = None

    for joke in existing:
        if not isinstance(joke, Mapping):
            continue
        text = joke.get("text")
        if not text or not isinstance(text, str):
            continue
        norm_old = normalize(text)
        if norm_old == norm_new:
            return Verdict(VerdictKind.EXACT_MATCH, joke, 1.0)
        score = jaccard(trigram_set(norm_old), new_trigrams)
        if score > best_score:
            best_score = score
            best_joke = joke

    if best_joke is not None and best_score >= threshold:
        return Verdict(VerdictKind.SIMILAR, best_joke, best_score)
    return Verdict(VerdictKind.NOVEL, None, best_score)


def ensure_novel(
    candidate_text: Optional[str],
    existing: Iterable[Mapping[str, Any]],
    threshold: float = SIMILARITY_THRESHOLD,
) -> Verdict:
    """Classify and raise for anything that is not novel."""
    verdict = classify(candidate_text, existing, threshold)
    if verdict.kind is VerdictKind.EXACT_MATCH:
        logger.info("duplicate_rejected", match_id=verdict.joke.get("id"))  # type: ignore[union-attr]
        raise DuplicateError(verdict.joke)  # type: ignore[arg-type]
    if verdict.kind is VerdictKind.SIMILAR:
        logger.info("similar_rejected", match_id=verdict.joke.get("id"), score=verdict.display_score)  # type: ignore[union-attr]
        raise SimilarError(verdict.joke, verdict.score)  # type: ignore[arg-type]
    return verdict
