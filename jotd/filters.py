"""Public read filters and response shaping."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional

from .normalization import clamp_int, split_csv

DEFAULT_RATINGS: FrozenSet[str] = frozenset({"G", "PG"})
MIN_DISPLAY_CHARS = 40
MAX_DISPLAY_CHARS = 4000
ELLIPSIS = "…"


@dataclass(frozen=True)
class FilterCriteria:
    ratings: FrozenSet[str] = field(default=DEFAULT_RATINGS)
    categories: Optional[FrozenSet[str]] = None
    active_only: bool = True
    max_display_chars: Optional[int] = None

    @classmethod
    def from_query(cls, params: Mapping[str, str]) -> "FilterCriteria":
        ratings = split_csv(params.get("ratings"))
        categories = split_csv(params.get("categories"))
        max_chars_raw = params.get("maxChars")
        max_chars = clamp_int(max_chars_raw, MIN_DISPLAY_CHARS, MAX_DISPLAY_CHARS) if max_chars_raw else None
        return cls(
            ratings=frozenset(r.upper() for r in ratings) if ratings else DEFAULT_RATINGS,
            categories=frozenset(c.lower() for c in categories) if categories else None,
            max_display_chars=max_chars,
        )

    def describe(self) -> Dict[str, Any]:
        return {
            "ratings": sorted(self.ratings),
            "categories": sorted(self.categories) if self.categories is not None else None,
            "maxChars": self.max_display_chars,
        }


def _matches(joke: Any, ratings: FrozenSet[str], categories: Optional[FrozenSet[str]], active_only: bool) -> bool:
    if not isinstance(joke, Mapping):
        return False
    if active_only and joke.get("active") is not True:
        return False
    rating = str(joke.get("rating") or "").strip().upper()
    if rating not in ratings:
        return False
    if categories is not None:
        category = str(joke.get("category") or "").strip().lower()
        if category not in categories:
            return False
    text = joke.get("text")
    return isinstance(text, str) and bool(text)


def filter_jokes(jokes: Optional[Iterable[Any]], criteria: FilterCriteria) -> List[Mapping[str, Any]]:
    ratings = frozenset(r.upper() for r in criteria.ratings)
    categories = frozenset(c.strip().lower() for c in criteria.categories) if criteria.categories is not None else None
    return [joke for joke in (jokes or []) if _matches(joke, ratings, categories, criteria.active_only)]


def shape_joke(joke: Mapping[str, Any], max_display_chars: Optional[int] = None) -> Dict[str, Any]:
    text = (joke.get("text") or "").strip()
    display_text = text
    is_truncated = False
    if max_display_chars and len(text) > max_display_chars:
        display_text = text[:max_display_chars].rstrip() + ELLIPSIS
        is_truncated = True
    return {
        "id": joke.get("id"),
        "category": joke.get("category"),
        "rating": joke.get("rating"),
        "text": text,
        "display_text": display_text,
        "is_truncated": is_truncated,
    }
