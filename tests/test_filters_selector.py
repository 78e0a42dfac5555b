from __future__ import annotations

import pytest

from jotd.errors import EmptyPoolError
from jotd.filters import FilterCriteria, filter_jokes, shape_joke
from jotd.selector import FNV_OFFSET_BASIS, build_seed, fnv1a_32, pick_deterministic, pick_random

from conftest import SAMPLE_JOKES


def _ids(jokes):
    return [joke["id"] for joke in jokes]


def test_filter_empty_and_none():
    assert filter_jokes([], FilterCriteria()) == []
    assert filter_jokes(None, FilterCriteria()) == []


def test_filter_excludes_inactive_when_active_only():
    jokes = [{"id": 1, "text": "x", "rating": "G", "category": "a", "active": False}]
    assert filter_jokes(jokes, FilterCriteria(active_only=True)) == []
    assert _ids(filter_jokes(jokes, FilterCriteria(active_only=False))) == [1]


def test_filter_requires_active_true_not_truthy():
    jokes = [{"id": 1, "text": "x", "rating": "G", "category": "a", "active": "yes"}, {"id": 2, "text": "y", "rating": "G", "category": "a"}]
    assert filter_jokes(jokes, FilterCriteria()) == []


def test_filter_default_ratings_and_order():
    assert _ids(filter_jokes(SAMPLE_JOKES, FilterCriteria())) == [1, 2, 6]


def test_filter_rating_compare_is_case_insensitive():
    jokes = [{"id": 1, "text": "x", "rating": " pg ", "category": "a", "active": True}]
    assert _ids(filter_jokes(jokes, FilterCriteria(ratings=frozenset({"pg"})))) == [1]


def test_filter_categories_lowercased_and_trimmed():
    criteria = FilterCriteria(ratings=frozenset({"G", "PG"}), categories=frozenset({"MATH", "dad"}))
    assert _ids(filter_jokes(SAMPLE_JOKES, criteria)) == [2, 6]


def test_filter_excludes_malformed_entries():
    jokes = [
        "not a joke",
        None,
        {"id": 1, "rating": "G", "category": "a", "active": True},
        {"id": 2, "text": 42, "rating": "G", "category": "a", "active": True},
        {"id": 3, "text": "", "rating": "G", "category": "a", "active": True},
        {"id": 4, "text": "ok", "rating": "G", "category": "a", "active": True},
    ]
    assert _ids(filter_jokes(jokes, FilterCriteria())) == [4]


def test_criteria_from_query_defaults():
    criteria = FilterCriteria.from_query({})
    assert criteria.ratings == frozenset({"G", "PG"})
    assert criteria.categories is None
    assert criteria.active_only is True
    assert criteria.max_display_chars is None


def test_criteria_from_query_parses_lists_and_clamps():
    criteria = FilterCriteria.from_query({"ratings": "pg-13, r", "categories": "Dad, Tech", "maxChars": "5"})
    assert criteria.ratings == frozenset({"PG-13", "R"})
    assert criteria.categories == frozenset({"dad", "tech"})
    assert criteria.max_display_chars == 40
    assert criteria.describe() == {"ratings": ["PG-13", "R"], "categories": ["dad", "tech"], "maxChars": 40}


def test_shape_joke_truncates_long_text():
    text = "Why did the scarecrow win an award? Because he was outstanding in his field."
    shaped = shape_joke({"id": 9, "text": f"  {text} ", "rating": "G", "category": "farm"}, 40)
    assert shaped["text"] == text
    assert shaped["is_truncated"] is True
    assert shaped["display_text"] == text[:40].rstrip() + "…"


def test_shape_joke_keeps_short_text():
    shaped = shape_joke({"id": 1, "text": "Short one.", "rating": "G", "category": "a"}, 40)
    assert shaped["display_text"] == "Short one."
    assert shaped["is_truncated"] is False


def test_fnv1a_known_values():
    assert fnv1a_32("") == FNV_OFFSET_BASIS
    assert fnv1a_32("a") == 0xE40C292C
    assert 0 <= fnv1a_32("2025-01-01|G,PG|") < 2**32


def test_build_seed_is_canonical():
    criteria = FilterCriteria(ratings=frozenset({"PG", "G"}), categories=frozenset({"pun", "dad"}))
    assert build_seed("2025-01-01", criteria) == "2025-01-01|G,PG|dad,pun"
    assert build_seed("2025-01-01", FilterCriteria()) == "2025-01-01|G,PG|"


def test_pick_deterministic_is_stable():
    pool = SAMPLE_JOKES
    seed = build_seed("2025-06-01", FilterCriteria())
    assert pick_deterministic(pool, seed) is pick_deterministic(list(pool), seed)
    assert pick_deterministic(pool, seed) is pool[fnv1a_32(seed) % len(pool)]


def test_pick_deterministic_is_sensitive_to_category_filter():
    pool = [{"id": i} for i in range(10)]
    dad = FilterCriteria(categories=frozenset({"dad"}))
    tech = FilterCriteria(categories=frozenset({"tech"}))
    days = [f"2025-01-{day:02d}" for day in range(1, 31)]
    assert any(
        pick_deterministic(pool, build_seed(day, dad)) != pick_deterministic(pool, build_seed(day, tech))
        for day in days
    )


def test_pick_requires_non_empty_pool():
    with pytest.raises(EmptyPoolError):
        pick_deterministic([], "seed")
    with pytest.raises(EmptyPoolError):
        pick_random([])


def test_pick_random_returns_member():
    pool = SAMPLE_JOKES[:3]
    for _ in range(20):
        assert pick_random(pool) in pool
