"""Joke selection: stable per day and filter set, or random."""
from __future__ import annotations

import secrets
from typing import Sequence, TypeVar

from .errors import EmptyPoolError
from .filters import FilterCriteria

FNV_OFFSET_BASIS = 2166136261
FNV_PRIME = 16777619
_MASK_32 = 0xFFFFFFFF

T = TypeVar("T")


def fnv1a_32(seed: str) -> int:
    h = FNV_OFFSET_BASIS
    for byte in seed.encode("utf-8"):
        h ^= byte
        h = (h * FNV_PRIME) & _MASK_32
    return h


def build_seed(day: str, criteria: FilterCriteria) -> str:
    """Canonical seed for the day and the active filters."""
    ratings = ",".join(sorted(r.upper() for r in criteria.ratings))
    categories = ",".join(sorted(c.lower() for c in criteria.categories)) if criteria.categories else ""
    return f"{day}|{ratings}|{categories}"


def pick_deterministic(pool: Sequence[T], seed: str) -> T:
    if not pool:
        raise EmptyPoolError()
    return pool[fnv1a_32(seed) % len(pool)]


def pick_random(pool: Sequence[T]) -> T:
    if not pool:
        raise EmptyPoolError()
    return pool[secrets.randbelow(len(pool))]
