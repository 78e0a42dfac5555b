"""Character trigram shingling and Jaccard similarity."""
from __future__ import annotations

from typing import AbstractSet, Set


def trigram_set(value: str) -> Set[str]:
    padded = f"  {value}  "
    return {padded[i : i + 3] for i in range(len(padded) - 2)}


def jaccard(a: AbstractSet[str], b: AbstractSet[str]) -> float:
    """Intersection over union; two empty sets score 0.0."""
    intersection = len(a & b)
    union = len(a) + len(b) - intersection
    if union == 0:
        return 0.0
    return intersection / union
