"""Short lived read-through snapshot cache for the joke document."""
from __future__ import annotations

import threading
import time
from typing import Callable, Generic, Optional, Tuple, TypeVar

T = TypeVar("T")


class ReadCache(Generic[T]):
    """Holds at most one snapshot; it is replaced whole, never mutated.

    ``invalidate()`` bumps a generation counter. A reader that captured the
    generation before fetching passes it to ``put`` so a snapshot fetched
    before a write cannot land after that write's invalidation.
    """

    def __init__(self, ttl_seconds: float = 30.0, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entry: Optional[Tuple[float, T]] = None
        self._generation = 0
        self._lock = threading.Lock()

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    def get(self) -> Optional[T]:
        with self._lock:
            entry = self._entry
        if entry is None:
            return None
        stored_at, value = entry
        if self._clock() - stored_at >= self.ttl_seconds:
            return None
        return value

    def put(self, value: T, generation: Optional[int] = None) -> bool:
        with self._lock:
            if generation is not None and generation != self._generation:
                return False
            self._entry = (self._clock(), value)
            return True

    def invalidate(self) -> None:
        with self._lock:
            self._entry = None
            self._generation += 1
