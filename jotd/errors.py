"""Error taxonomy shared by the repository, the duplicate guard and the selector.

These carry no transport details. ``jotd.api_utils`` maps each kind to an HTTP
status at the request boundary.
"""
from __future__ import annotations

from typing import Any, Dict, Mapping, Optional


class JotdError(Exception):
    """Base class for every failure the core reports to its callers."""

    code = "jotd_error"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def to_payload(self) -> Dict[str, Any]:
        return {"error": self.code, "message": self.message}


class SchemaError(JotdError):
    """A stored or submitted document does not match the joke schema.

    ``origin`` is ``"submitted"`` for payloads coming from a caller and
    ``"stored"`` when the backing document itself is corrupt.
    """

    code = "schema_error"

    def __init__(self, message: str, origin: str = "stored", index: Optional[int] = None) -> None:
        super().__init__(message)
        self.origin = origin
        self.index = index

    def to_payload(self) -> Dict[str, Any]:
        payload = super().to_payload()
        if self.index is not None:
            payload["index"] = self.index
        return payload


class ConflictError(JotdError):
    """The version token supplied on write is stale; another writer won the race."""

    code = "conflict"


class StoreUnavailableError(JotdError):
    """Transport failure or timeout talking to the backing store."""

    code = "store_unavailable"


class EmptyPoolError(JotdError):
    code = "no_jokes"

    def __init__(
        self,
        message: str = "No jokes matched your filters (ratings/categories) and active flags.",
        filters: Optional[Mapping[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.filters = filters

    def to_payload(self) -> Dict[str, Any]:
        payload = super().to_payload()
        if self.filters is not None:
            payload["filters"] = dict(self.filters)
        return payload


class DuplicateError(JotdError):
    """An existing joke normalizes to exactly the same text."""

    code = "duplicate"

    def __init__(self, joke: Mapping[str, Any]) -> None:
        super().__init__("Exact duplicate joke already exists")
        self.joke = joke

    def to_payload(self) -> Dict[str, Any]:
        payload = super().to_payload()
        payload["duplicate"] = {"id": self.joke.get("id"), "text": self.joke.get("text")}
        return payload


class SimilarError(JotdError):
    code = "similar"

    def __init__(self, joke: Mapping[str, Any], score: float) -> None:
        super().__init__("Similar joke already exists")
        self.joke = joke
        self.score = score

    def to_payload(self) -> Dict[str, Any]:
        payload = super().to_payload()
        payload["similar"] = {
            "score": round(self.score, 3),
            "id": self.joke.get("id"),
            "text": self.joke.get("text"),
        }
        return payload
