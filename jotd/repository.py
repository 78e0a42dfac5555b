"""Joke repository: read-modify-write of ``jokes.json`` with optimistic concurrency.

Every write carries the version token of the read it was derived from. A
stale token surfaces as ``ConflictError`` and is never retried here: the
caller re-runs the whole read, classify and write cycle.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Type, Union

import ujson
from pydantic import BaseModel, ValidationError

from .cache import ReadCache
from .config import get_settings
from .dedupe import SIMILARITY_THRESHOLD, ensure_novel
from .errors import ConflictError, EmptyPoolError, SchemaError
from .filters import FilterCriteria, filter_jokes
from .logging_setup import get_logger
from .schemas import Joke, JokeRecord, NewJokeRequest
from .storage import BlobStore, decode_content, encode_content, get_storage

logger = get_logger(__name__)

REPLACE_MESSAGE = "Update jokes.json via admin API"


@dataclass(frozen=True)
class VersionedDocument:
    content: Tuple[Dict[str, Any], ...]
    version_token: str


def _describe(exc: ValidationError) -> str:
    error = exc.errors()[0]
    location = ".".join(str(part) for part in error.get("loc", ())) or "joke"
    return f"{location}: {error.get('msg', 'invalid value')}"


def _validate_items(data: Any, model: Type[BaseModel], origin: str) -> List[Dict[str, Any]]:
    if not isinstance(data, list):
        raise SchemaError("jokes document must be a JSON array", origin=origin)
    items: List[Dict[str, Any]] = []
    for index, item in enumerate(data):
        if not isinstance(item, dict):
            raise SchemaError(f"joke at index {index} must be an object", origin=origin, index=index)
        try:
            model.model_validate(item)
        except ValidationError as exc:
            raise SchemaError(f"joke at index {index}: {_describe(exc)}", origin=origin, index=index) from exc
        items.append(item)
    return items


def validate_stored(data: Any) -> List[Dict[str, Any]]:
    """Type check a parsed document. Content rules are left to the filters."""
    return _validate_items(data, JokeRecord, "stored")


def validate_submitted(data: Any, origin: str = "submitted") -> List[Dict[str, Any]]:
    """Full content rules: known rating, non-blank text, unique ids."""
    items = _validate_items(data, Joke, origin)
    seen = set()
    for index, item in enumerate(items):
        if item["id"] in seen:
            raise SchemaError(f"duplicate id {item['id']}", origin=origin, index=index)
        seen.add(item["id"])
    return items


def serialize(collection: Sequence[Mapping[str, Any]]) -> str:
    return ujson.dumps(list(collection), ensure_ascii=False, escape_forward_slashes=False, indent=2) + "\n"


def next_id(jokes: Iterable[Mapping[str, Any]]) -> int:
    ids = [joke.get("id") for joke in jokes]
    return max((i for i in ids if isinstance(i, int) and not isinstance(i, bool)), default=0) + 1


class JokeRepository:
    def __init__(
        self,
        store: BlobStore,
        path: str,
        cache: Optional[ReadCache[VersionedDocument]] = None,
        similarity_threshold: float = SIMILARITY_THRESHOLD,
    ) -> None:
        self.store = store
        self.path = path
        self.cache = cache
        self.similarity_threshold = similarity_threshold

    async def read(self, use_cache: bool = True) -> VersionedDocument:
        if use_cache and self.cache is not None:
            cached = self.cache.get()
            if cached is not None:
                logger.debug("read_cache_hit", path=self.path, version=cached.version_token)
                return cached

        generation = self.cache.generation if self.cache is not None else 0
        blob = await self.store.read(self.path)
        text = decode_content(blob.content_b64)
        try:
            data = ujson.loads(text)
        except ValueError as exc:
            raise SchemaError(f"{self.path} is not valid JSON: {exc}", origin="stored") from exc
        document = VersionedDocument(tuple(validate_stored(data)), blob.version_token)

        if self.cache is not None and not self.cache.put(document, generation):
            logger.debug("read_cache_skip_stale", path=self.path, version=document.version_token)
        logger.debug("document_read", path=self.path, version=document.version_token, count=len(document.content))
        return document

    async def read_pool(self, criteria: FilterCriteria) -> List[Mapping[str, Any]]:
        """Cached read narrowed to the public candidate pool; empty raises ``EmptyPoolError``."""
        document = await self.read()
        pool = filter_jokes(document.content, criteria)
        if not pool:
            raise EmptyPoolError(filters=criteria.describe())
        return pool

    def append(self, document: VersionedDocument, joke: Union[NewJokeRequest, Mapping[str, Any]]) -> List[Dict[str, Any]]:
        """Return a new collection with ``joke`` added under the next free id, sorted by id."""
        fields = joke.model_dump() if isinstance(joke, BaseModel) else dict(joke)
        added = {
            "id": next_id(document.content),
            "text": fields.get("text"),
            "rating": fields.get("rating"),
            "category": fields.get("category"),
            "active": fields.get("active", True),
        }
        collection = [*document.content, added]
        collection.sort(key=lambda item: item["id"])
        return collection

    async def write(
        self,
        collection: Sequence[Mapping[str, Any]],
        expected_version: str,
        message: str = REPLACE_MESSAGE,
    ) -> str:
        items = validate_submitted(list(collection))
        payload = encode_content(serialize(items))
        # the commit finishes even if the request awaiting it goes away
        return await asyncio.shield(self._commit(payload, expected_version, message))

    async def _commit(self, payload: str, expected_version: str, message: str) -> str:
        try:
            new_version = await self.store.write(self.path, payload, expected_version, message)
        except ConflictError:
            logger.info("store_conflict", path=self.path, expected=expected_version)
            self._invalidate()
            raise
        self._invalidate()
        logger.info("document_written", path=self.path, version=new_version, message=message)
        return new_version

    def _invalidate(self) -> None:
        if self.cache is not None:
            self.cache.invalidate()

    async def add_joke(self, joke: NewJokeRequest) -> Dict[str, Any]:
        document = await self.read(use_cache=False)
        # rows already in the store must pass the write rules before ours is appended
        validate_submitted(list(document.content), origin="stored")
        ensure_novel(joke.text, document.content, self.similarity_threshold)
        collection = self.append(document, joke)
        added = collection[-1]
        message = f"Add joke #{added['id']} ({added['category']}, {added['rating']})"
        await self.write(collection, document.version_token, message)
        logger.info("joke_added", id=added["id"], category=added["category"], rating=added["rating"])
        return added

    async def replace(self, jokes: Sequence[Any], expected_version: str) -> str:
        return await self.write(jokes, expected_version, REPLACE_MESSAGE)


@lru_cache(maxsize=1)
def get_repository() -> JokeRepository:
    settings = get_settings()
    return JokeRepository(
        store=get_storage(),
        path=settings.jokes_path,
        cache=ReadCache(settings.cache_ttl_seconds),
        similarity_threshold=settings.similarity_threshold,
    )
