"""Admin endpoint: list, add (with duplicate guard) and replace the joke document."""
from __future__ import annotations

from http import HTTPStatus
from typing import Any, Dict, Optional, Tuple

from jotd.api_utils import BaseJsonHandler, parse_json, parse_model
from jotd.logging_setup import get_logger
from jotd.repository import JokeRepository, get_repository
from jotd.schemas import AddJokeResponse, AdminListResponse, Joke, NewJokeRequest, ReplaceJokesRequest, ReplaceJokesResponse

logger = get_logger(__name__)


async def list_jokes(repository: Optional[JokeRepository] = None) -> Dict[str, Any]:
    repository = repository or get_repository()
    document = await repository.read(use_cache=False)
    jokes = list(document.content)
    return AdminListResponse(sha=document.version_token, count=len(jokes), jokes=jokes).model_dump()


async def add_joke(payload: Any, repository: Optional[JokeRepository] = None) -> Dict[str, Any]:
    request = parse_model(NewJokeRequest, payload)
    repository = repository or get_repository()
    added = await repository.add_joke(request)
    return AddJokeResponse(added=Joke.model_validate(added)).model_dump()


async def replace_jokes(payload: Any, repository: Optional[JokeRepository] = None) -> Dict[str, Any]:
    request = parse_model(ReplaceJokesRequest, payload)
    repository = repository or get_repository()
    new_sha = await repository.replace(request.jokes, request.sha)
    logger.info("jokes_replaced", count=len(request.jokes), sha=new_sha)
    return ReplaceJokesResponse(sha=new_sha).model_dump()


class handler(BaseJsonHandler):
    admin_methods = frozenset({"GET", "POST", "PUT"})

    async def handle_get(self, context) -> Dict[str, Any]:  # type: ignore[override]
        return await list_jokes()

    async def handle_post(self, context, body: bytes) -> Tuple[HTTPStatus, Dict[str, Any]]:  # type: ignore[override]
        return HTTPStatus.CREATED, await add_joke(parse_json(body))

    async def handle_put(self, context, body: bytes) -> Dict[str, Any]:  # type: ignore[override]
        return await replace_jokes(parse_json(body))
