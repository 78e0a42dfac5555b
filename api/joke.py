"""Look up a single joke by id within the filtered pool."""
from __future__ import annotations

from http import HTTPStatus
from typing import Any, Dict, Mapping, Optional

from jotd.api_utils import BaseJsonHandler, HttpError
from jotd.filters import FilterCriteria, shape_joke
from jotd.repository import JokeRepository, get_repository
from jotd.schemas import JokeResponse


async def joke_by_id(query: Mapping[str, str], repository: Optional[JokeRepository] = None) -> Dict[str, Any]:
    raw_id = query.get("id")
    if not raw_id:
        raise HttpError(HTTPStatus.BAD_REQUEST, "id query parameter is required")
    try:
        joke_id = int(raw_id)
    except ValueError:
        raise HttpError(HTTPStatus.BAD_REQUEST, "id must be an integer")

    repository = repository or get_repository()
    criteria = FilterCriteria.from_query(query)
    pool = await repository.read_pool(criteria)
    match = next((joke for joke in pool if joke.get("id") == joke_id), None)
    if match is None:
        raise HttpError(HTTPStatus.NOT_FOUND, "Joke not found for that id (or filtered out).", "not_found")
    return JokeResponse(joke=shape_joke(match, criteria.max_display_chars)).model_dump()


class handler(BaseJsonHandler):
    async def handle_get(self, context) -> Dict[str, Any]:  # type: ignore[override]
        return await joke_by_id(context.query_params)
