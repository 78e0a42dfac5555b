"""Random joke from the filtered pool."""
from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from jotd.api_utils import BaseJsonHandler
from jotd.filters import FilterCriteria, shape_joke
from jotd.repository import JokeRepository, get_repository
from jotd.schemas import JokeResponse
from jotd.selector import pick_random


async def joke_random(query: Mapping[str, str], repository: Optional[JokeRepository] = None) -> Dict[str, Any]:
    repository = repository or get_repository()
    criteria = FilterCriteria.from_query(query)
    pool = await repository.read_pool(criteria)
    picked = pick_random(pool)
    return JokeResponse(joke=shape_joke(picked, criteria.max_display_chars)).model_dump()


class handler(BaseJsonHandler):
    async def handle_get(self, context) -> Dict[str, Any]:  # type: ignore[override]
        return await joke_random(context.query_params)
