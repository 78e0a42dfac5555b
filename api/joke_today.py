"""Joke of the day: the same joke all day for a given set of filters."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Mapping, Optional

from jotd.api_utils import BaseJsonHandler
from jotd.config import get_settings
from jotd.filters import FilterCriteria, shape_joke
from jotd.logging_setup import get_logger
from jotd.normalization import date_key
from jotd.repository import JokeRepository, get_repository
from jotd.schemas import TodayResponse
from jotd.selector import build_seed, pick_deterministic

logger = get_logger(__name__)


async def joke_today(
    query: Mapping[str, str],
    repository: Optional[JokeRepository] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    settings = get_settings()
    repository = repository or get_repository()
    criteria = FilterCriteria.from_query(query)
    pool = await repository.read_pool(criteria)

    day = date_key(settings.timezone, now)
    picked = pick_deterministic(pool, build_seed(day, criteria))
    logger.info("joke_today", date=day, id=picked.get("id"), pool=len(pool))
    response = TodayResponse(date=day, tz=settings.timezone, joke=shape_joke(picked, criteria.max_display_chars))
    return response.model_dump()


class handler(BaseJsonHandler):
    async def handle_get(self, context) -> Dict[str, Any]:  # type: ignore[override]
        return await joke_today(context.query_params)
