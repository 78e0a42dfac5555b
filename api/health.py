"""Health endpoint returning service status and the route list."""
from __future__ import annotations

from http import HTTPStatus
from typing import Any, Dict

from jotd.api_utils import BaseJsonHandler, HttpError, datetime_now
from jotd.schemas import HealthResponse

VERSION = "1.0.0"
ROUTES = [
    "/api/health",
    "/api/joke_today",
    "/api/joke_random",
    "/api/joke?id=1",
    "/api/admin_jokes (GET, POST, PUT)",
    "/api/openapi",
]


def build_health_payload() -> Dict[str, Any]:
    response = HealthResponse(status="ok", time=datetime_now(), version=VERSION, routes=ROUTES)
    return response.model_dump()


class handler(BaseJsonHandler):
    async def handle_get(self, context) -> Dict[str, Any]:  # type: ignore[override]
        return build_health_payload()

    async def handle_post(self, context, body: bytes) -> Dict[str, Any]:  # type: ignore[override]
        raise HttpError(HTTPStatus.METHOD_NOT_ALLOWED, "POST not supported", "method_not_allowed")
