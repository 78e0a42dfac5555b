"""Serve an OpenAPI schema describing the joke and admin endpoints."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic.json_schema import models_json_schema

from jotd.api_utils import BaseJsonHandler
from jotd.schemas import (
    AddJokeResponse,
    AdminListResponse,
    ErrorResponse,
    HealthResponse,
    JokeResponse,
    NewJokeRequest,
    ReplaceJokesRequest,
    ReplaceJokesResponse,
    TodayResponse,
)
from jotd.security import API_KEY_HEADER

SCHEMA_MODELS = [
    HealthResponse,
    TodayResponse,
    JokeResponse,
    AdminListResponse,
    NewJokeRequest,
    AddJokeResponse,
    ReplaceJokesRequest,
    ReplaceJokesResponse,
    ErrorResponse,
]

_, raw_schema = models_json_schema(
    [(model, "validation") for model in SCHEMA_MODELS],
    ref_template="#/components/schemas/{model}",
)
components = raw_schema.get("$defs", {})

FILTER_PARAMETERS: List[Dict[str, Any]] = [
    {"name": "ratings", "in": "query", "required": False, "schema": {"type": "string", "default": "G,PG"}},
    {"name": "categories", "in": "query", "required": False, "schema": {"type": "string"}},
    {"name": "maxChars", "in": "query", "required": False, "schema": {"type": "integer", "minimum": 40, "maximum": 4000}},
]


def _ref(model: str) -> Dict[str, Any]:
    return {"$ref": f"#/components/schemas/{model}"}


def _operation(
    summary: str,
    responses: Dict[str, str],
    request_model: Optional[str] = None,
    parameters: Optional[List[Dict[str, Any]]] = None,
    admin: bool = False,
) -> Dict[str, Any]:
    operation: Dict[str, Any] = {"summary": summary, "responses": {}}
    for status, model in responses.items():
        operation["responses"][status] = {
            "description": model,
            "content": {"application/json": {"schema": _ref(model)}},
        }
    if request_model:
        operation["requestBody"] = {"required": True, "content": {"application/json": {"schema": _ref(request_model)}}}
    if parameters:
        operation["parameters"] = parameters
    if admin:
        operation["security"] = [{"ApiKey": []}]
    return operation


OPENAPI: Dict[str, Any] = {
    "openapi": "3.1.0",
    "info": {
        "title": "JOTD Joke of the Day",
        "version": "1.0.0",
        "description": "Joke of the day backed by a version-controlled JSON document, with a moderated admin path.",
    },
    "paths": {
        "/api/health": {"get": _operation("Service health check", {"200": "HealthResponse"})},
        "/api/joke_today": {
            "get": _operation(
                "Joke of the day for the given filters",
                {"200": "TodayResponse", "404": "ErrorResponse"},
                parameters=FILTER_PARAMETERS,
            )
        },
        "/api/joke_random": {
            "get": _operation(
                "Random joke for the given filters",
                {"200": "JokeResponse", "404": "ErrorResponse"},
                parameters=FILTER_PARAMETERS,
            )
        },
        "/api/joke": {
            "get": _operation(
                "Joke by id within the filtered pool",
                {"200": "JokeResponse", "404": "ErrorResponse"},
                parameters=[{"name": "id", "in": "query", "required": True, "schema": {"type": "integer"}}, *FILTER_PARAMETERS],
            )
        },
        "/api/admin_jokes": {
            "get": _operation("List the stored jokes with their version", {"200": "AdminListResponse"}, admin=True),
            "post": _operation(
                "Add a joke unless it duplicates an existing one",
                {"201": "AddJokeResponse", "400": "ErrorResponse", "409": "ErrorResponse"},
                request_model="NewJokeRequest",
                admin=True,
            ),
            "put": _operation(
                "Replace the whole joke document",
                {"200": "ReplaceJokesResponse", "400": "ErrorResponse", "409": "ErrorResponse"},
                request_model="ReplaceJokesRequest",
                admin=True,
            ),
        },
    },
    "components": {
        "securitySchemes": {
            "ApiKey": {"type": "apiKey", "in": "header", "name": API_KEY_HEADER},
        },
        "schemas": components,
    },
}


class handler(BaseJsonHandler):
    async def handle_get(self, context) -> Dict[str, Any]:  # type: ignore[override]
        return OPENAPI
