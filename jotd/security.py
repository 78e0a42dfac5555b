"""Security utilities: admin API key verification and CORS handling."""
from __future__ import annotations

import hmac
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, Mapping, MutableMapping, Optional

from .config import get_settings


class UnauthorizedError(Exception):
    """Raised when an admin request carries a missing or wrong API key."""


class ForbiddenOriginError(Exception):
    """Raised when a request originates from a blocked origin."""


@dataclass
class RequestContext:
    """Holds metadata extracted from an incoming request."""

    request_id: str
    received_at: datetime
    headers: Mapping[str, str]
    method: str
    path: str
    query_params: Mapping[str, str]


API_KEY_HEADER = "X-API-Key"
REQUEST_ID_HEADER = "X-Request-ID"


def normalize_header_map(headers: Mapping[str, str]) -> Dict[str, str]:
    return {k.lower(): v for k, v in headers.items()}


def require_api_key(headers: Mapping[str, str]) -> None:
    settings = get_settings()
    provided = normalize_header_map(headers).get(API_KEY_HEADER.lower(), "")
    if not settings.api_key or not provided:
        raise UnauthorizedError("Missing or invalid X-API-Key")
    if not hmac.compare_digest(settings.api_key.encode("utf-8"), provided.encode("utf-8")):
        raise UnauthorizedError("Missing or invalid X-API-Key")


def extract_origin(headers: Mapping[str, str]) -> Optional[str]:
    return normalize_header_map(headers).get("origin")


def ensure_cors(headers: MutableMapping[str, str], request_headers: Mapping[str, str]) -> None:
    """Public widgets embed the joke endpoints anywhere, so any origin is echoed
    unless ALLOWED_ORIGINS narrows the list."""
    settings = get_settings()
    origin = extract_origin(request_headers)
    if origin and origin != "null" and settings.allowed_origins and not _is_allowed_origin(origin, settings.allowed_origins):
        raise ForbiddenOriginError(f"origin {origin} not allowed")

    headers.update(
        {
            "Access-Control-Allow-Origin": origin if origin and origin != "null" else "*",
            "Access-Control-Allow-Headers": "Content-Type, X-API-Key, X-Request-ID",
            "Access-Control-Allow-Methods": "GET,PUT,POST,OPTIONS",
            "Access-Control-Max-Age": "86400",
            "Vary": "Origin",
        }
    )


def _is_allowed_origin(origin: str, allowed: Iterable[str]) -> bool:
    return origin in allowed
