"""Shared async HTTP helpers with bounded timeouts and retries for idempotent calls."""
from __future__ import annotations

from typing import Any, Dict, Optional

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, stop_after_delay, wait_exponential

from .config import get_settings
from .logging_setup import get_logger

_RETRYABLE = (httpx.TransportError,)
_IDEMPOTENT = frozenset({"GET", "HEAD"})

logger = get_logger(__name__)


def _client_headers(extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
    settings = get_settings()
    headers = {
        "User-Agent": settings.user_agent,
        "Accept": "application/json",
    }
    if extra:
        headers.update(extra)
    return headers


def _client_kwargs(
    timeout: float,
    headers: Optional[Dict[str, str]],
    transport: Optional[httpx.AsyncBaseTransport],
) -> Dict[str, Any]:
    kwargs: Dict[str, Any] = {
        "timeout": httpx.Timeout(timeout, connect=min(timeout, 5.0)),
        "headers": _client_headers(headers),
    }
    if transport is not None:
        kwargs["transport"] = transport
    return kwargs


async def _send(method: str, url: str, client_kwargs: Dict[str, Any], **kwargs: Any) -> httpx.Response:
    async with httpx.AsyncClient(**client_kwargs) as client:
        logger.debug("http_request", method=method, url=url)
        return await client.request(method, url, **kwargs)


_send_with_retry = retry(
    retry=retry_if_exception_type(_RETRYABLE),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=0.2, min=0.2, max=2),
    reraise=True,
)(_send)


async def request_raw(
    method: str,
    url: str,
    *,
    timeout: float,
    headers: Optional[Dict[str, str]] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    **kwargs: Any,
) -> httpx.Response:
    """Send one request; GET/HEAD retry on transport errors, writes never retry.

    Retries stop once ``timeout`` seconds have passed in total, so a read
    that keeps timing out is not retried past its first attempt.
    The response is returned whatever its status so callers can tell a
    conflict apart from other failures.
    """
    method = method.upper()
    client_kwargs = _client_kwargs(timeout, headers, transport)
    if method in _IDEMPOTENT:
        sender = _send_with_retry.retry_with(stop=stop_after_attempt(3) | stop_after_delay(timeout))
    else:
        sender = _send
    return await sender(method, url, client_kwargs, **kwargs)
