"""Utility base classes/helpers for Vercel-style serverless JSON handlers."""
from __future__ import annotations

import asyncio
import traceback
import uuid
from datetime import date, datetime, timezone
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler
from typing import Any, Awaitable, Callable, Dict, FrozenSet, Optional, Tuple, Type, TypeVar, Union
from urllib.parse import parse_qsl, urlparse

import ujson
from pydantic import BaseModel, ValidationError

from .errors import (
    ConflictError,
    DuplicateError,
    EmptyPoolError,
    JotdError,
    SchemaError,
    SimilarError,
    StoreUnavailableError,
)
from .logging_setup import bind_request, clear_request, get_logger
from .security import (
    REQUEST_ID_HEADER,
    ForbiddenOriginError,
    RequestContext,
    UnauthorizedError,
    ensure_cors,
    require_api_key,
)

logger = get_logger(__name__)

M = TypeVar("M", bound=BaseModel)
HandlerResult = Union[Dict[str, Any], Tuple[HTTPStatus, Dict[str, Any]]]

_ERROR_STATUS: Dict[Type[JotdError], HTTPStatus] = {
    ConflictError: HTTPStatus.CONFLICT,
    DuplicateError: HTTPStatus.CONFLICT,
    SimilarError: HTTPStatus.CONFLICT,
    EmptyPoolError: HTTPStatus.NOT_FOUND,
    StoreUnavailableError: HTTPStatus.SERVICE_UNAVAILABLE,
}


class HttpError(Exception):
    def __init__(self, status: HTTPStatus, message: str, error: str = "bad_request") -> None:
        self.status = status
        self.message = message
        self.error = error
        super().__init__(message)


def status_for_error(exc: JotdError) -> HTTPStatus:
    """Map the core error taxonomy onto HTTP status codes."""
    if isinstance(exc, SchemaError):
        return HTTPStatus.BAD_REQUEST if exc.origin == "submitted" else HTTPStatus.INTERNAL_SERVER_ERROR
    for error_type, status in _ERROR_STATUS.items():
        if isinstance(exc, error_type):
            return status
    return HTTPStatus.INTERNAL_SERVER_ERROR


def parse_json(body: bytes) -> Any:
    try:
        return ujson.loads(body.decode("utf-8") or "{}")
    except (ValueError, UnicodeDecodeError):
        raise HttpError(HTTPStatus.BAD_REQUEST, "invalid json body")


def parse_model(model: Type[M], payload: Any) -> M:
    """Validate a submitted payload; failures are the caller's fault."""
    if not isinstance(payload, dict):
        raise SchemaError("request body must be a JSON object", origin="submitted")
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        error = exc.errors()[0]
        field = ".".join(str(part) for part in error.get("loc", ())) or "body"
        message = str(error.get("msg", "invalid value")).removeprefix("Value error, ")
        raise SchemaError(f"{field}: {message}", origin="submitted") from exc


class BaseJsonHandler(BaseHTTPRequestHandler):
    server_version = "JOTD/1.0"
    admin_methods: FrozenSet[str] = frozenset()

    def do_OPTIONS(self) -> None:  # noqa: N802 - BaseHTTPRequestHandler signature
        context = self._build_context()
        headers: Dict[str, str] = {}
        try:
            ensure_cors(headers, context.headers)
        except ForbiddenOriginError as exc:
            self._write_json(HTTPStatus.FORBIDDEN, {"error": "forbidden", "message": str(exc)}, {})
            return
        headers.setdefault("Content-Length", "0")
        self._write_json(HTTPStatus.NO_CONTENT, None, headers)

    def do_GET(self) -> None:  # noqa: N802
        context = self._build_context()
        self._dispatch(context, lambda: self.handle_get(context))

    def do_POST(self) -> None:  # noqa: N802
        context = self._build_context()
        body = self._read_body()
        self._dispatch(context, lambda: self.handle_post(context, body))

    def do_PUT(self) -> None:  # noqa: N802
        context = self._build_context()
        body = self._read_body()
        self._dispatch(context, lambda: self.handle_put(context, body))

    # Methods to be implemented by subclasses
    async def handle_get(self, context: RequestContext) -> HandlerResult:  # pragma: no cover - interface
        raise HttpError(HTTPStatus.METHOD_NOT_ALLOWED, "GET not supported", "method_not_allowed")

    async def handle_post(self, context: RequestContext, body: bytes) -> HandlerResult:  # pragma: no cover - interface
        raise HttpError(HTTPStatus.METHOD_NOT_ALLOWED, "POST not supported", "method_not_allowed")

    async def handle_put(self, context: RequestContext, body: bytes) -> HandlerResult:  # pragma: no cover - interface
        raise HttpError(HTTPStatus.METHOD_NOT_ALLOWED, "PUT not supported", "method_not_allowed")

    # Internal helpers
    def _dispatch(self, context: RequestContext, call: Callable[[], Awaitable[HandlerResult]]) -> None:
        cors_headers: Dict[str, str] = {}
        try:
            ensure_cors(cors_headers, context.headers)
            if context.method in self.admin_methods:
                require_api_key(context.headers)
            status, payload = _split_result(asyncio.run(call()))
            self._write_json(status, payload, cors_headers)
        except UnauthorizedError as exc:
            self._write_json(HTTPStatus.UNAUTHORIZED, {"error": "unauthorized", "message": str(exc)}, cors_headers)
        except ForbiddenOriginError as exc:
            self._write_json(HTTPStatus.FORBIDDEN, {"error": "forbidden", "message": str(exc)}, {})
        except HttpError as exc:
            self._write_json(exc.status, {"error": exc.error, "message": exc.message}, cors_headers)
        except JotdError as exc:
            status = status_for_error(exc)
            logger.info("request_rejected", request_id=context.request_id, error=exc.code, status=status.value)
            self._write_json(status, exc.to_payload(), cors_headers)
        except Exception as exc:  # pragma: no cover - defensive
            logger.error("handler_error", request_id=context.request_id, error=str(exc), traceback=traceback.format_exc())
            self._write_json(HTTPStatus.INTERNAL_SERVER_ERROR, {"error": "server_error", "message": "internal error"}, cors_headers)
        finally:
            clear_request()

    def _read_body(self) -> bytes:
        length = int(self.headers.get("Content-Length", "0"))
        return self.rfile.read(length) if length else b""

    def _build_context(self) -> RequestContext:
        request_id = self.headers.get(REQUEST_ID_HEADER) or f"req-{uuid.uuid4().hex}"
        parsed = urlparse(self.path)
        query = dict(parse_qsl(parsed.query))
        headers = {key: value for key, value in self.headers.items()}
        context = RequestContext(
            request_id=request_id,
            received_at=datetime_now(),
            headers=headers,
            method=self.command,
            path=parsed.path,
            query_params=query,
        )
        bind_request(request_id, method=self.command, path=parsed.path)
        return context

    def _write_json(self, status: HTTPStatus, payload: Optional[Dict[str, Any]], extra_headers: Dict[str, str]) -> None:
        self.send_response(status.value)
        response_headers = {"Content-Type": "application/json; charset=utf-8"}
        response_headers.update(extra_headers)
        body = b""
        if payload is not None:
            serializable = _make_json_serializable(payload)
            body = ujson.dumps(serializable, ensure_ascii=False).encode("utf-8")
            response_headers["Content-Length"] = str(len(body))
        for key, value in response_headers.items():
            self.send_header(key, value)
        self.end_headers()
        if body:
            self.wfile.write(body)


def _split_result(result: HandlerResult) -> Tuple[HTTPStatus, Dict[str, Any]]:
    if isinstance(result, tuple):
        return result
    return HTTPStatus.OK, result


def datetime_now() -> datetime:
    return datetime.now(timezone.utc)


def _make_json_serializable(data: Any) -> Any:
    if isinstance(data, (datetime, date)):
        return data.isoformat()
    if isinstance(data, dict):
        return {key: _make_json_serializable(value) for key, value in data.items()}
    if isinstance(data, (list, tuple)):
        return [_make_json_serializable(item) for item in data]
    return data
