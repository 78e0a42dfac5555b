"""Versioned blob storage: GitHub contents API or a local file.

Both backends speak base64 payloads and opaque version tokens. A write must
present the token returned by the read it is based on; the backend refuses
the write with ``ConflictError`` when the document has moved on since.
"""
from __future__ import annotations

import base64
import binascii
import hashlib
import os
import threading
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx
import ujson

from .config import get_settings
from .errors import ConflictError, SchemaError, StoreUnavailableError
from .http_clients import request_raw
from .logging_setup import get_logger

logger = get_logger(__name__)

_CONFLICT_STATUSES = {409, 412}


@dataclass(frozen=True)
class StoredBlob:
    content_b64: str
    version_token: str


def encode_content(text: str) -> str:
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


def decode_content(content_b64: str) -> str:
    # GitHub wraps base64 content at 60 columns
    cleaned = "".join(str(content_b64).split())
    try:
        return base64.b64decode(cleaned, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as exc:
        raise SchemaError(f"stored document is not base64 encoded UTF-8: {exc}", origin="stored") from exc


class BlobStore:
    async def read(self, path: str) -> StoredBlob:  # pragma: no cover - interface
        raise NotImplementedError

    async def write(self, path: str, content_b64: str, version_token: str, message: str) -> str:  # pragma: no cover - interface
        raise NotImplementedError


class LocalStore(BlobStore):
    """File backed store; the version token is the SHA-256 of the file bytes."""

    def __init__(self, root: Path) -> None:
        self.root = root
        self.root.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def _path_for(self, key: str) -> Path:
        return self.root.joinpath(key)

    @staticmethod
    def _token(raw: bytes) -> str:
        return hashlib.sha256(raw).hexdigest()

    async def read(self, path: str) -> StoredBlob:
        file_path = self._path_for(path)
        try:
            raw = file_path.read_bytes()
        except OSError as exc:
            raise StoreUnavailableError(f"cannot read {path}: {exc}") from exc
        logger.debug("local_storage_get", key=path, path=str(file_path))
        return StoredBlob(base64.b64encode(raw).decode("ascii"), self._token(raw))

    async def write(self, path: str, content_b64: str, version_token: str, message: str) -> str:
        file_path = self._path_for(path)
        payload = base64.b64decode(content_b64)
        with self._lock:
            try:
                current = self._token(file_path.read_bytes()) if file_path.exists() else ""
            except OSError as exc:
                raise StoreUnavailableError(f"cannot read {path}: {exc}") from exc
            if current != version_token:
                logger.info("local_storage_conflict", key=path, expected=version_token, current=current)
                raise ConflictError(f"{path} changed since it was read")
            tmp_path = file_path.with_name(file_path.name + ".tmp")
            try:
                file_path.parent.mkdir(parents=True, exist_ok=True)
                tmp_path.write_bytes(payload)
                os.replace(tmp_path, file_path)
            except OSError as exc:
                logger.warning("local_storage_write_failed", key=path, error=str(exc))
                raise StoreUnavailableError(f"cannot write {path}: {exc}") from exc
        new_token = self._token(payload)
        logger.info("local_storage_put", key=path, message=message, version=new_token)
        return new_token


class GitHubContentsStore(BlobStore):
    def __init__(
        self,
        owner: str,
        repo: str,
        token: str,
        branch: str = "main",
        api_url: str = "https://api.github.com",
        timeout: float = 8.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.owner = owner
        self.repo = repo
        self.token = token
        self.branch = branch
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    def _headers(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self.token}",
            "Accept": "application/vnd.github+json",
        }
        if extra:
            headers.update(extra)
        return headers

    def _contents_url(self, path: str) -> str:
        return f"{self.api_url}/repos/{quote(self.owner, safe='')}/{quote(self.repo, safe='')}/contents/{quote(path)}"

    async def _call(
        self, method: str, url: str, extra_headers: Optional[Dict[str, str]] = None, **kwargs: Any
    ) -> httpx.Response:
        try:
            return await request_raw(
                method,
                url,
                timeout=self.timeout,
                headers=self._headers(extra_headers),
                transport=self.transport,
                **kwargs,
            )
        except httpx.TimeoutException as exc:
            logger.warning("github_timeout", method=method, url=url)
            raise StoreUnavailableError(f"GitHub {method} timed out") from exc
        except httpx.HTTPError as exc:
            logger.warning("github_transport_error", method=method, url=url, error=str(exc))
            raise StoreUnavailableError(f"GitHub {method} failed: {exc}") from exc

    @staticmethod
    def _json(response: httpx.Response) -> Dict[str, Any]:
        try:
            data = ujson.loads(response.text)
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}

    async def read(self, path: str) -> StoredBlob:
        url = self._contents_url(path)
        response = await self._call("GET", url, params={"ref": self.branch})
        data = self._json(response)
        if response.status_code != 200:
            raise StoreUnavailableError(f"GitHub read failed: {response.status_code} {data.get('message', '')}".strip())
        content = data.get("content")
        sha = data.get("sha")
        if not content or not sha:
            raise StoreUnavailableError("GitHub response missing content/sha.")
        logger.debug("github_read", path=path, sha=sha)
        return StoredBlob(content, sha)

    async def write(self, path: str, content_b64: str, version_token: str, message: str) -> str:
        url = self._contents_url(path)
        body: Dict[str, Any] = {"message": message, "content": content_b64, "branch": self.branch}
        if version_token:
            body["sha"] = version_token
        response = await self._call(
            "PUT",
            url,
            content=ujson.dumps(body).encode("utf-8"),
            extra_headers={"Content-Type": "application/json"},
        )
        data = self._json(response)
        if response.status_code in _CONFLICT_STATUSES:
            logger.info("github_conflict", path=path, expected=version_token, status=response.status_code)
            raise ConflictError(f"{path} changed since it was read")
        if response.status_code not in (200, 201):
            raise StoreUnavailableError(f"GitHub write failed: {response.status_code} {data.get('message', '')}".strip())
        new_sha = (data.get("content") or {}).get("sha") or (data.get("commit") or {}).get("sha")
        if not new_sha:
            raise StoreUnavailableError("GitHub write response missing sha.")
        logger.info("github_write", path=path, sha=new_sha, message=message)
        return new_sha


@lru_cache(maxsize=1)
def get_storage() -> BlobStore:
    settings = get_settings()
    if settings.is_production and settings.has_github:
        return GitHubContentsStore(
            owner=settings.github_owner,  # type: ignore[arg-type]
            repo=settings.github_repo,  # type: ignore[arg-type]
            token=settings.github_token,  # type: ignore[arg-type]
            branch=settings.github_branch,
            api_url=settings.github_api_url,
            timeout=settings.store_timeout_seconds,
        )
    return LocalStore(Path(settings.data_dir))
