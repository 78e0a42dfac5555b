from __future__ import annotations

import asyncio
import base64
from typing import List

import httpx
import pytest
import ujson

from jotd.errors import ConflictError, StoreUnavailableError
from jotd.repository import JokeRepository
from jotd.schemas import NewJokeRequest
from jotd.storage import GitHubContentsStore, decode_content, encode_content

from conftest import SAMPLE_JOKES

CONTENTS_PATH = "/repos/acme/jotd-project/contents/jokes.json"


def _wrapped_b64(text: str) -> str:
    encoded = base64.b64encode(text.encode("utf-8")).decode("ascii")
    return "\n".join(encoded[i : i + 60] for i in range(0, len(encoded), 60)) + "\n"


class FakeGitHub:
    """In-memory contents API for one file."""

    def __init__(self, text: str, sha: str = "sha-1") -> None:
        self.text = text
        self.sha = sha
        self.requests: List[httpx.Request] = []
        self.put_status = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        assert request.url.path == CONTENTS_PATH
        assert request.headers["Authorization"] == "Bearer token-123"
        if request.method == "GET":
            assert request.url.params["ref"] == "main"
            return httpx.Response(200, json={"content": _wrapped_b64(self.text), "sha": self.sha})
        body = ujson.loads(request.content)
        if self.put_status:
            return httpx.Response(self.put_status, json={"message": "nope"})
        if body.get("sha") != self.sha:
            return httpx.Response(409, json={"message": f"jokes.json does not match {body.get('sha')}"})
        self.text = base64.b64decode(body["content"]).decode("utf-8")
        self.sha = f"sha-{len(self.requests)}"
        return httpx.Response(200, json={"content": {"sha": self.sha}, "commit": {"sha": "commit-sha"}})


def _store(handler) -> GitHubContentsStore:
    return GitHubContentsStore(
        owner="acme",
        repo="jotd-project",
        token="token-123",
        transport=httpx.MockTransport(handler),
    )


def test_content_codec_handles_unicode_and_wrapping():
    text = '[{"text": "Café jokes… 😀"}]'
    assert decode_content(encode_content(text)) == text
    assert decode_content(_wrapped_b64(text)) == text


@pytest.mark.asyncio
async def test_read_decodes_wrapped_base64():
    github = FakeGitHub(ujson.dumps(SAMPLE_JOKES))
    repository = JokeRepository(_store(github), "jokes.json")
    document = await repository.read()
    assert document.version_token == "sha-1"
    assert [joke["id"] for joke in document.content] == [1, 2, 3, 4, 6]


@pytest.mark.asyncio
async def test_add_joke_puts_with_sha_and_message():
    github = FakeGitHub(ujson.dumps(SAMPLE_JOKES))
    repository = JokeRepository(_store(github), "jokes.json")
    added = await repository.add_joke(NewJokeRequest(text="A new joke about owls.", rating="PG", category="birds"))
    put = github.requests[-1]
    body = ujson.loads(put.content)
    assert put.method == "PUT"
    assert put.headers["Content-Type"] == "application/json"
    assert body["sha"] == "sha-1"
    assert body["branch"] == "main"
    assert body["message"] == "Add joke #7 (birds, PG)"
    assert ujson.loads(github.text)[-1] == added
    assert github.sha != "sha-1"


@pytest.mark.asyncio
async def test_write_returns_new_sha():
    github = FakeGitHub("[]")
    store = _store(github)
    new_sha = await store.write("jokes.json", encode_content("[]\n"), "sha-1", "msg")
    assert new_sha == github.sha


@pytest.mark.asyncio
async def test_stale_sha_conflicts():
    github = FakeGitHub("[]")
    with pytest.raises(ConflictError):
        await _store(github).write("jokes.json", encode_content("[]\n"), "old-sha", "msg")
    assert github.text == "[]"


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [500, 422, 403])
async def test_other_write_failures_are_unavailable(status):
    github = FakeGitHub("[]")
    github.put_status = status
    with pytest.raises(StoreUnavailableError):
        await _store(github).write("jokes.json", encode_content("[]\n"), "sha-1", "msg")


@pytest.mark.asyncio
async def test_read_failure_status_is_unavailable():
    store = _store(lambda request: httpx.Response(404, json={"message": "Not Found"}))
    with pytest.raises(StoreUnavailableError) as excinfo:
        await store.read("jokes.json")
    assert "404" in excinfo.value.message


@pytest.mark.asyncio
async def test_read_missing_sha_is_unavailable():
    store = _store(lambda request: httpx.Response(200, json={"content": "W10="}))
    with pytest.raises(StoreUnavailableError):
        await store.read("jokes.json")


@pytest.mark.asyncio
async def test_read_timeout_retries_then_fails():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(StoreUnavailableError):
        await _store(handler).read("jokes.json")
    assert len(calls) == 3


@pytest.mark.asyncio
async def test_read_retries_stop_once_timeout_budget_is_spent():
    calls = []

    async def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        await asyncio.sleep(0.06)
        raise httpx.ReadTimeout("timed out", request=request)

    store = GitHubContentsStore(
        owner="acme",
        repo="jotd-project",
        token="token-123",
        timeout=0.05,
        transport=httpx.MockTransport(handler),
    )
    with pytest.raises(StoreUnavailableError):
        await store.read("jokes.json")
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_write_timeout_is_not_retried():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(StoreUnavailableError):
        await _store(handler).write("jokes.json", encode_content("[]\n"), "sha-1", "msg")
    assert len(calls) == 1
