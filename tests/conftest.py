from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List

import pytest
import ujson

from jotd.cache import ReadCache
from jotd.config import get_settings
from jotd.repository import JokeRepository, get_repository
from jotd.storage import LocalStore, get_storage

SAMPLE_JOKES: List[Dict[str, Any]] = [
    {"id": 1, "text": "Why did the chicken cross the road? To get to the other side.", "rating": "G", "category": "general", "active": True},
    {"id": 2, "text": "I told my wife she was drawing her eyebrows too high. She looked surprised.", "rating": "PG", "category": "dad", "active": True},
    {"id": 3, "text": "There are 10 kinds of people: those who understand binary and those who don't.", "rating": "PG-13", "category": "tech", "active": True},
    {"id": 4, "text": "I used to be a banker, but I lost interest.", "rating": "G", "category": "pun", "active": False},
    {"id": 6, "text": "Parallel lines have so much in common. It's a shame they'll never meet.", "rating": "G", "category": "Math ", "active": True},
]


def write_document(root: Path, data: Any, name: str = "jokes.json") -> Path:
    path = root / name
    path.write_text(ujson.dumps(data, indent=2), encoding="utf-8")
    return path


@pytest.fixture(autouse=True)
def reset_singletons(monkeypatch, tmp_path):
    monkeypatch.setenv("DATA_DIR", str(tmp_path))
    monkeypatch.setenv("JOTD_API_KEY", "test-key")
    monkeypatch.setenv("TZ", "America/Chicago")
    for name in ("ENV", "GITHUB_TOKEN", "GITHUB_OWNER", "GITHUB_REPO", "ALLOWED_ORIGINS", "SIMILARITY_THRESHOLD"):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    get_storage.cache_clear()
    get_repository.cache_clear()
    yield
    get_settings.cache_clear()
    get_storage.cache_clear()
    get_repository.cache_clear()


@pytest.fixture
def jokes_file(tmp_path) -> Path:
    return write_document(tmp_path, SAMPLE_JOKES)


@pytest.fixture
def repository(tmp_path, jokes_file) -> JokeRepository:
    return JokeRepository(LocalStore(tmp_path), "jokes.json", ReadCache(30.0))
