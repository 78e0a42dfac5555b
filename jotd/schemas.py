"""Pydantic models for the stored joke document and request/response payloads."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

RATINGS = ("G", "PG", "PG-13", "R")
DEFAULT_CATEGORY = "general"


class JokeRecord(BaseModel):
    """One element of the stored document, checked for field types only."""

    model_config = ConfigDict(strict=True, extra="allow")

    id: int
    text: str
    rating: str
    category: str
    active: bool


class Joke(JokeRecord):
    """A joke that is fit to be committed."""

    @field_validator("text")
    @classmethod
    def _text_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("text must not be empty")
        return value

    @field_validator("rating")
    @classmethod
    def _known_rating(cls, value: str) -> str:
        if value not in RATINGS:
            raise ValueError(f"rating must be one of {','.join(RATINGS)}")
        return value


class NewJokeRequest(BaseModel):
    text: str
    rating: str = "G"
    category: str = DEFAULT_CATEGORY
    active: bool = True

    @field_validator("text")
    @classmethod
    def _strip_text(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("text is required")
        return value

    @field_validator("rating", mode="before")
    @classmethod
    def _normalize_rating(cls, value: Any) -> str:
        rating = str(value or "G").strip().upper()
        if rating not in RATINGS:
            raise ValueError("Invalid rating")
        return rating

    @field_validator("category", mode="before")
    @classmethod
    def _default_category(cls, value: Any) -> str:
        return str(value or "").strip() or DEFAULT_CATEGORY


class ReplaceJokesRequest(BaseModel):
    sha: str = Field(..., min_length=1)
    jokes: List[Any]


class ShapedJoke(BaseModel):
    id: Any
    category: Any
    rating: Any
    text: str
    display_text: str
    is_truncated: bool


class TodayResponse(BaseModel):
    date: str
    tz: str
    joke: ShapedJoke


class JokeResponse(BaseModel):
    joke: ShapedJoke


class AdminListResponse(BaseModel):
    sha: str
    count: int
    jokes: List[Dict[str, Any]]


class AddJokeResponse(BaseModel):
    ok: bool = True
    added: Joke


class ReplaceJokesResponse(BaseModel):
    ok: bool = True
    sha: str


class ErrorResponse(BaseModel):
    error: str
    message: str
    details: Optional[Dict[str, Any]] = None


class HealthResponse(BaseModel):
    status: str
    time: datetime
    version: str
    routes: List[str]
