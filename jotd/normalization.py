"""Helpers for text normalization, query parsing and time zone handling."""
from __future__ import annotations

import re
from datetime import datetime, timezone, tzinfo
from typing import Any, List, Optional

from dateutil import tz

NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")
WHITESPACE_RE = re.compile(r"\s+")
LEADING_INT_RE = re.compile(r"\s*([+-]?\d+)")


def normalize_whitespace(value: str) -> str:
    return WHITESPACE_RE.sub(" ", value).strip()


def normalize(value: Optional[str]) -> str:
    """Canonical comparison form: lowercase ASCII letters and digits separated by single spaces."""
    if not value:
        return ""
    cleaned = NON_ALNUM_RE.sub(" ", str(value).lower())
    return normalize_whitespace(cleaned)


def split_csv(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def clamp_int(value: Any, minimum: int, maximum: int) -> int:
    """Clamp the leading integer of ``value``; trailing junk is ignored, no digits gives ``minimum``."""
    match = LEADING_INT_RE.match(str(value))
    if match is None:
        return minimum
    number = int(match.group(1))
    return max(minimum, min(maximum, number))


def resolve_timezone(name: str) -> tzinfo:
    zone = tz.gettz(name)
    if zone is None:
        raise ValueError(f"unknown time zone: {name}")
    return zone


def date_key(tz_name: str, now: Optional[datetime] = None) -> str:
    """Return today's date as YYYY-MM-DD in the given IANA time zone."""
    zone = resolve_timezone(tz_name)
    current = now or datetime.now(timezone.utc)
    if current.tzinfo is None:
        current = current.replace(tzinfo=timezone.utc)
    return current.astimezone(zone).strftime("%Y-%m-%d")
