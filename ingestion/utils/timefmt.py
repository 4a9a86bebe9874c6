"""Timestamp helpers shared by fetchers and the domain model."""

from __future__ import annotations

import calendar
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes, convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def from_epoch(seconds: float) -> datetime:
    return datetime.fromtimestamp(float(seconds), tz=timezone.utc)


def from_struct_time(value: Optional[time.struct_time]) -> Optional[datetime]:
    """Convert feedparser's ``*_parsed`` UTC struct_time to an aware datetime."""
    if value is None:
        return None
    return from_epoch(calendar.timegm(value))


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Best-effort conversion of upstream timestamp shapes to UTC datetimes."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, time.struct_time):
        return from_struct_time(value)
    if isinstance(value, (int, float)):
        return from_epoch(value)
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return ensure_utc(datetime.fromisoformat(text))
        except ValueError:
            return None
    return None


def is_recent(published_at: datetime, window: timedelta, now: Optional[datetime] = None) -> bool:
    """True when ``published_at`` lies within ``window`` before ``now``.

    Timestamps slightly in the future (clock skew upstream) count as recent.
    """
    reference = now or utcnow()
    return ensure_utc(published_at) >= reference - window


def time_ago(published_at: datetime, now: Optional[datetime] = None) -> str:
    """Relative display string: ``"5 min ago"``, ``"3 hours ago"``, ``"2 days ago"``."""
    reference = now or utcnow()
    minutes = max(0, int((reference - ensure_utc(published_at)).total_seconds() // 60))
    if minutes < 60:
        return f"{minutes} min ago"
    if minutes < 1440:
        return f"{minutes // 60} hours ago"
    return f"{minutes // 1440} days ago"
