"""In-memory audit trail of security relevant events."""

from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Deque, List, Literal, Optional

from ingestion.utils.logging import get_logger
from ingestion.utils.timefmt import utcnow

SecurityEventType = Literal[
    "url_validation_failed",
    "rate_limit_exceeded",
    "request_failed",
    "request_timeout",
]

_logger = get_logger("ingestion.security")


@dataclass(frozen=True)
class SecurityEvent:
    type: SecurityEventType
    details: str
    url: Optional[str] = None
    timestamp: datetime = field(default_factory=utcnow)


class SecurityAuditLog:
    """Keeps the most recent ``max_events`` events, newest first."""

    def __init__(self, max_events: int = 100) -> None:
        self._events: Deque[SecurityEvent] = deque(maxlen=max_events)
        self._lock = threading.Lock()

    def log(self, type: SecurityEventType, details: str, url: Optional[str] = None) -> SecurityEvent:  # noqa: A002
        event = SecurityEvent(type=type, details=details, url=url)
        with self._lock:
            self._events.appendleft(event)
        _logger.warning("security.%s", type, extra={"details": details, "url": url})
        return event

    def events(self) -> List[SecurityEvent]:
        with self._lock:
            return list(self._events)

    def events_by_type(self, type: SecurityEventType) -> List[SecurityEvent]:  # noqa: A002
        return [e for e in self.events() if e.type == type]

    def clear(self) -> None:
        with self._lock:
            self._events.clear()


_DEFAULT_LOG = SecurityAuditLog()


def get_security_log() -> SecurityAuditLog:
    return _DEFAULT_LOG
