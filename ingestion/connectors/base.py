"""Fetcher abstraction, errors, and normalization helpers."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Iterable, List, Optional

import httpx
from pydantic import BaseModel, ValidationError

from analysis.classifier.keywords import KeywordVerdict, classify
from ingestion.models.domain import NewsItem, SourceBatch
from ingestion.services.sanitizer import sanitize_text
from ingestion.services.trusted_domains import sanitize_url
from ingestion.utils.timefmt import is_recent, utcnow


class ConnectorError(Exception):
    """Base connector error."""


class TransientError(ConnectorError):
    """Temporary upstream condition (timeout, 429, 5xx, network hiccup)."""


class PermanentError(ConnectorError):
    """Non-retryable error (4xx semantics, unparsable payload)."""


class RateLimitExceeded(ConnectorError):
    """The process-wide outbound request window is full."""


class UrlNotAllowedError(PermanentError):
    """Target URL failed allow-list validation."""


class RawRecord(BaseModel):
    """Source-agnostic record produced by a fetcher before classification."""

    title: str
    url: str
    published_at: Optional[datetime] = None
    source: Optional[str] = None
    category: Optional[str] = None


ProviderFn = Callable[[], List[Dict[str, Any]]]
Classifier = Callable[[str], KeywordVerdict]


def _dedupe_key(title: str) -> str:
    return " ".join(title.lower().split())


class BaseFetcher(ABC):
    """Template for all source fetchers.

    ``fetch`` never raises: any upstream, validation or rate-limit error is
    logged and turned into an empty ``SourceBatch`` carrying the message.
    Subclasses implement ``_fetch_raw`` (HTTP call or injected provider) and
    ``_parse`` (per-source response schema -> ``RawRecord``).
    """

    source: str
    category: str
    default_limit: int = 5
    default_recency: timedelta = timedelta(hours=48)
    topical_filter: bool = True

    def __init__(
        self,
        *,
        http: Any = None,
        gate: Any = None,
        provider: Optional[ProviderFn] = None,
        trusted_domains: Optional[Iterable[str]] = None,
        limit: Optional[int] = None,
        recency: Optional[timedelta] = None,
        classifier: Optional[Classifier] = None,
    ) -> None:
        self._http = http
        self._gate = gate
        self._provider = provider
        self._trusted_domains = tuple(trusted_domains) if trusted_domains is not None else None
        self.limit = limit or self.default_limit
        self.recency = recency or self.default_recency
        self._classifier = classifier
        self._logger = logging.getLogger(f"ingestion.connectors.{self.__class__.__name__}")

    def fetch(self, limit: Optional[int] = None, recency: Optional[timedelta] = None) -> SourceBatch:
        effective_limit = limit or self.limit
        window = recency or self.recency
        try:
            payloads = self._provider() if self._provider is not None else self._fetch_raw()
            records = self._parse(payloads)
            items = self._normalize(records, effective_limit, window)
        except (ConnectorError, httpx.HTTPError, ValidationError, ValueError, KeyError, TypeError) as exc:
            self._logger.warning(
                "fetch.failed",
                extra={"source": self.source, "error": str(exc), "error_type": type(exc).__name__},
            )
            return SourceBatch(source=self.source, items=[], error=f"{type(exc).__name__}: {exc}")
        self._logger.info("fetch.done", extra={"source": self.source, "items": len(items)})
        return SourceBatch(source=self.source, items=items)

    @abstractmethod
    def _fetch_raw(self) -> List[Dict[str, Any]]:
        """Return raw payload dicts from the upstream (one per HTTP response)."""

    @abstractmethod
    def _parse(self, payloads: List[Dict[str, Any]]) -> List[RawRecord]:
        """Validate payloads against the source schema and map them to records."""

    def _get(self, url: str, **kwargs: Any) -> httpx.Response:
        if self._http is None:
            raise PermanentError(f"{self.source}: no HTTP client configured")
        if self._gate is not None:
            self._gate.wait()
        return self._http.get(url, **kwargs)

    def _classify(self, title: str) -> KeywordVerdict:
        return (self._classifier or classify)(title)

    def _normalize(self, records: Iterable[RawRecord], limit: int, window: timedelta) -> List[NewsItem]:
        now = utcnow()
        seen: set[str] = set()
        items: List[NewsItem] = []
        for record in records:
            title = sanitize_text(record.title)
            if not title or record.published_at is None:
                continue
            if not is_recent(record.published_at, window, now):
                continue
            verdict = self._classify(title)
            if self.topical_filter and not verdict.is_topical:
                continue
            key = _dedupe_key(title)
            if key in seen:
                continue
            seen.add(key)
            items.append(
                NewsItem(
                    title=title,
                    source=sanitize_text(record.source or self.source),
                    published_at=record.published_at,
                    url=sanitize_url(record.url, self._trusted_domains),
                    relevance=verdict.relevance,
                    category=sanitize_text(record.category or self.category),
                )
            )
            if len(items) >= limit:
                break
        return items
