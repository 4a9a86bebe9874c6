"""RSS/Atom fetcher over a configurable list of feeds."""

from __future__ import annotations

from datetime import timedelta
from typing import Any, Dict, Iterable, List, Optional, Sequence

import httpx

from ingestion.models.domain import NewsItem
from ingestion.settings import FeedSource

from .base import BaseFetcher, ConnectorError, PermanentError, RawRecord, TransientError, _dedupe_key
from .schemas import FeedEntry, parse_feed_document


class RSSFeedFetcher(BaseFetcher):
    """Queries each feed independently.

    A failing feed is logged and skipped; the batch only fails when every
    enabled feed failed. Each feed contributes at most ``per_feed_limit``
    items so one busy feed cannot crowd out the rest.
    """

    source = "RSS"
    category = "NEWS"
    default_limit = 6
    default_recency = timedelta(hours=72)

    def __init__(self, *, feeds: Sequence[FeedSource] = (), per_feed_limit: int = 3, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.feeds = [f for f in feeds if f.enabled]
        self.per_feed_limit = per_feed_limit

    def _fetch_raw(self) -> List[Dict[str, Any]]:
        payloads: List[Dict[str, Any]] = []
        errors: List[str] = []
        for feed in self.feeds:
            try:
                resp = self._get(feed.url)
            except (ConnectorError, httpx.HTTPError) as exc:
                self._logger.warning("fetch.feed_failed", extra={"feed": feed.name, "error": str(exc)})
                errors.append(f"{feed.name}: {exc}")
                continue
            payloads.append({"feed": feed.name, "category": feed.category, "content": resp.text})
        if self.feeds and not payloads:
            raise TransientError("all RSS feeds failed: " + "; ".join(errors))
        return payloads

    def _parse(self, payloads: List[Dict[str, Any]]) -> List[RawRecord]:
        records: List[RawRecord] = []
        for payload in payloads:
            parsed = parse_feed_document(payload["content"])
            if parsed.bozo and not parsed.entries:
                if len(payloads) == 1:
                    raise PermanentError(f"unparsable feed {payload.get('feed')}")
                self._logger.warning("fetch.feed_unparsable", extra={"feed": payload.get("feed")})
                continue
            for entry in parsed.entries:
                item = FeedEntry.from_entry(entry)
                records.append(
                    RawRecord(
                        title=item.title,
                        url=item.link,
                        published_at=item.published_at,
                        source=payload.get("feed"),
                        category=payload.get("category"),
                    )
                )
        return records

    def _normalize(self, records: Iterable[RawRecord], limit: int, window: timedelta) -> List[NewsItem]:
        by_feed: Dict[Optional[str], List[RawRecord]] = {}
        for record in records:
            by_feed.setdefault(record.source, []).append(record)
        items: List[NewsItem] = []
        seen: set[str] = set()
        for feed_records in by_feed.values():
            for item in super()._normalize(feed_records, self.per_feed_limit, window):
                key = _dedupe_key(item.title)
                if key in seen:
                    continue
                seen.add(key)
                items.append(item)
        items.sort(key=lambda i: i.published_at, reverse=True)
        return items[:limit]
