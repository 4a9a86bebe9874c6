"""Hacker News fetcher backed by the Algolia search API."""

from __future__ import annotations

from datetime import timedelta
from typing import Any, Dict, List

from ingestion.services.trusted_domains import validate_url
from ingestion.utils.timefmt import utcnow

from .base import BaseFetcher, RawRecord
from .schemas import HNSearchResponse

HN_ITEM_URL = "https://news.ycombinator.com/item?id={id}"


class HackerNewsFetcher(BaseFetcher):
    source = "Hacker News"
    category = "TECH"
    default_limit = 3
    default_recency = timedelta(hours=24)

    def __init__(
        self,
        *,
        endpoint: str = "https://hn.algolia.com/api/v1/search_by_date",
        query: str = "AI",
        max_results: int = 30,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.endpoint = endpoint
        self.query = query
        self.max_results = max_results

    def _fetch_raw(self) -> List[Dict[str, Any]]:
        since = int((utcnow() - self.recency).timestamp())
        resp = self._get(
            self.endpoint,
            params={
                "query": self.query,
                "tags": "story",
                "hitsPerPage": self.max_results,
                "numericFilters": f"created_at_i>{since}",
            },
        )
        return [resp.json()]

    def _link_for(self, object_id: str, url: str | None) -> str:
        # off-list story links fall back to the HN discussion page
        if url and validate_url(url, self._trusted_domains):
            return url
        return HN_ITEM_URL.format(id=object_id)

    def _parse(self, payloads: List[Dict[str, Any]]) -> List[RawRecord]:
        records: List[RawRecord] = []
        for payload in payloads:
            for hit in HNSearchResponse.model_validate(payload).hits:
                if not hit.title:
                    continue
                records.append(
                    RawRecord(
                        title=hit.title,
                        url=self._link_for(hit.object_id, hit.url),
                        published_at=hit.published_at,
                    )
                )
        return records
