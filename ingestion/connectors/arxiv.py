"""arXiv API fetcher (Atom feed of the newest cs.AI / cs.LG / cs.CL papers)."""

from __future__ import annotations

from datetime import timedelta
from typing import Any, Dict, List

from .base import BaseFetcher, PermanentError, RawRecord
from .schemas import FeedEntry, parse_feed_document


class ArxivFetcher(BaseFetcher):
    """Newest submissions; the query itself scopes topicality, so no keyword filter."""

    source = "ArXiv"
    category = "RESEARCH"
    default_limit = 5
    default_recency = timedelta(days=3)
    topical_filter = False

    def __init__(
        self,
        *,
        endpoint: str = "https://export.arxiv.org/api/query",
        query: str = "cat:cs.AI OR cat:cs.LG OR cat:cs.CL",
        max_results: int = 10,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.endpoint = endpoint
        self.query = query
        self.max_results = max_results

    def _fetch_raw(self) -> List[Dict[str, Any]]:
        resp = self._get(
            self.endpoint,
            params={
                "search_query": self.query,
                "start": 0,
                "max_results": self.max_results,
                "sortBy": "submittedDate",
                "sortOrder": "descending",
            },
        )
        return [{"content": resp.text}]

    def _parse(self, payloads: List[Dict[str, Any]]) -> List[RawRecord]:
        records: List[RawRecord] = []
        for payload in payloads:
            parsed = parse_feed_document(payload["content"])
            if parsed.bozo and not parsed.entries:
                raise PermanentError(f"unparsable arXiv feed: {parsed.get('bozo_exception')}")
            for entry in parsed.entries:
                item = FeedEntry.from_entry(entry)
                records.append(RawRecord(title=item.title, url=item.link, published_at=item.published_at))
        return records
