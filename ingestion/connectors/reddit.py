"""Reddit fetcher (hot posts of one subreddit via the public JSON listing)."""

from __future__ import annotations

from datetime import timedelta
from typing import Any, Dict, List

from .base import BaseFetcher, RawRecord
from .schemas import RedditListing

REDDIT_BASE = "https://www.reddit.com"


class RedditFetcher(BaseFetcher):
    category = "COMMUNITY"
    default_limit = 5
    default_recency = timedelta(hours=48)

    def __init__(self, *, subreddit: str = "MachineLearning", max_results: int = 25, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.subreddit = subreddit
        self.max_results = max_results
        self.source = f"Reddit r/{subreddit}"

    def _fetch_raw(self) -> List[Dict[str, Any]]:
        resp = self._get(
            f"{REDDIT_BASE}/r/{self.subreddit}/hot.json",
            params={"limit": self.max_results, "raw_json": 1},
        )
        return [resp.json()]

    def _parse(self, payloads: List[Dict[str, Any]]) -> List[RawRecord]:
        records: List[RawRecord] = []
        for payload in payloads:
            listing = RedditListing.model_validate(payload)
            for child in listing.data.children:
                post = child.data
                if post.stickied or post.over_18:
                    continue
                records.append(
                    RawRecord(
                        title=post.title,
                        url=f"{REDDIT_BASE}{post.permalink}",
                        published_at=post.published_at,
                    )
                )
        return records
