"""Wire the default fetchers from settings."""

from __future__ import annotations

from datetime import timedelta
from typing import List, Optional, Sequence

from ingestion.services.http_client import SecureHttpClient
from ingestion.services.rate_limiter import RequestGate
from ingestion.settings import Settings, get_settings

from .arxiv import ArxivFetcher
from .base import BaseFetcher
from .hacker_news import HackerNewsFetcher
from .reddit import RedditFetcher
from .rss import RSSFeedFetcher


def build_default_fetchers(
    settings: Optional[Settings] = None,
    http: Optional[SecureHttpClient] = None,
    trusted_domains: Optional[Sequence[str]] = None,
) -> List[BaseFetcher]:
    """arXiv, Reddit, Hacker News and RSS, each with its own request gate."""
    cfg = settings or get_settings()
    domains = tuple(trusted_domains) if trusted_domains is not None else (http.trusted_domains if http else None)

    def gate() -> RequestGate:
        return RequestGate(cfg.fetch_min_interval_seconds)

    common = {"http": http, "trusted_domains": domains}
    return [
        ArxivFetcher(
            endpoint=cfg.arxiv_endpoint,
            query=cfg.arxiv_query,
            max_results=cfg.arxiv_max_results,
            limit=cfg.arxiv_limit,
            recency=timedelta(hours=cfg.arxiv_recency_hours),
            gate=gate(),
            **common,
        ),
        RedditFetcher(
            subreddit=cfg.reddit_subreddit,
            max_results=cfg.reddit_max_results,
            limit=cfg.reddit_limit,
            recency=timedelta(hours=cfg.reddit_recency_hours),
            gate=gate(),
            **common,
        ),
        HackerNewsFetcher(
            endpoint=cfg.hn_endpoint,
            query=cfg.hn_query,
            max_results=cfg.hn_max_results,
            limit=cfg.hn_limit,
            recency=timedelta(hours=cfg.hn_recency_hours),
            gate=gate(),
            **common,
        ),
        RSSFeedFetcher(
            feeds=cfg.enabled_feeds,
            per_feed_limit=cfg.rss_per_feed_limit,
            limit=cfg.rss_limit,
            recency=timedelta(hours=cfg.rss_recency_hours),
            gate=gate(),
            **common,
        ),
    ]
