"""Configuration models for the scan service."""

from __future__ import annotations

import json
from functools import lru_cache
from typing import Any, List, Optional, Set

from pydantic import (
    BaseModel,
    Field,
    PositiveFloat,
    PositiveInt,
    ValidationError,
    field_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict, SettingsError


DEFAULT_RSS_FEEDS: List[dict] = [
    {"name": "OpenAI News", "url": "https://openai.com/news/rss.xml", "category": "INDUSTRY"},
    {"name": "VentureBeat AI", "url": "https://venturebeat.com/category/ai/feed/", "category": "INDUSTRY"},
    {"name": "Wired AI", "url": "https://www.wired.com/feed/tag/ai/latest/rss", "category": "NEWS"},
    {"name": "The Next Web AI", "url": "https://thenextweb.com/neural/feed", "category": "TECH"},
    {"name": "Analytics India AI", "url": "https://analyticsindiamag.com/feed/", "category": "TECH"},
]


class FeedSource(BaseModel):
    """A single RSS/Atom feed queried by the RSS fetcher."""

    name: str = Field(..., description="Human readable label shown as the item source.")
    url: str = Field(..., description="Absolute feed URL; must be on the trusted domain list.")
    category: str = Field("NEWS", description="Category assigned to every item of this feed.")
    enabled: bool = Field(True, description="Whether the feed is queried.")

    @field_validator("name", "url")
    @classmethod
    def _non_blank(cls, value: str) -> str:
        s = value.strip()
        if not s:
            raise ValueError("feed name/url must not be blank")
        return s

    @field_validator("category")
    @classmethod
    def _category_upper(cls, value: str) -> str:
        category = value.strip().upper()
        if not category:
            raise ValueError("feed category must not be blank")
        return category


class Settings(BaseSettings):
    """Environment settings for fetching and scanning."""

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
        populate_by_name=True,
    )

    redis_url: str = Field(
        "redis://localhost:6379/0",
        alias="INGESTION_REDIS_URL",
        description="Redis DSN used as Celery broker/backend.",
    )
    structlog_level: str = Field("INFO", alias="STRUCTLOG_LEVEL", description="Log level.")
    log_json: bool = Field(False, alias="LOG_JSON", description="Emit logs as JSON lines.")

    http_timeout_seconds: PositiveFloat = Field(
        10.0, alias="HTTP_TIMEOUT_SECONDS", description="Per-request timeout for source fetchers."
    )
    http_user_agent: str = Field(
        "AGI-Detector-Secure/1.0", alias="HTTP_USER_AGENT", description="User-Agent sent upstream."
    )
    rate_limit_max_requests: PositiveInt = Field(
        10, alias="RATE_LIMIT_MAX_REQUESTS", description="Outbound requests allowed per window."
    )
    rate_limit_window_seconds: PositiveFloat = Field(
        60.0, alias="RATE_LIMIT_WINDOW_SECONDS", description="Sliding window length (seconds)."
    )
    fetch_min_interval_seconds: float = Field(
        1.0,
        ge=0.0,
        alias="FETCH_MIN_INTERVAL_SECONDS",
        description="Minimum delay between successive requests of one fetcher.",
    )
    trusted_domains_extra: str = Field(
        "",
        alias="TRUSTED_DOMAINS_EXTRA",
        description="Comma separated domains appended to the built-in allow-list.",
    )

    arxiv_endpoint: str = Field("https://export.arxiv.org/api/query", alias="ARXIV_ENDPOINT")
    arxiv_query: str = Field("cat:cs.AI OR cat:cs.LG OR cat:cs.CL", alias="ARXIV_QUERY")
    arxiv_max_results: PositiveInt = Field(10, alias="ARXIV_MAX_RESULTS")
    arxiv_limit: PositiveInt = Field(5, alias="ARXIV_LIMIT")
    arxiv_recency_hours: PositiveInt = Field(72, alias="ARXIV_RECENCY_HOURS")

    reddit_subreddit: str = Field("MachineLearning", alias="REDDIT_SUBREDDIT")
    reddit_max_results: PositiveInt = Field(25, alias="REDDIT_MAX_RESULTS")
    reddit_limit: PositiveInt = Field(5, alias="REDDIT_LIMIT")
    reddit_recency_hours: PositiveInt = Field(48, alias="REDDIT_RECENCY_HOURS")

    hn_endpoint: str = Field("https://hn.algolia.com/api/v1/search_by_date", alias="HN_ENDPOINT")
    hn_query: str = Field("AI", alias="HN_QUERY")
    hn_max_results: PositiveInt = Field(30, alias="HN_MAX_RESULTS")
    hn_limit: PositiveInt = Field(3, alias="HN_LIMIT")
    hn_recency_hours: PositiveInt = Field(24, alias="HN_RECENCY_HOURS")

    rss_feeds: List[FeedSource] = Field(
        default_factory=lambda: [FeedSource(**feed) for feed in DEFAULT_RSS_FEEDS],
        alias="RSS_FEEDS",
        description="JSON array of {name, url, category, enabled} objects.",
    )
    rss_limit: PositiveInt = Field(6, alias="RSS_LIMIT")
    rss_per_feed_limit: PositiveInt = Field(3, alias="RSS_PER_FEED_LIMIT")
    rss_recency_hours: PositiveInt = Field(72, alias="RSS_RECENCY_HOURS")

    scan_display_limit: PositiveInt = Field(12, alias="SCAN_DISPLAY_LIMIT")
    scan_timeout_seconds: PositiveFloat = Field(
        45.0, alias="SCAN_TIMEOUT_SECONDS", description="Deadline for all fetchers of one scan."
    )
    scan_interval_minutes: Optional[PositiveInt] = Field(
        None, alias="SCAN_INTERVAL_MINUTES", description="Periodic scan interval for Celery beat."
    )
    scan_use_ai: bool = Field(False, alias="SCAN_USE_AI", description="Use the AI classifier on scheduled scans.")
    celery_worker_concurrency: PositiveInt = Field(2, alias="CELERY_WORKER_CONCURRENCY")
    celery_task_soft_time_limit: PositiveInt = Field(120, alias="CELERY_TASK_SOFT_TIME_LIMIT")

    @field_validator("rss_feeds", mode="before")
    @classmethod
    def _parse_rss_feeds(cls, value: Any) -> List[Any]:
        if value in (None, "", []):
            return []
        if isinstance(value, str):
            try:
                parsed = json.loads(value)
            except json.JSONDecodeError as exc:
                raise ValueError("RSS_FEEDS must be a JSON array.") from exc
            return parsed
        if isinstance(value, list):
            return value
        raise ValueError("RSS_FEEDS must be a list.")

    @field_validator("rss_feeds")
    @classmethod
    def _validate_unique_feeds(cls, value: List[FeedSource]) -> List[FeedSource]:
        seen: Set[str] = set()
        for feed in value:
            if feed.url in seen:
                raise ValueError(f"duplicate feed entry: {feed.url}")
            seen.add(feed.url)
        return value

    @field_validator("reddit_subreddit")
    @classmethod
    def _validate_subreddit(cls, value: str) -> str:
        name = value.strip().removeprefix("r/")
        if not name or not name.replace("_", "").isalnum():
            raise ValueError("REDDIT_SUBREDDIT must be a bare subreddit name.")
        return name

    @field_validator("arxiv_max_results", "reddit_max_results", "hn_max_results")
    @classmethod
    def _validate_page_size(cls, v: int) -> int:
        if v > 100:
            raise ValueError("upstream page size must be <= 100.")
        return v

    @property
    def extra_trusted_domains(self) -> List[str]:
        return [d.strip().lower() for d in self.trusted_domains_extra.split(",") if d.strip()]

    @property
    def enabled_feeds(self) -> List[FeedSource]:
        return [feed for feed in self.rss_feeds if feed.enabled]


@lru_cache()
def get_settings() -> Settings:
    """Return the Settings instance built from the environment."""
    try:
        return Settings()
    except (ValidationError, SettingsError) as exc:
        raise RuntimeError(f"environment validation failed: {exc}") from exc


def reset_settings_cache() -> None:
    """Clear the Settings LRU cache (for tests)."""
    get_settings.cache_clear()  # type: ignore[attr-defined]
