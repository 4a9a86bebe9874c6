"""Response schemas for upstream APIs.

Only the fields the fetchers consume are declared; unknown keys are ignored,
missing or mistyped required keys fail validation at the fetcher boundary.
"""

from __future__ import annotations

import io
from datetime import datetime
from typing import Any, List, Mapping, Optional, Union

import feedparser
from pydantic import BaseModel, ConfigDict, Field

from ingestion.utils.timefmt import from_epoch, from_struct_time, parse_timestamp


class _Upstream(BaseModel):
    model_config = ConfigDict(extra="ignore")


class RedditPost(_Upstream):
    title: str
    permalink: str
    created_utc: float
    stickied: bool = False
    over_18: bool = False

    @property
    def published_at(self) -> datetime:
        return from_epoch(self.created_utc)


class RedditChild(_Upstream):
    kind: Optional[str] = None
    data: RedditPost


class RedditListingData(_Upstream):
    children: List[RedditChild] = Field(default_factory=list)


class RedditListing(_Upstream):
    kind: Optional[str] = None
    data: RedditListingData


class HNHit(_Upstream):
    object_id: str = Field(..., alias="objectID")
    title: Optional[str] = None
    url: Optional[str] = None
    created_at_i: int

    @property
    def published_at(self) -> datetime:
        return from_epoch(self.created_at_i)


class HNSearchResponse(_Upstream):
    hits: List[HNHit] = Field(default_factory=list)


class FeedEntry(_Upstream):
    """One RSS/Atom entry as parsed by feedparser."""

    title: str = ""
    link: str = ""
    published_at: Optional[datetime] = None

    @classmethod
    def from_entry(cls, entry: Mapping[str, Any]) -> "FeedEntry":
        published = from_struct_time(entry.get("published_parsed")) or from_struct_time(
            entry.get("updated_parsed")
        )
        if published is None:
            published = parse_timestamp(entry.get("published") or entry.get("updated"))
        link = entry.get("link") or entry.get("id") or ""
        return cls(title=entry.get("title") or "", link=link, published_at=published)


def parse_feed_document(content: Union[str, bytes]) -> Any:
    """Parse an RSS/Atom document already fetched by us.

    Wrapped in a stream so feedparser never treats the body as a URL or path.
    """
    raw = content.encode("utf-8") if isinstance(content, str) else content
    return feedparser.parse(io.BytesIO(raw))
