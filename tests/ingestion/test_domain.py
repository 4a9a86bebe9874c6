from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from ingestion.models.domain import AIAnalysis, AggregateResult, NewsItem, tier_rank
from ingestion.utils.timefmt import is_recent, parse_timestamp, time_ago


def _item(**overrides) -> NewsItem:
    data = dict(
        title="GPT-5 announced",
        source="Hacker News",
        published_at=datetime.now(timezone.utc) - timedelta(minutes=5),
        url="https://news.ycombinator.com/item?id=1",
        relevance="high",
        category="TECH",
    )
    data.update(overrides)
    return NewsItem(**data)


def test_news_item_is_frozen_and_reclassified_by_copy():
    item = _item()
    with pytest.raises(ValidationError):
        item.title = "changed"  # type: ignore[misc]

    analysis = AIAnalysis(reasoning="Major model release", key_insights=["new model"], agi_probability=40)
    updated = item.with_classification("critical", analysis)
    assert item.relevance == "high" and item.ai_analysis is None
    assert updated.relevance == "critical"
    assert updated.agi_probability == 40

    with pytest.raises(ValueError):
        item.with_classification("urgent")


def test_news_item_rejects_empty_title_and_unknown_tier():
    with pytest.raises(ValidationError):
        _item(title="")
    with pytest.raises(ValidationError):
        _item(relevance="urgent")


def test_naive_timestamps_are_utc():
    item = _item(published_at=datetime(2025, 1, 1, 12, 0))
    assert item.published_at.tzinfo is not None
    assert item.published_at.utcoffset() == timedelta(0)


def test_camel_case_serialization():
    item = _item(ai_analysis=AIAnalysis(reasoning="r", key_insights=["k"], agi_probability=12.5))
    data = item.model_dump(mode="json", by_alias=True)
    assert data["publishedAt"].startswith(str(item.published_at.year))
    assert data["aiAnalysis"]["agiProbability"] == 12.5
    assert data["aiAnalysis"]["keyInsights"] == ["k"]
    assert data["timeAgo"] == "5 min ago"


def test_agi_probability_bounds():
    with pytest.raises(ValidationError):
        AIAnalysis(reasoning="r", agi_probability=101)
    with pytest.raises(ValidationError):
        AggregateResult(detected=False, confidence=-1, reasoning="r")


def test_tier_rank_order():
    assert [tier_rank(t) for t in ("critical", "high", "medium", "low")] == [0, 1, 2, 3]


def test_time_ago_buckets():
    now = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)
    assert time_ago(now - timedelta(minutes=59), now) == "59 min ago"
    assert time_ago(now - timedelta(hours=3), now) == "3 hours ago"
    assert time_ago(now - timedelta(days=2, hours=1), now) == "2 days ago"
    assert time_ago(now + timedelta(minutes=5), now) == "0 min ago"


def test_recency_and_parsing():
    now = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)
    assert is_recent(now - timedelta(hours=23), timedelta(hours=24), now) is True
    assert is_recent(now - timedelta(hours=25), timedelta(hours=24), now) is False
    assert parse_timestamp("2025-06-01T10:00:00Z") == datetime(2025, 6, 1, 10, 0, tzinfo=timezone.utc)
    assert parse_timestamp("yesterday") is None
    assert parse_timestamp(0) == datetime(1970, 1, 1, tzinfo=timezone.utc)
