import json

import pytest

from ingestion.settings import Settings, get_settings, reset_settings_cache


@pytest.fixture(autouse=True)
def _reset_settings_cache():
    reset_settings_cache()
    yield
    reset_settings_cache()


def test_defaults():
    settings = get_settings()

    assert settings.redis_url == "redis://localhost:6379/0"
    assert settings.rate_limit_max_requests == 10
    assert settings.rate_limit_window_seconds == 60
    assert settings.scan_display_limit == 12
    assert settings.reddit_subreddit == "MachineLearning"
    assert len(settings.enabled_feeds) == 5
    assert settings.scan_interval_minutes is None


def test_get_settings_reads_environment(monkeypatch):
    monkeypatch.setenv("INGESTION_REDIS_URL", "redis://cache:6379/1")
    monkeypatch.setenv("REDDIT_SUBREDDIT", "r/artificial")
    monkeypatch.setenv("TRUSTED_DOMAINS_EXTRA", "Example.org, blog.example.com ,")
    monkeypatch.setenv(
        "RSS_FEEDS",
        json.dumps(
            [
                {"name": "a", "url": "https://openai.com/news/rss.xml", "category": "industry"},
                {"name": "b", "url": "https://www.wired.com/feed/rss", "enabled": False},
            ]
        ),
    )

    settings = get_settings()

    assert settings.redis_url == "redis://cache:6379/1"
    assert settings.reddit_subreddit == "artificial"
    assert settings.extra_trusted_domains == ["example.org", "blog.example.com"]
    assert [f.name for f in settings.enabled_feeds] == ["a"]
    assert settings.rss_feeds[0].category == "INDUSTRY"


def test_reset_settings_cache_reloads(monkeypatch):
    monkeypatch.setenv("SCAN_DISPLAY_LIMIT", "5")
    first = get_settings()
    assert first.scan_display_limit == 5

    monkeypatch.setenv("SCAN_DISPLAY_LIMIT", "7")
    assert get_settings().scan_display_limit == 5

    reset_settings_cache()
    assert get_settings().scan_display_limit == 7


def test_duplicate_feed_raises(monkeypatch):
    feed = {"name": "a", "url": "https://openai.com/news/rss.xml"}
    monkeypatch.setenv("RSS_FEEDS", json.dumps([feed, dict(feed, name="b")]))

    with pytest.raises(RuntimeError) as exc:
        get_settings()

    assert "duplicate feed entry" in str(exc.value)


def test_invalid_rss_json_raises(monkeypatch):
    monkeypatch.setenv("RSS_FEEDS", "not-json")
    with pytest.raises(RuntimeError):
        get_settings()


def test_page_size_cap():
    with pytest.raises(Exception):
        Settings(hn_max_results=500)
