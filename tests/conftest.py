from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]

if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


@pytest.fixture(autouse=True)
def _isolated_config(monkeypatch, tmp_path):
    # keep a developer's .env out of the tests and start from clean caches
    monkeypatch.chdir(tmp_path)
    for key in ("LLM_API_KEY", "LLM_BASE_URL", "LLM_AUTH_TOKEN", "RSS_FEEDS", "SCAN_INTERVAL_MINUTES"):
        monkeypatch.delenv(key, raising=False)

    from analysis.settings import reset_detection_settings_cache
    from ingestion.settings import reset_settings_cache
    from llm.settings import reset_llm_settings_cache

    reset_settings_cache()
    reset_detection_settings_cache()
    reset_llm_settings_cache()
    yield
    reset_settings_cache()
    reset_detection_settings_cache()
    reset_llm_settings_cache()
