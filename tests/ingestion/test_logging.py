from __future__ import annotations

import json
import logging

from ingestion.utils.logging import JsonFormatter, KeyValueFormatter


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("ingestion.test", logging.INFO, __file__, 1, "scan.done", (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_merges_extra_fields():
    line = JsonFormatter().format(_record(trace_id="abc", items=3, failed_sources=["RSS"]))
    payload = json.loads(line)
    assert payload["event"] == "scan.done"
    assert payload["level"] == "INFO"
    assert payload["trace_id"] == "abc"
    assert payload["items"] == 3
    assert payload["failed_sources"] == ["RSS"]
    assert "msg" not in payload


def test_key_value_formatter_appends_extras():
    line = KeyValueFormatter("%(levelname)s %(message)s").format(_record(source="ArXiv"))
    assert line == "INFO scan.done source=ArXiv"
