"""Celery tasks for the scan workflow."""

from __future__ import annotations

from typing import Any, Callable, Dict

from celery import shared_task

from ingestion.services.aggregator import AllSourcesFailedError, NewsAggregator, get_aggregator
from ingestion.utils.logging import get_logger


# Aggregator factory is pluggable for tests; defaults to the process-wide instance.
AGGREGATOR_FACTORY: Callable[[], NewsAggregator] | None = None


def _get_aggregator() -> NewsAggregator:
    if AGGREGATOR_FACTORY is not None:
        return AGGREGATOR_FACTORY()
    return get_aggregator()


def scan_core(use_ai: bool = False) -> Dict[str, Any]:
    """Run one scan and return the JSON-ready result; test-friendly."""
    logger = get_logger(__name__)
    aggregator = _get_aggregator()
    try:
        result = aggregator.run_scan(use_ai=use_ai)
    except AllSourcesFailedError as exc:
        logger.error("scan.all_failed", extra={"failures": exc.failures})
        raise
    return result.model_dump(mode="json", by_alias=True)


@shared_task(name="ingestion.tasks.scan.run_scan_task")
def run_scan_task(use_ai: bool = False) -> Dict[str, Any]:  # pragma: no cover - wrapper
    return scan_core(use_ai)
