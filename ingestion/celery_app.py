"""Celery application bootstrap."""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any, Dict

from celery import Celery
from celery.schedules import schedule as celery_schedule

from .settings import Settings, get_settings
from .utils.logging import configure_logging

_CELERY_APP: Celery | None = None

SCAN_TASK_NAME = "ingestion.tasks.scan.run_scan_task"


def create_celery_app(settings: Settings | None = None) -> Celery:
    """Build a Celery instance from settings."""
    config = settings or get_settings()
    configure_logging(config.structlog_level, json_enabled=config.log_json)

    app = Celery("ingestion", broker=config.redis_url, backend=config.redis_url)
    app.conf.update(
        task_default_queue="ingestion.default",
        task_default_exchange="ingestion",
        task_default_routing_key="ingestion.default",
        task_soft_time_limit=config.celery_task_soft_time_limit,
        worker_concurrency=config.celery_worker_concurrency,
        beat_schedule=_build_beat_schedule(config),
        timezone="UTC",
        enable_utc=True,
        worker_send_task_events=True,
        task_send_sent_event=True,
    )

    app.autodiscover_tasks(["ingestion.tasks"], related_name="scan")
    _install_signal_handlers(app)
    return app


def get_celery_app() -> Celery:
    """Return the singleton Celery instance."""
    global _CELERY_APP
    if _CELERY_APP is None:
        _CELERY_APP = create_celery_app()
    return _CELERY_APP


def _build_beat_schedule(settings: Settings) -> Dict[str, Dict[str, Any]]:
    # periodic scans are opt-in
    if settings.scan_interval_minutes is None:
        return {}
    return {
        "scan.periodic": {
            "task": SCAN_TASK_NAME,
            "schedule": celery_schedule(timedelta(minutes=settings.scan_interval_minutes)),
            "args": (settings.scan_use_ai,),
            "options": {"queue": "ingestion.scan"},
        }
    }


def _install_signal_handlers(app: Celery) -> None:
    from celery import signals

    logger = logging.getLogger("ingestion.worker")

    @signals.worker_shutdown.connect  # type: ignore[attr-defined]
    def _on_worker_shutdown(sender=None, **kwargs):  # noqa: ANN001
        logger.info("worker.shutdown", extra={"sender": str(sender)})
