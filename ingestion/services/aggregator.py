"""Scan orchestrator: concurrent fan-out, classification, ranking.

``NewsAggregator.run_scan`` queries every fetcher in parallel, waits for all
of them (bounded by an overall deadline), optionally refines tiers with the
batch AI classifier and returns a ranked, truncated ``AggregateResult``.
"""

from __future__ import annotations

import logging
import uuid
from concurrent.futures import Future, ThreadPoolExecutor, wait
from functools import lru_cache
from typing import Dict, List, Optional, Sequence, Tuple

from analysis.classifier.batch import BatchClassifier
from analysis.classifier.keywords import summarize_detection
from analysis.models.domain import BatchOutcome, HeadlineInput
from analysis.settings import DetectionSettings, get_detection_settings
from ingestion.connectors.base import BaseFetcher
from ingestion.connectors.registry import build_default_fetchers
from ingestion.models.domain import AggregateResult, NewsItem, SourceBatch, tier_rank
from ingestion.services.http_client import SecureHttpClient
from ingestion.services.rate_limiter import SlidingWindowRateLimiter
from ingestion.services.trusted_domains import build_domain_list
from ingestion.settings import Settings, get_settings
from ingestion.utils.timefmt import utcnow
from llm.client.openai_client import OpenAIClient
from llm.settings import LLMSettings, get_llm_settings

logger = logging.getLogger(__name__)

_HEADLINE_MAX_CHARS = 512
_SOURCE_MAX_CHARS = 128


class AllSourcesFailedError(RuntimeError):
    """Every fetcher of a scan failed; there is nothing to show."""

    def __init__(self, failures: Dict[str, str]):
        self.failures = dict(failures)
        super().__init__("all sources failed: " + ", ".join(sorted(self.failures)))


def sort_key(item: NewsItem) -> Tuple[int, int, float]:
    """Tier first, then model probability (descending); unanalysed items last within a tier."""
    probability = item.agi_probability
    if probability is None:
        return (tier_rank(item.relevance), 1, 0.0)
    return (tier_rank(item.relevance), 0, -probability)


def rank_items(items: Sequence[NewsItem]) -> List[NewsItem]:
    return sorted(items, key=sort_key)


def apply_outcome(items: Sequence[NewsItem], outcome: BatchOutcome) -> List[NewsItem]:
    """Replace tiers (and attach analyses) from a batch outcome keyed by input order."""
    if len(outcome.classifications) != len(items):
        raise ValueError("classification count does not match item count")
    updated: List[NewsItem] = []
    for item, classification in zip(items, outcome.classifications):
        if classification.kind == "ai":
            updated.append(item.with_classification(classification.relevance, classification.to_analysis()))
        else:
            updated.append(item.with_classification(classification.relevance))
    return updated


class NewsAggregator:
    def __init__(
        self,
        fetchers: Sequence[BaseFetcher],
        classifier: Optional[BatchClassifier] = None,
        settings: Optional[Settings] = None,
        detection_settings: Optional[DetectionSettings] = None,
    ) -> None:
        if not fetchers:
            raise ValueError("at least one fetcher is required")
        self.fetchers = list(fetchers)
        self.classifier = classifier
        self.settings = settings or get_settings()
        self.detection_settings = detection_settings or get_detection_settings()

    @property
    def sources(self) -> List[str]:
        return [f.source for f in self.fetchers]

    def _gather(self, trace_id: str) -> Tuple[List[NewsItem], List[str]]:
        batches: List[SourceBatch] = []
        failures: Dict[str, str] = {}
        executor = ThreadPoolExecutor(max_workers=len(self.fetchers), thread_name_prefix="scan")
        try:
            futures: Dict[Future[SourceBatch], BaseFetcher] = {
                executor.submit(fetcher.fetch): fetcher for fetcher in self.fetchers
            }
            done, not_done = wait(futures, timeout=float(self.settings.scan_timeout_seconds))
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        for future in not_done:
            failures[futures[future].source] = "timed out"
        for future in done:
            source = futures[future].source
            try:
                batch = future.result()
            except Exception as exc:  # noqa: BLE001 - a broken fetcher only loses its own items
                failures[source] = f"{type(exc).__name__}: {exc}"
                continue
            if batch.failed:
                failures[source] = batch.error or "failed"
            else:
                batches.append(batch)

        for source, error in failures.items():
            logger.warning("scan.source_failed", extra={"trace_id": trace_id, "source": source, "error": error})
        if len(failures) == len(self.fetchers):
            raise AllSourcesFailedError(failures)

        # keep fetcher order so ties resolve deterministically
        order = {name: idx for idx, name in enumerate(self.sources)}
        batches.sort(key=lambda b: order.get(b.source, len(order)))
        items = [item for batch in batches for item in batch.items]
        failed = [s for s in self.sources if s in failures]
        return items, failed

    def run_scan(self, use_ai: bool = False) -> AggregateResult:
        trace_id = uuid.uuid4().hex
        logger.info(
            "scan.start",
            extra={"trace_id": trace_id, "use_ai": use_ai, "sources": self.sources},
        )
        items, failed = self._gather(trace_id)

        ai_assisted = False
        if use_ai and self.classifier is not None and items:
            headlines = [
                HeadlineInput(title=item.title[:_HEADLINE_MAX_CHARS], source=item.source[:_SOURCE_MAX_CHARS])
                for item in items
            ]
            outcome = self.classifier.classify(headlines)
            items = apply_outcome(items, outcome)
            ai_assisted = outcome.ai_assisted
            detected = outcome.overall.detected
            confidence = outcome.overall.confidence
            reasoning = outcome.overall.reasoning
        else:
            if use_ai and self.classifier is None:
                logger.info("scan.ai_unavailable", extra={"trace_id": trace_id})
            verdict = summarize_detection([(i.title, i.relevance) for i in items], self.detection_settings)
            detected, confidence, reasoning = verdict.detected, verdict.confidence, verdict.reasoning

        ranked = rank_items(items)[: self.settings.scan_display_limit]
        result = AggregateResult(
            items=ranked,
            detected=detected,
            confidence=confidence,
            reasoning=reasoning,
            sources=self.sources,
            failed_sources=failed,
            ai_assisted=ai_assisted,
            scanned_at=utcnow(),
        )
        logger.info(
            "scan.done",
            extra={
                "trace_id": trace_id,
                "items": len(items),
                "shown": len(ranked),
                "failed_sources": failed,
                "detected": detected,
                "confidence": confidence,
                "ai_assisted": ai_assisted,
            },
        )
        return result


def build_aggregator(
    settings: Optional[Settings] = None,
    llm_settings: Optional[LLMSettings] = None,
    detection_settings: Optional[DetectionSettings] = None,
) -> NewsAggregator:
    """Assemble the production wiring: one limiter shared by fetchers and the AI call."""
    cfg = settings or get_settings()
    llm_cfg = llm_settings or get_llm_settings()
    detection = detection_settings or get_detection_settings()

    limiter = SlidingWindowRateLimiter(cfg.rate_limit_max_requests, cfg.rate_limit_window_seconds)
    domains = build_domain_list(cfg.extra_trusted_domains)
    http = SecureHttpClient(
        limiter,
        trusted_domains=domains,
        timeout_seconds=cfg.http_timeout_seconds,
        user_agent=cfg.http_user_agent,
    )
    classifier = None
    if llm_cfg.configured:
        classifier = BatchClassifier(OpenAIClient(llm_cfg), limiter=limiter, detection_settings=detection)
    return NewsAggregator(
        build_default_fetchers(cfg, http),
        classifier=classifier,
        settings=cfg,
        detection_settings=detection,
    )


@lru_cache()
def get_aggregator() -> NewsAggregator:
    """Process-wide aggregator built from the environment."""
    return build_aggregator()


def reset_aggregator_cache() -> None:
    get_aggregator.cache_clear()  # type: ignore[attr-defined]
