"""Batch AI classifier with a structural fallback.

One language-model call classifies every headline of a scan. Any failure
(transport, cost cap, invalid JSON, schema mismatch, exhausted rate limit)
yields the deterministic classification of every headline instead, so the
caller always receives one classification per input.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence

from pydantic import ValidationError

from analysis.classifier import keywords
from analysis.models.domain import (
    AIAssistedClassification,
    BatchAnalysisResult,
    BatchItem,
    BatchOutcome,
    Classification,
    DeterministicClassification,
    HeadlineInput,
    OverallDetection,
)
from analysis.settings import DetectionSettings, get_detection_settings
from ingestion.connectors.base import RateLimitExceeded
from ingestion.services.rate_limiter import SlidingWindowRateLimiter
from ingestion.services.sanitizer import sanitize_list, sanitize_text
from llm.client.openai_client import LLMError, OpenAIClient

logger = logging.getLogger(__name__)

_MAX_REASONING_CHARS = 300


def _title_key(title: str) -> str:
    return " ".join(sanitize_text(title).lower().split())


def _to_ai_classification(item: BatchItem) -> AIAssistedClassification:
    analysis = item.analysis
    return AIAssistedClassification(
        relevance=analysis.relevance,
        reasoning=sanitize_text(analysis.reasoning)[:_MAX_REASONING_CHARS],
        key_insights=sanitize_list(analysis.key_insights),
        agi_probability=float(analysis.agi_probability),
    )


def match_results(
    headlines: Sequence[HeadlineInput], result: BatchAnalysisResult
) -> List[Classification]:
    """Pair model answers with inputs: by normalized title first, then by position."""
    by_title: Dict[str, BatchItem] = {}
    for item in result.items:
        by_title.setdefault(_title_key(item.title), item)

    out: List[Classification] = []
    for idx, headline in enumerate(headlines):
        matched = by_title.get(_title_key(headline.title))
        if matched is None and idx < len(result.items) and len(result.items) == len(headlines):
            matched = result.items[idx]
        if matched is None:
            out.append(DeterministicClassification(relevance=keywords.classify(headline.title).relevance))
        else:
            out.append(_to_ai_classification(matched))
    return out


class BatchClassifier:
    """Classify a batch of headlines with the model, falling back to keywords."""

    def __init__(
        self,
        client: OpenAIClient,
        limiter: Optional[SlidingWindowRateLimiter] = None,
        detection_settings: Optional[DetectionSettings] = None,
    ) -> None:
        self.client = client
        self.limiter = limiter
        self.detection_settings = detection_settings

    def fallback(self, headlines: Sequence[HeadlineInput], error: Optional[str] = None) -> BatchOutcome:
        tiers = [keywords.classify(h.title).relevance for h in headlines]
        verdict = keywords.fallback_detection(
            tiers, self.detection_settings or get_detection_settings()
        )
        return BatchOutcome(
            classifications=[DeterministicClassification(relevance=t) for t in tiers],
            overall=OverallDetection(
                detected=verdict.detected,
                confidence=verdict.confidence,
                reasoning=verdict.reasoning,
            ),
            ai_assisted=False,
            error=error,
        )

    def classify(self, headlines: Sequence[HeadlineInput]) -> BatchOutcome:
        if not headlines:
            return self.fallback(headlines)
        try:
            if self.limiter is not None:
                self.limiter.acquire(self.client.endpoint)
            result, meta = self.client.classify_batch(headlines)
        except (LLMError, ValidationError, RateLimitExceeded) as exc:
            logger.warning(
                "classify.fallback",
                extra={"error": str(exc), "error_type": type(exc).__name__, "count": len(headlines)},
            )
            return self.fallback(headlines, error=str(exc))

        classifications = match_results(headlines, result)
        overall = result.overall_agi_detection
        logger.info(
            "classify.done",
            extra={
                "count": len(headlines),
                "matched": sum(1 for c in classifications if c.kind == "ai"),
                "model": meta.model,
                "cost_usd": round(meta.cost_usd, 6),
                "elapsed_ms": int(meta.elapsed_seconds * 1000),
            },
        )
        return BatchOutcome(
            classifications=classifications,
            overall=OverallDetection(
                detected=overall.detected,
                confidence=overall.confidence,
                reasoning=sanitize_text(overall.reasoning),
            ),
            ai_assisted=True,
            model=meta.model,
        )
