"""Deterministic headline classifier.

Case-insensitive substring matching against fixed keyword tables; the first
matching tier wins in the order critical -> high -> medium -> low.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence, Tuple

from analysis.settings import DetectionSettings, get_detection_settings

CRITICAL_KEYWORDS: Tuple[str, ...] = (
    "agi",
    "artificial general intelligence",
    "superintelligence",
    "consciousness",
    "sentient",
    "breakthrough",
    "human-level",
    "human level",
    "self-improving",
    "recursive self-improvement",
)

HIGH_KEYWORDS: Tuple[str, ...] = (
    "gpt-5",
    "gpt-4",
    "claude",
    "gemini",
    "reasoning",
    "autonomous",
    "benchmark",
    "milestone",
    "capabilities",
)

# Every critical/high keyword is topical too, so "no topic keyword" implies low.
TOPIC_KEYWORDS: Tuple[str, ...] = (
    "ai",
    "artificial intelligence",
    "machine learning",
    "deep learning",
    "neural network",
    "gpt",
    "llm",
    "chatgpt",
    "openai",
    "anthropic",
    "deepmind",
    "transformer",
    "automation",
    "robot",
) + CRITICAL_KEYWORDS + HIGH_KEYWORDS

STRONG_SIGNAL_PHRASES: Tuple[str, ...] = (
    "agi",
    "artificial general intelligence",
    "superintelligence",
    "consciousness",
    "sentient",
    "breakthrough",
    "human-level",
)


@dataclass(frozen=True)
class KeywordVerdict:
    is_topical: bool
    relevance: str


@dataclass(frozen=True)
class DetectionVerdict:
    detected: bool
    confidence: float
    reasoning: str


def _contains_any(text: str, keywords: Iterable[str]) -> bool:
    return any(k in text for k in keywords)


def is_topical(title: str) -> bool:
    return _contains_any(title.lower(), TOPIC_KEYWORDS)


def has_strong_signal(title: str) -> bool:
    return _contains_any(title.lower(), STRONG_SIGNAL_PHRASES)


def classify(title: str) -> KeywordVerdict:
    lowered = (title or "").lower()
    topical = _contains_any(lowered, TOPIC_KEYWORDS)
    if _contains_any(lowered, CRITICAL_KEYWORDS):
        relevance = "critical"
    elif _contains_any(lowered, HIGH_KEYWORDS):
        relevance = "high"
    elif topical:
        relevance = "medium"
    else:
        relevance = "low"
    return KeywordVerdict(is_topical=topical, relevance=relevance)


def summarize_detection(
    items: Sequence[Tuple[str, str]],
    settings: Optional[DetectionSettings] = None,
) -> DetectionVerdict:
    """Scan verdict without AI from ``(title, relevance)`` pairs.

    Counts critical items and adds a bonus when any title carries one of the
    strong literal phrases.
    """
    cfg = settings or get_detection_settings()
    critical = sum(1 for _, tier in items if tier == "critical")
    phrase_hit = any(has_strong_signal(title) for title, _ in items)
    score = critical * cfg.critical_weight + (cfg.phrase_bonus if phrase_hit else 0.0)
    confidence = min(cfg.confidence_cap, score)
    detected = confidence > cfg.threshold
    reasoning = (
        f"Keyword scan: {critical} critical item(s) out of {len(items)}"
        f"{', strong signal phrase present' if phrase_hit else ''}."
    )
    return DetectionVerdict(detected=detected, confidence=confidence, reasoning=reasoning)


def fallback_detection(
    tiers: Sequence[str],
    settings: Optional[DetectionSettings] = None,
) -> DetectionVerdict:
    """Verdict synthesized when the batch AI call failed."""
    cfg = settings or get_detection_settings()
    critical = sum(1 for t in tiers if t == "critical")
    high = sum(1 for t in tiers if t == "high")
    confidence = min(
        cfg.confidence_cap,
        critical * cfg.fallback_critical_weight + high * cfg.fallback_high_weight,
    )
    return DetectionVerdict(
        detected=confidence > cfg.threshold,
        confidence=confidence,
        reasoning=f"Found {critical} critical and {high} high-relevance items",
    )
