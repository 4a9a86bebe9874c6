"""Domain records for the scan pipeline.

Everything that leaves a fetcher is a ``NewsItem``: sanitized, URL checked and
classified. Items are frozen; re-classification produces a copy.
"""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator
from pydantic.alias_generators import to_camel

from ingestion.utils import timefmt

Relevance = Literal["critical", "high", "medium", "low"]

TIER_RANK: Dict[str, int] = {"critical": 0, "high": 1, "medium": 2, "low": 3}


def tier_rank(relevance: str) -> int:
    return TIER_RANK[relevance]


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AIAnalysis(_CamelModel):
    """Model-assigned explanation attached to an item."""

    model_config = ConfigDict(frozen=True)

    reasoning: str
    key_insights: List[str] = Field(default_factory=list)
    agi_probability: float = Field(..., ge=0.0, le=100.0)


class NewsItem(_CamelModel):
    """One normalized unit of discovered content."""

    model_config = ConfigDict(frozen=True)

    title: str = Field(..., min_length=1)
    source: str
    published_at: datetime
    url: str
    relevance: Relevance
    category: str
    ai_analysis: Optional[AIAnalysis] = None

    @field_validator("published_at")
    @classmethod
    def _to_utc(cls, v: datetime) -> datetime:
        return timefmt.ensure_utc(v)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def time_ago(self) -> str:
        return timefmt.time_ago(self.published_at)

    @property
    def agi_probability(self) -> Optional[float]:
        return self.ai_analysis.agi_probability if self.ai_analysis else None

    def with_classification(self, relevance: str, ai_analysis: Optional[AIAnalysis] = None) -> "NewsItem":
        if relevance not in TIER_RANK:
            raise ValueError(f"unknown relevance tier: {relevance!r}")
        return self.model_copy(update={"relevance": relevance, "ai_analysis": ai_analysis})


class SourceBatch(BaseModel):
    """Outcome of one fetcher call: items, or an empty list plus the error."""

    source: str
    items: List[NewsItem] = Field(default_factory=list)
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None


class AggregateResult(_CamelModel):
    """The outcome of one full scan."""

    items: List[NewsItem] = Field(default_factory=list)
    detected: bool
    confidence: float = Field(..., ge=0.0, le=100.0)
    reasoning: str
    sources: List[str] = Field(default_factory=list)
    failed_sources: List[str] = Field(default_factory=list)
    ai_assisted: bool = False
    scanned_at: datetime = Field(default_factory=timefmt.utcnow)
