"""DTO/schemas for the batch headline classifier.

The wire format returned by the model uses camelCase keys; models accept both
camelCase and snake_case and reject missing or out-of-range values. Scalars
are strict: ``"yes"`` is not a bool and ``"85"`` is not a number.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictStr, field_validator
from pydantic.alias_generators import to_camel

from ingestion.models.domain import AIAnalysis, Relevance


class _Wire(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class HeadlineInput(BaseModel):
    """One headline submitted for classification."""

    title: str = Field(..., max_length=512)
    source: str = Field("", max_length=128)

    @field_validator("title")
    @classmethod
    def _strip(cls, v: str) -> str:
        s = v.strip()
        if not s:
            raise ValueError("title must not be blank")
        return s


class ItemAnalysis(_Wire):
    relevance: Relevance
    agi_probability: float = Field(..., ge=0.0, le=100.0, strict=True)
    reasoning: StrictStr
    key_insights: List[StrictStr] = Field(..., min_length=1, max_length=3)


class BatchItem(_Wire):
    title: StrictStr
    analysis: ItemAnalysis


class OverallDetection(_Wire):
    detected: StrictBool
    confidence: float = Field(..., ge=0.0, le=100.0, strict=True)
    reasoning: StrictStr


class BatchAnalysisResult(_Wire):
    """Strict shape of the model's JSON answer."""

    items: List[BatchItem]
    overall_agi_detection: OverallDetection


@dataclass(frozen=True)
class DeterministicClassification:
    relevance: str
    kind: Literal["deterministic"] = "deterministic"


@dataclass(frozen=True)
class AIAssistedClassification:
    relevance: str
    reasoning: str
    key_insights: List[str]
    agi_probability: float
    kind: Literal["ai"] = "ai"

    def to_analysis(self) -> AIAnalysis:
        return AIAnalysis(
            reasoning=self.reasoning,
            key_insights=list(self.key_insights),
            agi_probability=self.agi_probability,
        )


Classification = Union[DeterministicClassification, AIAssistedClassification]


@dataclass(frozen=True)
class BatchOutcome:
    """Per-input classifications (same order as the input) plus the overall verdict."""

    classifications: List[Classification]
    overall: OverallDetection
    ai_assisted: bool
    error: Optional[str] = None
    model: Optional[str] = None
