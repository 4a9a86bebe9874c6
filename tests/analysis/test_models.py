from __future__ import annotations

import pytest
from pydantic import ValidationError

from analysis.models.domain import (
    AIAssistedClassification,
    BatchAnalysisResult,
    HeadlineInput,
)


def _wire(**overrides):
    data = {
        "items": [
            {
                "title": "GPT-5 announced",
                "analysis": {
                    "relevance": "high",
                    "agiProbability": 35,
                    "reasoning": "Major capability release",
                    "keyInsights": ["bigger model"],
                    "extra": "ignored",
                },
            }
        ],
        "overallAgiDetection": {"detected": False, "confidence": 30, "reasoning": "Incremental"},
    }
    data.update(overrides)
    return data


def test_batch_result_accepts_camel_case_wire_format():
    res = BatchAnalysisResult.model_validate(_wire())
    assert res.items[0].analysis.agi_probability == 35
    assert res.items[0].analysis.key_insights == ["bigger model"]
    assert res.overall_agi_detection.confidence == 30


@pytest.mark.parametrize(
    "broken",
    [
        {"overallAgiDetection": None},
        {"items": [{"title": "x", "analysis": {"relevance": "urgent", "agiProbability": 1, "reasoning": "r", "keyInsights": []}}]},
        {"items": [{"title": "x", "analysis": {"relevance": "low", "agiProbability": 150, "reasoning": "r", "keyInsights": []}}]},
        {"items": [{"title": "x", "analysis": {"relevance": "low", "reasoning": "r", "keyInsights": []}}]},
    ],
)
def test_batch_result_rejects_invalid(broken):
    with pytest.raises(ValidationError):
        BatchAnalysisResult.model_validate(_wire(**broken))


def _analysis(**overrides):
    analysis = {"relevance": "low", "agiProbability": 1, "reasoning": "r", "keyInsights": ["k"]}
    analysis.update(overrides)
    return {"items": [{"title": "x", "analysis": analysis}]}


@pytest.mark.parametrize(
    "broken",
    [
        {"overallAgiDetection": {"detected": "yes", "confidence": 30, "reasoning": "r"}},
        {"overallAgiDetection": {"detected": 1, "confidence": 30, "reasoning": "r"}},
        {"overallAgiDetection": {"detected": True, "confidence": "85", "reasoning": "r"}},
        _analysis(agiProbability="85"),
        _analysis(reasoning=42),
        _analysis(keyInsights=[]),
        _analysis(keyInsights=["a", "b", "c", "d"]),
        _analysis(keyInsights=[7]),
    ],
)
def test_batch_result_does_not_coerce_scalars(broken):
    with pytest.raises(ValidationError):
        BatchAnalysisResult.model_validate(_wire(**broken))


def test_batch_result_accepts_integral_and_fractional_numbers():
    res = BatchAnalysisResult.model_validate(_wire(**_analysis(agiProbability=12.5, keyInsights=["a", "b", "c"])))
    assert res.items[0].analysis.agi_probability == 12.5
    assert res.overall_agi_detection.detected is False


def test_headline_input_validation():
    assert HeadlineInput(title="  AGI news ", source="HN").title == "AGI news"
    with pytest.raises(ValidationError):
        HeadlineInput(title="   ")
    with pytest.raises(ValidationError):
        HeadlineInput(title="x" * 513)


def test_ai_classification_to_analysis():
    c = AIAssistedClassification(relevance="high", reasoning="r", key_insights=["k"], agi_probability=12)
    analysis = c.to_analysis()
    assert analysis.agi_probability == 12
    assert analysis.key_insights == ["k"]
    assert c.kind == "ai"
