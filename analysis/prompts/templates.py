"""Prompt templates/builders.

Builds the system/user messages asking the model for a structured (JSON)
verdict over a batch of headlines. Headlines are sanitized again here since
they are interpolated into the prompt verbatim.
"""

from __future__ import annotations

from typing import List, Sequence

from analysis.models.domain import HeadlineInput
from ingestion.services.sanitizer import sanitize_text


JSON_SCHEMA_SNIPPET = (
    "{"
    '"items": array<object> where object = {'
    '"title": string (copied verbatim from the input), '
    '"analysis": {"relevance": "critical"|"high"|"medium"|"low", '
    '"agiProbability": number (0..100), "reasoning": string (<=300 chars), '
    '"keyInsights": array<string> (1-3 entries)}}, '
    '"overallAgiDetection": {"detected": boolean, "confidence": number (0..100), "reasoning": string}'
    "}"
)

TIER_GUIDE = (
    "- critical: revolutionary AGI advances, claims of consciousness, human-level AI\n"
    "- high: major capability gains, reasoning advances, important benchmarks\n"
    "- medium: standard AI research, incremental improvements\n"
    "- low: tangentially related to AI\n"
)


def format_headlines(items: Sequence[HeadlineInput]) -> List[str]:
    lines: List[str] = []
    for idx, item in enumerate(items, start=1):
        title = sanitize_text(item.title)
        source = sanitize_text(item.source)
        lines.append(f'{idx}. "{title}" ({source})' if source else f'{idx}. "{title}"')
    return lines


def build_batch_messages(items: Sequence[HeadlineInput], *, max_items: int = 40) -> List[dict]:
    """Build chat messages instructing the model to classify every headline.

    - System: role, tier rubric, output rules, JSON schema
    - User: numbered headlines (at most ``max_items``)
    """
    system = (
        "Role: you assess AI/tech news headlines for signs of Artificial General Intelligence.\n"
        "For each headline decide a relevance tier, an AGI probability (0-100),\n"
        "a short reasoning and one to three key insights, then give an overall\n"
        "assessment of whether the batch as a whole signals AGI.\n\n"
        "Tiers:\n"
        f"{TIER_GUIDE}\n"
        "Output format: JSON ONLY (no prose, no code fences). Schema: "
        f"{JSON_SCHEMA_SNIPPET}.\n\n"
        "Rules:\n"
        "1) Return exactly one entry per input headline, in input order.\n"
        "2) Copy each title verbatim; never invent headlines.\n"
        "3) Judge only what the headline states; hype is not evidence.\n"
        "4) Plain text only in every string field; no HTML or markdown.\n"
    )

    selected = list(items)[:max_items]
    lines: List[str] = [
        f"[Count] {len(selected)}",
        "[Instructions] Classify every headline below and answer with JSON only.",
        "[Headlines]",
    ]
    lines.extend(format_headlines(selected))
    user = "\n".join(lines)

    return [
        {"role": "system", "content": system},
        {"role": "user", "content": user},
    ]
