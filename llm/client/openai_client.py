"""OpenAI LLM client wrapper.

Features
- Forces structured (JSON) output and validates it as ``BatchAnalysisResult``
- Request timeout and per-request cost cap; no retries (callers fall back)
- Provider injection removes network/SDK dependencies in tests
- Works against OpenAI directly or an OpenAI compatible proxy (``X-Auth-Token``)
"""

from __future__ import annotations

import json
import math
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from pydantic import ValidationError

from analysis.models.domain import BatchAnalysisResult, HeadlineInput
from analysis.prompts.templates import build_batch_messages
from llm.settings import LLMSettings, get_llm_settings


class LLMError(Exception):
    """Base error for LLM calls."""


class TransientLLMError(LLMError):
    """Temporary failure (timeout, connection, 429/5xx)."""


class PermanentLLMError(LLMError):
    """Non-recoverable failure (configuration, 4xx, invalid output, cost cap)."""


ProviderFn = Callable[[Dict[str, Any]], Dict[str, Any]]


_PRICE_PER_1K_TOKENS_USD: Dict[str, Dict[str, float]] = {
    "gpt-4o-mini": {"prompt": 0.00015, "completion": 0.0006},
    "gpt-4o": {"prompt": 0.0025, "completion": 0.0100},
    "gpt-4.1-mini": {"prompt": 0.0004, "completion": 0.0016},
}


def _estimate_cost_usd(model: str, prompt_tokens: int, completion_tokens: int) -> float:
    price = _PRICE_PER_1K_TOKENS_USD.get(model, _PRICE_PER_1K_TOKENS_USD["gpt-4o-mini"])
    return (
        (prompt_tokens / 1000.0) * price["prompt"]
        + (completion_tokens / 1000.0) * price["completion"]
    )


def _estimate_tokens_from_messages(messages: List[dict]) -> int:
    """Conservative length based token estimate."""
    total_chars = sum(len(str(m.get("content", ""))) for m in messages if isinstance(m, dict))
    return max(1, math.ceil(total_chars / 4))


def _strip_code_fence(content: str) -> str:
    text = content.strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[1] if "\n" in text else ""
        if text.rstrip().endswith("```"):
            text = text.rstrip()[:-3]
    return text.strip()


def _load_structured_content(content: str) -> Dict[str, Any]:
    try:
        data = json.loads(_strip_code_fence(content))
    except json.JSONDecodeError as exc:
        raise PermanentLLMError("LLM response is not valid JSON") from exc
    if not isinstance(data, dict):
        raise PermanentLLMError("LLM response JSON must be an object")
    return data


@dataclass(frozen=True)
class CompletionMeta:
    model: str
    prompt_tokens: int
    completion_tokens: int
    cost_usd: float
    elapsed_seconds: float


@dataclass(frozen=True)
class OpenAIClient:
    settings: LLMSettings
    provider: Optional[ProviderFn] = None

    @classmethod
    def from_env(cls, provider: Optional[ProviderFn] = None) -> "OpenAIClient":
        return cls(get_llm_settings(), provider=provider)

    @property
    def endpoint(self) -> str:
        return self.settings.llm_base_url or "https://api.openai.com/v1"

    def _get_provider(self) -> ProviderFn:
        if self.provider is not None:
            return self.provider
        if not self.settings.configured:
            raise PermanentLLMError("LLM endpoint is not configured (LLM_API_KEY or LLM_BASE_URL + LLM_AUTH_TOKEN)")
        # lazy import: a clear error when the SDK is missing
        try:
            import openai
        except ImportError as exc:  # pragma: no cover - tests inject a provider
            raise PermanentLLMError("the openai package is not installed") from exc

        headers: Dict[str, str] = {}
        if self.settings.llm_auth_token is not None:
            headers["X-Auth-Token"] = self.settings.llm_auth_token.get_secret_value()
        api_key = (
            self.settings.llm_api_key.get_secret_value()
            if self.settings.llm_api_key is not None
            else "proxy-managed"
        )
        client = openai.OpenAI(
            api_key=api_key,
            base_url=self.settings.llm_base_url,
            default_headers=headers or None,
            timeout=float(self.settings.llm_request_timeout_seconds),
            max_retries=0,
        )

        def _call(payload: Dict[str, Any]) -> Dict[str, Any]:
            try:
                resp = client.chat.completions.create(**payload)
            except openai.APITimeoutError as exc:
                raise TransientLLMError("LLM request timed out") from exc
            except (openai.APIConnectionError, openai.RateLimitError, openai.InternalServerError) as exc:
                raise TransientLLMError(f"LLM temporary error: {exc}") from exc
            except openai.APIStatusError as exc:
                raise PermanentLLMError(f"LLM request rejected: {exc.status_code}") from exc
            except openai.APIError as exc:
                raise PermanentLLMError(f"LLM response unusable: {type(exc).__name__}") from exc
            except ValueError as exc:
                # body declared as JSON but not decodable
                raise PermanentLLMError("LLM response body is malformed") from exc

            # normalize to a plain dict; a non-JSON body comes back as a bare string
            try:
                choices = resp.choices
                if not choices:
                    raise PermanentLLMError("LLM response has no choices")
                return {
                    "choices": [{"message": {"content": choices[0].message.content}}],
                    "usage": {
                        "prompt_tokens": getattr(resp.usage, "prompt_tokens", 0) or 0,
                        "completion_tokens": getattr(resp.usage, "completion_tokens", 0) or 0,
                    },
                    "model": resp.model,
                }
            except (AttributeError, IndexError, TypeError) as exc:
                raise PermanentLLMError("LLM response has an unexpected shape") from exc

        return _call

    def _build_payload(self, headlines: Sequence[HeadlineInput]) -> Dict[str, Any]:
        msgs = build_batch_messages(headlines, max_items=int(self.settings.llm_max_headlines))
        prompt_tokens = _estimate_tokens_from_messages(msgs)
        estimated = _estimate_cost_usd(self.settings.llm_model, prompt_tokens, int(self.settings.llm_max_tokens))
        if estimated > float(self.settings.llm_cost_limit_usd):
            raise PermanentLLMError("estimated LLM cost exceeds the per-request cap")
        return {
            "model": self.settings.llm_model,
            "messages": msgs,
            "temperature": float(self.settings.llm_temperature),
            "max_tokens": int(self.settings.llm_max_tokens),
            "response_format": {"type": "json_object"},
        }

    def classify_batch(self, headlines: Sequence[HeadlineInput]) -> Tuple[BatchAnalysisResult, CompletionMeta]:
        """One completion for the whole batch; raises ``LLMError`` on any failure."""
        if not headlines:
            raise PermanentLLMError("no headlines to classify")
        payload = self._build_payload(headlines)
        provider = self._get_provider()

        start = time.monotonic()
        resp = provider(payload)
        elapsed = time.monotonic() - start
        if elapsed > float(self.settings.llm_request_timeout_seconds):
            raise TransientLLMError("LLM request timeout exceeded")

        try:
            model = str(resp.get("model") or self.settings.llm_model)
            usage = resp.get("usage") or {}
            prompt_tokens = int(usage.get("prompt_tokens", 0) or 0)
            completion_tokens = int(usage.get("completion_tokens", 0) or 0)
            choices = resp.get("choices") or [{}]
            content = (choices[0].get("message") or {}).get("content") or ""
        except (AttributeError, IndexError, KeyError, TypeError, ValueError) as exc:
            raise PermanentLLMError("LLM response has an unexpected shape") from exc

        cost = _estimate_cost_usd(model, prompt_tokens, completion_tokens)
        if cost > float(self.settings.llm_cost_limit_usd):
            raise PermanentLLMError("LLM cost cap exceeded")

        if not isinstance(content, str) or not content:
            raise PermanentLLMError("LLM response has no content")
        data = _load_structured_content(content)
        try:
            result = BatchAnalysisResult.model_validate(data)
        except ValidationError as exc:
            raise PermanentLLMError(f"LLM response failed schema validation: {exc.error_count()} error(s)") from exc
        return result, CompletionMeta(
            model=model,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            cost_usd=cost,
            elapsed_seconds=elapsed,
        )
