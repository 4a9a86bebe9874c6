"""LLM module - OpenAI client and settings."""

from llm.client.openai_client import (
    CompletionMeta,
    LLMError,
    OpenAIClient,
    PermanentLLMError,
    ProviderFn,
    TransientLLMError,
)
from llm.settings import LLMSettings, get_llm_settings, reset_llm_settings_cache

__all__ = [
    "CompletionMeta",
    "LLMError",
    "OpenAIClient",
    "PermanentLLMError",
    "ProviderFn",
    "TransientLLMError",
    "LLMSettings",
    "get_llm_settings",
    "reset_llm_settings_cache",
]
