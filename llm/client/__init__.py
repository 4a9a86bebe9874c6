"""LLM client module."""

from llm.client.openai_client import (
    CompletionMeta,
    LLMError,
    OpenAIClient,
    PermanentLLMError,
    ProviderFn,
    TransientLLMError,
)

__all__ = [
    "CompletionMeta",
    "LLMError",
    "OpenAIClient",
    "PermanentLLMError",
    "ProviderFn",
    "TransientLLMError",
]
