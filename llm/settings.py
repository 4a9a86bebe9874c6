"""Settings for the batch headline classifier (OpenAI compatible endpoint)."""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field, PositiveFloat, PositiveInt, SecretStr, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LLMSettings(BaseSettings):
    """Environment-driven configuration for the LLM call.

    Either ``LLM_API_KEY`` (direct OpenAI) or ``LLM_BASE_URL`` plus
    ``LLM_AUTH_TOKEN`` (proxy that injects the key) must be set for the AI path
    to be attempted; otherwise scans fall back to keyword classification.
    """

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
        populate_by_name=True,
    )

    llm_api_key: Optional[SecretStr] = Field(None, alias="LLM_API_KEY", description="OpenAI API key")
    llm_base_url: Optional[str] = Field(
        None, alias="LLM_BASE_URL", description="OpenAI compatible base URL, e.g. a proxy ending in /v1"
    )
    llm_auth_token: Optional[SecretStr] = Field(
        None, alias="LLM_AUTH_TOKEN", description="Sent as X-Auth-Token to the proxy"
    )
    llm_model: str = Field("gpt-4o-mini", alias="LLM_MODEL", description="Model name")
    llm_max_tokens: PositiveInt = Field(2000, alias="LLM_MAX_TOKENS", description="Max completion tokens")
    llm_temperature: float = Field(0.2, ge=0.0, le=2.0, alias="LLM_TEMPERATURE", description="Sampling temperature")
    llm_cost_limit_usd: PositiveFloat = Field(0.05, alias="LLM_COST_LIMIT_USD", description="Per-request cost cap (USD)")
    llm_request_timeout_seconds: PositiveFloat = Field(
        30.0,
        alias="LLM_REQUEST_TIMEOUT_SECONDS",
        description="HTTP request timeout in seconds",
    )
    llm_max_headlines: PositiveInt = Field(40, alias="LLM_MAX_HEADLINES", description="Headlines per batch prompt")

    @field_validator("llm_base_url")
    @classmethod
    def _normalize_base_url(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        s = v.strip().rstrip("/")
        if not s:
            return None
        if not s.startswith(("https://", "http://")):
            raise ValueError("LLM_BASE_URL must be an absolute http(s) URL.")
        return s

    @field_validator("llm_request_timeout_seconds")
    @classmethod
    def _cap_timeout(cls, v: float) -> float:
        if v > 60:
            raise ValueError("LLM_REQUEST_TIMEOUT_SECONDS must be <= 60.")
        return v

    @property
    def configured(self) -> bool:
        return bool(self.llm_api_key or (self.llm_base_url and self.llm_auth_token))


@lru_cache()
def get_llm_settings() -> LLMSettings:
    try:
        return LLMSettings()
    except ValidationError as exc:
        raise RuntimeError(f"LLM settings validation failed: {exc}") from exc


def reset_llm_settings_cache() -> None:
    get_llm_settings.cache_clear()  # type: ignore[attr-defined]
