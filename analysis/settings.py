"""Thresholds for the scan-level "AGI detected" verdict."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, ValidationError, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DetectionSettings(BaseSettings):
    """Tunable weights; observed values drifted between revisions, so none is hard-coded."""

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
        populate_by_name=True,
    )

    threshold: float = Field(50.0, ge=0.0, le=100.0, alias="DETECTION_THRESHOLD")
    critical_weight: float = Field(30.0, ge=0.0, alias="DETECTION_CRITICAL_WEIGHT")
    phrase_bonus: float = Field(30.0, ge=0.0, alias="DETECTION_PHRASE_BONUS")
    fallback_critical_weight: float = Field(30.0, ge=0.0, alias="DETECTION_FALLBACK_CRITICAL_WEIGHT")
    fallback_high_weight: float = Field(15.0, ge=0.0, alias="DETECTION_FALLBACK_HIGH_WEIGHT")
    confidence_cap: float = Field(95.0, ge=0.0, le=100.0, alias="DETECTION_CONFIDENCE_CAP")

    @model_validator(mode="after")
    def _threshold_reachable(self) -> "DetectionSettings":
        if self.threshold >= self.confidence_cap:
            raise ValueError("DETECTION_THRESHOLD must be below DETECTION_CONFIDENCE_CAP")
        return self


@lru_cache()
def get_detection_settings() -> DetectionSettings:
    try:
        return DetectionSettings()
    except ValidationError as exc:
        raise RuntimeError(f"detection settings validation failed: {exc}") from exc


def reset_detection_settings_cache() -> None:
    get_detection_settings.cache_clear()  # type: ignore[attr-defined]
