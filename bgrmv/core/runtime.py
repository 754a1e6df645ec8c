"""Runtime policy loader (quality thresholds and generation retry)."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any, Dict

import yaml
from pydantic import BaseModel, Field

from bgrmv.core.config import get_settings


class QualityPolicy(BaseModel):
    min_quality_ratio: float = Field(default=0.8, gt=0)
    min_bytes_per_pixel: float = Field(default=0.5, ge=0)
    small_image_max_dimension: int = Field(default=512, gt=0)


class RetryPolicy(BaseModel):
    max_attempts: int = Field(default=3, ge=1, le=10)
    base_delay_ms: int = Field(default=500, ge=0)

    def delay_seconds(self, attempt: int) -> float:
        """Backoff after failed attempt number `attempt` (1-based)."""

        return (2**attempt) * self.base_delay_ms / 1000.0


class RuntimeConfig(BaseModel):
    quality: QualityPolicy = Field(default_factory=QualityPolicy)
    generation_retry: RetryPolicy = Field(default_factory=RetryPolicy)


def _resolve_runtime_path() -> Path:
    settings = get_settings()
    configured = Path(settings.runtime_file_path)
    if configured.is_absolute():
        return configured
    return Path.cwd() / configured


@lru_cache(maxsize=1)
def load_runtime_config() -> RuntimeConfig:
    path = _resolve_runtime_path()
    if not path.exists():
        return RuntimeConfig()

    content = path.read_text(encoding="utf-8")
    parsed = yaml.safe_load(content) or {}
    if not isinstance(parsed, dict):
        raise ValueError("Runtime config must be a YAML object")

    data: Dict[str, Any] = dict(parsed)
    return RuntimeConfig.model_validate(data)


def reset_runtime_config_cache() -> None:
    load_runtime_config.cache_clear()
