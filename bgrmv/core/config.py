"""Central runtime configuration for bgrmv."""

from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


GENERATION_PROVIDER_NAMES = ("fal", "replicate-flux-schnell", "hf-flux", "bria", "bria-lite")

# Credential environment variable that each generation provider depends on.
_GENERATION_PROVIDER_CREDENTIALS = {
    "fal": "FAL_KEY",
    "replicate-flux-schnell": "REPLICATE_API_TOKEN",
    "hf-flux": "HF_TOKEN",
    "bria": "BRIA_API_TOKEN",
    "bria-lite": "BRIA_API_TOKEN",
}


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    env: str = "development"
    log_level: str = "INFO"
    port: int = 8000
    app_name: str = "bgrmv"
    app_version: str = "0.1.0"
    runtime_file_path: str = "config/runtime.yaml"

    fal_key: str = ""
    fal_api_base_url: str = "https://fal.run"
    fal_generation_model: str = "fal-ai/nano-banana-pro"
    fal_birefnet_model: str = "fal-ai/birefnet"
    fal_bria_rmbg_model: str = "fal-ai/bria/rmbg"
    fal_upscale_model: str = "fal-ai/real-esrgan"

    replicate_api_token: str = ""
    replicate_api_base_url: str = "https://api.replicate.com/v1"
    replicate_generation_model: str = "black-forest-labs/flux-schnell"
    replicate_rembg_model: str = "cjwbw/rembg"
    replicate_upscale_model: str = "nightmareai/real-esrgan"
    replicate_poll_interval_seconds: float = 1.0
    replicate_max_polls: int = 60

    hf_token: str = ""
    hf_api_base_url: str = "https://router.huggingface.co/hf-inference/models"
    hf_generation_model: str = "black-forest-labs/FLUX.1-dev"
    hf_generation_steps: int = 28
    hf_rmbg_model: str = "briaai/RMBG-2.0"

    bria_api_token: str = ""
    bria_api_base_url: str = "https://engine.prod.bria-api.com/v2"

    remove_bg_api_key: str = ""
    remove_bg_api_url: str = "https://api.remove.bg/v1.0/removebg"

    clipdrop_api_key: str = ""
    clipdrop_api_base_url: str = "https://clipdrop-api.co"

    provider_timeout_seconds: int = 60
    generation_primary_provider: str = "fal"
    content_policy_markers: str = "safety"

    sentry_dsn: str = ""
    sentry_traces_sample_rate: float = 0.0
    metrics_enabled: bool = True
    ip_rate_limit_enabled: bool = True
    ip_rate_limit_requests_per_window: int = 120
    ip_rate_limit_window_seconds: int = 60

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def content_policy_marker_list(self) -> list[str]:
        return [item.strip().lower() for item in self.content_policy_markers.split(",") if item.strip()]

    def provider_credentials(self) -> dict[str, str]:
        """Map credential environment names to their configured values."""

        return {
            "FAL_KEY": self.fal_key,
            "REPLICATE_API_TOKEN": self.replicate_api_token,
            "HF_TOKEN": self.hf_token,
            "BRIA_API_TOKEN": self.bria_api_token,
            "REMOVE_BG_API_KEY": self.remove_bg_api_key,
            "CLIPDROP_API_KEY": self.clipdrop_api_key,
        }


def primary_credential_name(settings: Settings) -> str:
    provider = settings.generation_primary_provider.strip().lower()
    return _GENERATION_PROVIDER_CREDENTIALS.get(provider, "FAL_KEY")


def _validate(settings: Settings) -> Settings:
    primary = settings.generation_primary_provider.strip().lower()
    if primary not in GENERATION_PROVIDER_NAMES:
        joined = ", ".join(GENERATION_PROVIDER_NAMES)
        raise ValueError(f"GENERATION_PRIMARY_PROVIDER must be one of: {joined}.")
    is_production = settings.env.lower() in {"prod", "production"}
    if is_production:
        credential_name = primary_credential_name(settings)
        required_production_values = {
            credential_name: settings.provider_credentials()[credential_name],
        }
        missing = [name for name, value in required_production_values.items() if not str(value).strip()]
        if missing:
            joined = ", ".join(sorted(missing))
            raise ValueError(f"Missing required production secrets/config: {joined}.")
    if settings.sentry_traces_sample_rate < 0 or settings.sentry_traces_sample_rate > 1:
        raise ValueError("SENTRY_TRACES_SAMPLE_RATE must be between 0 and 1.")
    if settings.ip_rate_limit_requests_per_window <= 0:
        raise ValueError("IP_RATE_LIMIT_REQUESTS_PER_WINDOW must be positive.")
    if settings.ip_rate_limit_window_seconds <= 0:
        raise ValueError("IP_RATE_LIMIT_WINDOW_SECONDS must be positive.")
    if settings.provider_timeout_seconds <= 0:
        raise ValueError("PROVIDER_TIMEOUT_SECONDS must be positive.")
    if settings.replicate_poll_interval_seconds < 0:
        raise ValueError("REPLICATE_POLL_INTERVAL_SECONDS must be zero or positive.")
    if settings.replicate_max_polls < 0:
        raise ValueError("REPLICATE_MAX_POLLS must be zero or positive.")
    if settings.hf_generation_steps <= 0:
        raise ValueError("HF_GENERATION_STEPS must be positive.")
    if not settings.content_policy_marker_list():
        raise ValueError("CONTENT_POLICY_MARKERS must contain at least one marker.")
    return settings


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return validated settings as a cached singleton."""

    return _validate(Settings())
