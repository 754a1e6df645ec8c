"""Image provider integrations."""

from bgrmv.media.providers.base import (
    BackgroundRemover,
    ImageGenerator,
    ImageProviderError,
    ImageRef,
    ProviderNotConfiguredError,
    UnknownProviderError,
    Upscaler,
    strip_data_uri,
)
from bgrmv.media.providers.factory import (
    ProviderRegistry,
    get_bria_client,
    get_generation_registry,
    get_removal_registry,
    get_upscale_registry,
    provider_configuration_status,
    reset_provider_caches,
)

__all__ = [
    "BackgroundRemover",
    "ImageGenerator",
    "ImageProviderError",
    "ImageRef",
    "ProviderNotConfiguredError",
    "ProviderRegistry",
    "UnknownProviderError",
    "Upscaler",
    "get_bria_client",
    "get_generation_registry",
    "get_removal_registry",
    "get_upscale_registry",
    "provider_configuration_status",
    "reset_provider_caches",
    "strip_data_uri",
]
