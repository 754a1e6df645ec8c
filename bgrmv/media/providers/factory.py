"""Name-to-adapter registries built from validated settings."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, Generic, List, Optional, TypeVar

from bgrmv.core.config import Settings, get_settings
from bgrmv.media.providers.base import (
    BackgroundRemover,
    HttpProvider,
    ImageGenerator,
    Upscaler,
    UnknownProviderError,
)
from bgrmv.media.providers.bria_provider import BriaClient, BriaImageGenerator, BriaRemover, BriaUpscaler
from bgrmv.media.providers.clipdrop_provider import ClipdropClient, ClipdropRemover, ClipdropUpscaler
from bgrmv.media.providers.fal_provider import (
    FalBiRefNetRemover,
    FalBriaRemover,
    FalClient,
    FalImageGenerator,
    FalRealEsrganUpscaler,
)
from bgrmv.media.providers.hf_provider import HuggingFaceClient, HuggingFaceFluxGenerator, HuggingFaceRmbgRemover
from bgrmv.media.providers.removebg_provider import RemoveBgRemover
from bgrmv.media.providers.replicate_provider import (
    ReplicateClient,
    ReplicateEsrganUpscaler,
    ReplicateFluxGenerator,
    ReplicateRembgRemover,
)


T = TypeVar("T")

DEFAULT_GENERATION_PROVIDER = "fal"
DEFAULT_REMOVAL_PROVIDER = "birefnet"
DEFAULT_UPSCALE_PROVIDER = "real-esrgan"


class ProviderRegistry(Generic[T]):
    """Flat mapping from request provider name to adapter instance."""

    def __init__(self, family: str, providers: Dict[str, T]) -> None:
        self.family = family
        self._providers = dict(providers)

    def names(self) -> List[str]:
        return list(self._providers)

    def get(self, name: str) -> T:
        provider = self._providers.get(name)
        if provider is None:
            raise UnknownProviderError(f"Invalid provider: {name}")
        return provider


@dataclass(frozen=True)
class ProviderClients:
    fal: FalClient
    replicate: ReplicateClient
    huggingface: HuggingFaceClient
    bria: BriaClient
    removebg: RemoveBgRemover
    clipdrop: ClipdropClient

    def all(self) -> List[HttpProvider]:
        return [self.fal, self.replicate, self.huggingface, self.bria, self.removebg, self.clipdrop]


def build_provider_clients(settings: Settings) -> ProviderClients:
    timeout = settings.provider_timeout_seconds
    return ProviderClients(
        fal=FalClient(api_key=settings.fal_key, base_url=settings.fal_api_base_url, timeout_seconds=timeout),
        replicate=ReplicateClient(
            api_key=settings.replicate_api_token,
            base_url=settings.replicate_api_base_url,
            timeout_seconds=timeout,
            poll_interval_seconds=settings.replicate_poll_interval_seconds,
            max_polls=settings.replicate_max_polls,
        ),
        huggingface=HuggingFaceClient(
            api_key=settings.hf_token,
            base_url=settings.hf_api_base_url,
            timeout_seconds=timeout,
        ),
        bria=BriaClient(api_key=settings.bria_api_token, base_url=settings.bria_api_base_url, timeout_seconds=timeout),
        removebg=RemoveBgRemover(
            api_key=settings.remove_bg_api_key,
            api_url=settings.remove_bg_api_url,
            timeout_seconds=timeout,
        ),
        clipdrop=ClipdropClient(
            api_key=settings.clipdrop_api_key,
            base_url=settings.clipdrop_api_base_url,
            timeout_seconds=timeout,
        ),
    )


def build_generation_registry(settings: Settings, clients: ProviderClients) -> ProviderRegistry[ImageGenerator]:
    return ProviderRegistry(
        "generate",
        {
            "fal": FalImageGenerator(client=clients.fal, model=settings.fal_generation_model),
            "replicate-flux-schnell": ReplicateFluxGenerator(
                client=clients.replicate,
                model=settings.replicate_generation_model,
            ),
            "hf-flux": HuggingFaceFluxGenerator(
                client=clients.huggingface,
                model=settings.hf_generation_model,
                steps=settings.hf_generation_steps,
            ),
            "bria": BriaImageGenerator(client=clients.bria),
            "bria-lite": BriaImageGenerator(client=clients.bria, lite=True),
        },
    )


def build_removal_registry(settings: Settings, clients: ProviderClients) -> ProviderRegistry[BackgroundRemover]:
    return ProviderRegistry(
        "remove-background",
        {
            "birefnet": FalBiRefNetRemover(client=clients.fal, model=settings.fal_birefnet_model),
            "bria": FalBriaRemover(client=clients.fal, model=settings.fal_bria_rmbg_model),
            "removebg": clients.removebg,
            "hf-rmbg": HuggingFaceRmbgRemover(client=clients.huggingface, model=settings.hf_rmbg_model),
            "replicate-rembg": ReplicateRembgRemover(client=clients.replicate, model=settings.replicate_rembg_model),
            "bria-rmbg": BriaRemover(client=clients.bria),
            "clipdrop": ClipdropRemover(client=clients.clipdrop),
        },
    )


def build_upscale_registry(settings: Settings, clients: ProviderClients) -> ProviderRegistry[Upscaler]:
    return ProviderRegistry(
        "upscale",
        {
            "real-esrgan": FalRealEsrganUpscaler(client=clients.fal, model=settings.fal_upscale_model),
            "replicate-esrgan": ReplicateEsrganUpscaler(
                client=clients.replicate,
                model=settings.replicate_upscale_model,
            ),
            "bria": BriaUpscaler(client=clients.bria),
            "clipdrop": ClipdropUpscaler(client=clients.clipdrop),
        },
    )


@lru_cache(maxsize=1)
def get_provider_clients() -> ProviderClients:
    return build_provider_clients(get_settings())


@lru_cache(maxsize=1)
def get_generation_registry() -> ProviderRegistry[ImageGenerator]:
    return build_generation_registry(get_settings(), get_provider_clients())


@lru_cache(maxsize=1)
def get_removal_registry() -> ProviderRegistry[BackgroundRemover]:
    return build_removal_registry(get_settings(), get_provider_clients())


@lru_cache(maxsize=1)
def get_upscale_registry() -> ProviderRegistry[Upscaler]:
    return build_upscale_registry(get_settings(), get_provider_clients())


def get_bria_client() -> BriaClient:
    return get_provider_clients().bria


def provider_configuration_status(clients: Optional[ProviderClients] = None) -> Dict[str, bool]:
    """Credential name -> whether it is configured."""

    resolved = clients or get_provider_clients()
    return {client.credential_name: client.configured for client in resolved.all()}


def reset_provider_caches() -> None:
    get_provider_clients.cache_clear()
    get_generation_registry.cache_clear()
    get_removal_registry.cache_clear()
    get_upscale_registry.cache_clear()

