from __future__ import annotations

import pytest

from bgrmv.core.config import Settings
from bgrmv.media.providers import UnknownProviderError
from bgrmv.media.providers.factory import (
    build_generation_registry,
    build_provider_clients,
    build_removal_registry,
    build_upscale_registry,
    provider_configuration_status,
)


def _settings(**overrides) -> Settings:
    values = {
        "fal_key": "fal-key",
        "replicate_api_token": "",
        "hf_token": "",
        "bria_api_token": "bria-token",
        "remove_bg_api_key": "",
        "clipdrop_api_key": "",
    }
    values.update(overrides)
    return Settings(**values)


def test_registries_expose_every_provider_name() -> None:
    settings = _settings()
    clients = build_provider_clients(settings)

    assert build_generation_registry(settings, clients).names() == [
        "fal",
        "replicate-flux-schnell",
        "hf-flux",
        "bria",
        "bria-lite",
    ]
    assert build_removal_registry(settings, clients).names() == [
        "birefnet",
        "bria",
        "removebg",
        "hf-rmbg",
        "replicate-rembg",
        "bria-rmbg",
        "clipdrop",
    ]
    assert build_upscale_registry(settings, clients).names() == ["real-esrgan", "replicate-esrgan", "bria", "clipdrop"]


def test_same_name_resolves_per_family() -> None:
    settings = _settings()
    clients = build_provider_clients(settings)

    generator = build_generation_registry(settings, clients).get("bria")
    remover = build_removal_registry(settings, clients).get("bria")

    assert generator.provider_name == "bria"
    assert type(remover).__name__ == "FalBriaRemover"


def test_unknown_name_raises() -> None:
    settings = _settings()
    registry = build_upscale_registry(settings, build_provider_clients(settings))

    with pytest.raises(UnknownProviderError, match="Invalid provider: waifu2x"):
        registry.get("waifu2x")


def test_configuration_status_reports_each_credential() -> None:
    status = provider_configuration_status(build_provider_clients(_settings(clipdrop_api_key="cd-key")))

    assert status == {
        "FAL_KEY": True,
        "REPLICATE_API_TOKEN": False,
        "HF_TOKEN": False,
        "BRIA_API_TOKEN": True,
        "REMOVE_BG_API_KEY": False,
        "CLIPDROP_API_KEY": True,
    }
