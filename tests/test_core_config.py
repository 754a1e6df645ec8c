import pytest

from bgrmv.core.config import get_settings, primary_credential_name


def test_requires_primary_credential_in_production(monkeypatch) -> None:
    monkeypatch.setenv("ENV", "production")
    monkeypatch.setenv("GENERATION_PRIMARY_PROVIDER", "fal")
    monkeypatch.setenv("FAL_KEY", "")
    get_settings.cache_clear()

    with pytest.raises(ValueError, match="FAL_KEY"):
        get_settings()

    get_settings.cache_clear()


def test_production_accepts_configured_primary_credential(monkeypatch) -> None:
    monkeypatch.setenv("ENV", "production")
    monkeypatch.setenv("GENERATION_PRIMARY_PROVIDER", "bria")
    monkeypatch.setenv("BRIA_API_TOKEN", "bria-token")
    monkeypatch.setenv("FAL_KEY", "")
    get_settings.cache_clear()

    settings = get_settings()
    assert settings.generation_primary_provider == "bria"
    assert primary_credential_name(settings) == "BRIA_API_TOKEN"

    get_settings.cache_clear()


def test_loads_environment_values(monkeypatch) -> None:
    monkeypatch.setenv("ENV", "development")
    monkeypatch.setenv("FAL_KEY", "fal-test-key")
    monkeypatch.setenv("PROVIDER_TIMEOUT_SECONDS", "15")
    monkeypatch.setenv("CONTENT_POLICY_MARKERS", "Safety, nsfw")
    get_settings.cache_clear()

    settings = get_settings()
    assert settings.env == "development"
    assert settings.fal_key == "fal-test-key"
    assert settings.provider_timeout_seconds == 15
    assert settings.content_policy_marker_list() == ["safety", "nsfw"]
    assert settings.provider_credentials()["FAL_KEY"] == "fal-test-key"

    get_settings.cache_clear()


def test_rejects_unknown_primary_provider(monkeypatch) -> None:
    monkeypatch.setenv("ENV", "development")
    monkeypatch.setenv("GENERATION_PRIMARY_PROVIDER", "dalle")
    get_settings.cache_clear()

    with pytest.raises(ValueError, match="GENERATION_PRIMARY_PROVIDER"):
        get_settings()

    get_settings.cache_clear()


def test_rejects_invalid_observability_limits(monkeypatch) -> None:
    monkeypatch.setenv("ENV", "development")
    monkeypatch.setenv("SENTRY_TRACES_SAMPLE_RATE", "1.2")
    monkeypatch.setenv("IP_RATE_LIMIT_REQUESTS_PER_WINDOW", "0")
    get_settings.cache_clear()

    with pytest.raises(ValueError):
        get_settings()

    get_settings.cache_clear()


def test_rejects_invalid_provider_limits(monkeypatch) -> None:
    monkeypatch.setenv("ENV", "development")
    monkeypatch.setenv("PROVIDER_TIMEOUT_SECONDS", "0")
    get_settings.cache_clear()

    with pytest.raises(ValueError, match="PROVIDER_TIMEOUT_SECONDS"):
        get_settings()

    monkeypatch.setenv("PROVIDER_TIMEOUT_SECONDS", "60")
    monkeypatch.setenv("REPLICATE_MAX_POLLS", "-1")
    get_settings.cache_clear()

    with pytest.raises(ValueError, match="REPLICATE_MAX_POLLS"):
        get_settings()

    monkeypatch.setenv("REPLICATE_MAX_POLLS", "60")
    monkeypatch.setenv("CONTENT_POLICY_MARKERS", " , ")
    get_settings.cache_clear()

    with pytest.raises(ValueError, match="CONTENT_POLICY_MARKERS"):
        get_settings()

    get_settings.cache_clear()
