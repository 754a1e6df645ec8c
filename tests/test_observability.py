from types import SimpleNamespace

from bgrmv.core import observability


def _fake_settings(dsn: str, env: str = "development", rate: float = 0.0) -> SimpleNamespace:
    return SimpleNamespace(
        sentry_dsn=dsn,
        env=env,
        app_name="bgrmv",
        app_version="0.1.0",
        sentry_traces_sample_rate=rate,
    )


def test_init_sentry_skips_when_dsn_missing(monkeypatch) -> None:
    observability.reset_observability_for_tests()

    called = {"count": 0}

    def fake_init(**kwargs):  # noqa: ARG001
        called["count"] += 1

    monkeypatch.setattr(observability, "_call_sentry_init", fake_init)
    monkeypatch.setattr(observability, "get_settings", lambda: _fake_settings(""))

    assert observability.init_sentry() is False
    assert called["count"] == 0
    observability.reset_observability_for_tests()


def test_init_sentry_initializes_once(monkeypatch) -> None:
    observability.reset_observability_for_tests()

    calls = []

    def fake_init(**kwargs):
        calls.append(kwargs)

    monkeypatch.setattr(observability, "FastApiIntegration", lambda: object())
    monkeypatch.setattr(observability, "_call_sentry_init", fake_init)
    monkeypatch.setattr(
        observability,
        "get_settings",
        lambda: _fake_settings("https://abc@example.ingest.sentry.io/1", env="production", rate=0.2),
    )

    assert observability.init_sentry() is True
    assert observability.init_sentry() is True
    assert len(calls) == 1
    assert calls[0]["dsn"] == "https://abc@example.ingest.sentry.io/1"
    assert calls[0]["environment"] == "production"
    assert calls[0]["traces_sample_rate"] == 0.2
    assert calls[0]["release"] == "bgrmv@0.1.0"
    observability.reset_observability_for_tests()


def test_sentry_scope_and_capture_are_noops_when_not_initialized(monkeypatch) -> None:
    observability.reset_observability_for_tests()
    captured = []
    monkeypatch.setattr(observability.sentry_sdk, "capture_exception", lambda exc: captured.append(exc))

    with observability.sentry_scope(request_id="req-1", operation="/api/generate"):
        observability.capture_exception(RuntimeError("boom"))

    assert captured == []


def test_init_sentry_registers_credential_scrubber(monkeypatch) -> None:
    observability.reset_observability_for_tests()
    calls = []
    monkeypatch.setattr(observability, "FastApiIntegration", lambda: object())
    monkeypatch.setattr(observability, "_call_sentry_init", lambda **kwargs: calls.append(kwargs))
    monkeypatch.setattr(
        observability,
        "get_settings",
        lambda: _fake_settings("https://abc@example.ingest.sentry.io/1"),
    )

    assert observability.init_sentry() is True
    assert calls[0]["before_send"] is observability.scrub_event
    assert calls[0]["send_default_pii"] is False
    observability.reset_observability_for_tests()


def test_scrub_event_masks_provider_credentials() -> None:
    event = {
        "request": {
            "headers": {
                "Authorization": "Key fal-secret",
                "api_token": "bria-secret",
                "X-Api-Key": "clipdrop-secret",
                "content-type": "application/json",
            }
        }
    }

    scrubbed = observability.scrub_event(event, None)

    headers = scrubbed["request"]["headers"]
    assert headers["Authorization"] == "[Filtered]"
    assert headers["api_token"] == "[Filtered]"
    assert headers["X-Api-Key"] == "[Filtered]"
    assert headers["content-type"] == "application/json"
    assert observability.scrub_event({"message": "no request"}) == {"message": "no request"}
