from fastapi.testclient import TestClient

import bgrmv.api.main as api_main
from bgrmv.core.metrics import reset_metrics_for_tests
from bgrmv.core.rate_limit import InMemoryIPRateLimiter, RateLimitDecision, is_rate_limited_path


class _StaticLimiter:
    def __init__(self, decision: RateLimitDecision) -> None:
        self._decision = decision
        self.ips = []

    def check(self, *, ip: str) -> RateLimitDecision:
        self.ips.append(ip)
        return self._decision


def test_rate_limit_blocks_request_and_sets_headers(monkeypatch) -> None:
    reset_metrics_for_tests()
    monkeypatch.setattr(api_main.settings, "env", "production")
    monkeypatch.setattr(api_main.settings, "ip_rate_limit_enabled", True)
    limiter = _StaticLimiter(
        RateLimitDecision(
            allowed=False,
            limit=10,
            remaining=0,
            reset_seconds=30,
        )
    )
    monkeypatch.setattr(api_main, "get_ip_rate_limiter", lambda: limiter)

    client = TestClient(api_main.app)
    response = client.post("/api/bria", json={"action": "erase"}, headers={"x-forwarded-for": "203.0.113.9, 10.0.0.1"})

    assert response.status_code == 429
    assert response.json()["error"] == "Rate limit exceeded"
    assert response.headers["x-rate-limit-limit"] == "10"
    assert response.headers["x-rate-limit-remaining"] == "0"
    assert response.headers["x-rate-limit-reset"] == "30"
    assert limiter.ips == ["203.0.113.9"]


def test_rate_limit_allows_request_and_sets_headers(monkeypatch) -> None:
    monkeypatch.setattr(api_main.settings, "env", "production")
    monkeypatch.setattr(api_main.settings, "ip_rate_limit_enabled", True)
    monkeypatch.setattr(
        api_main,
        "get_ip_rate_limiter",
        lambda: _StaticLimiter(
            RateLimitDecision(
                allowed=True,
                limit=10,
                remaining=9,
                reset_seconds=60,
            )
        ),
    )

    client = TestClient(api_main.app)
    response = client.post("/api/bria", json={"action": "teleport"})

    assert response.status_code == 400
    assert response.headers["x-rate-limit-limit"] == "10"
    assert response.headers["x-rate-limit-remaining"] == "9"
    assert response.headers["x-rate-limit-reset"] == "60"


def test_health_routes_and_non_production_are_not_limited(monkeypatch) -> None:
    def _fail():
        raise AssertionError("limiter should not be consulted")

    monkeypatch.setattr(api_main, "get_ip_rate_limiter", _fail)
    monkeypatch.setattr(api_main.settings, "ip_rate_limit_enabled", True)
    client = TestClient(api_main.app)

    monkeypatch.setattr(api_main.settings, "env", "production")
    response = client.get("/version")
    assert response.status_code == 200
    assert "x-rate-limit-limit" not in response.headers

    monkeypatch.setattr(api_main.settings, "env", "development")
    response = client.post("/api/bria", json={"action": "teleport"})
    assert response.status_code == 400
    assert "x-rate-limit-limit" not in response.headers


def test_only_api_paths_are_limited() -> None:
    assert is_rate_limited_path("/api/generate") is True
    assert is_rate_limited_path("/health") is False
    assert is_rate_limited_path("/metrics") is False


def test_in_memory_limiter_uses_sliding_window() -> None:
    now = {"value": 1000.0}
    limiter = InMemoryIPRateLimiter(requests_per_window=2, window_seconds=60, clock=lambda: now["value"])

    assert limiter.check(ip="1.2.3.4").allowed is True
    now["value"] += 30
    second = limiter.check(ip="1.2.3.4")
    assert second.allowed is True
    assert second.remaining == 0

    blocked = limiter.check(ip="1.2.3.4")
    assert blocked.allowed is False
    assert blocked.reset_seconds == 30
    assert limiter.check(ip="5.6.7.8").allowed is True

    now["value"] += 30
    assert limiter.check(ip="1.2.3.4").allowed is True
    assert limiter.check(ip="1.2.3.4").allowed is False
