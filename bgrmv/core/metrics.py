"""In-process metrics collector with Prometheus text exposition."""

from __future__ import annotations

from collections import defaultdict
from threading import Lock
import time
from typing import Dict, Tuple


_lock = Lock()
_started_at = time.time()

_http_requests_total: Dict[Tuple[str, str, str], int] = defaultdict(int)
_http_request_duration_sum: Dict[Tuple[str, str], float] = defaultdict(float)
_http_request_duration_count: Dict[Tuple[str, str], int] = defaultdict(int)
_rate_limit_block_total: Dict[str, int] = defaultdict(int)
_provider_calls_total: Dict[Tuple[str, str, str], int] = defaultdict(int)
_generation_attempts_total: Dict[Tuple[str, str], int] = defaultdict(int)
_quality_verdicts_total: Dict[Tuple[str, str], int] = defaultdict(int)


def _escape_label(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def _normalize_label(value: str, *, fallback: str = "unknown") -> str:
    normalized = (value or "").strip()
    return normalized or fallback


def record_http_request(*, method: str, path: str, status_code: int, duration_seconds: float) -> None:
    status = str(status_code)
    method_label = method.upper()
    path_label = path or "unknown"
    duration = max(duration_seconds, 0.0)

    with _lock:
        _http_requests_total[(method_label, path_label, status)] += 1
        _http_request_duration_sum[(method_label, path_label)] += duration
        _http_request_duration_count[(method_label, path_label)] += 1


def record_rate_limit_block(*, kind: str) -> None:
    with _lock:
        _rate_limit_block_total[_normalize_label(kind)] += 1


def record_provider_call(*, operation: str, provider: str, outcome: str) -> None:
    with _lock:
        key = (_normalize_label(operation), _normalize_label(provider), _normalize_label(outcome))
        _provider_calls_total[key] += 1


def record_generation_attempt(*, provider: str, outcome: str) -> None:
    with _lock:
        _generation_attempts_total[(_normalize_label(provider), _normalize_label(outcome))] += 1


def record_quality_verdict(*, recommendation: str, passed: bool) -> None:
    with _lock:
        key = (_normalize_label(recommendation), "true" if passed else "false")
        _quality_verdicts_total[key] += 1


def render_prometheus_metrics(*, app_name: str, app_version: str, env: str) -> str:
    uptime = max(time.time() - _started_at, 0.0)

    with _lock:
        http_total = dict(_http_requests_total)
        duration_sum = dict(_http_request_duration_sum)
        duration_count = dict(_http_request_duration_count)
        rate_limit_total = dict(_rate_limit_block_total)
        provider_calls_total = dict(_provider_calls_total)
        generation_attempts_total = dict(_generation_attempts_total)
        quality_verdicts_total = dict(_quality_verdicts_total)

    lines = [
        "# HELP bgrmv_build_info Build metadata.",
        "# TYPE bgrmv_build_info gauge",
        (
            f'bgrmv_build_info{{app_name="{_escape_label(app_name)}",'
            f'version="{_escape_label(app_version)}",env="{_escape_label(env)}"}} 1'
        ),
        "# HELP bgrmv_process_uptime_seconds Process uptime in seconds.",
        "# TYPE bgrmv_process_uptime_seconds gauge",
        f"bgrmv_process_uptime_seconds {uptime:.6f}",
        "# HELP bgrmv_http_requests_total Total HTTP requests.",
        "# TYPE bgrmv_http_requests_total counter",
    ]

    for (method, path, status), value in sorted(http_total.items()):
        lines.append(
            (
                f'bgrmv_http_requests_total{{method="{_escape_label(method)}",'
                f'path="{_escape_label(path)}",status="{_escape_label(status)}"}} {value}'
            )
        )

    lines.extend(
        [
            "# HELP bgrmv_http_request_duration_seconds Request duration summary.",
            "# TYPE bgrmv_http_request_duration_seconds summary",
        ]
    )
    for (method, path), value in sorted(duration_sum.items()):
        lines.append(
            (
                f'bgrmv_http_request_duration_seconds_sum{{method="{_escape_label(method)}",'
                f'path="{_escape_label(path)}"}} {value:.6f}'
            )
        )
    for (method, path), value in sorted(duration_count.items()):
        lines.append(
            (
                f'bgrmv_http_request_duration_seconds_count{{method="{_escape_label(method)}",'
                f'path="{_escape_label(path)}"}} {value}'
            )
        )

    lines.extend(
        [
            "# HELP bgrmv_rate_limit_block_total Requests blocked by rate limiting.",
            "# TYPE bgrmv_rate_limit_block_total counter",
        ]
    )
    for kind, value in sorted(rate_limit_total.items()):
        lines.append(f'bgrmv_rate_limit_block_total{{kind="{_escape_label(kind)}"}} {value}')

    lines.extend(
        [
            "# HELP bgrmv_provider_calls_total Upstream provider calls by outcome.",
            "# TYPE bgrmv_provider_calls_total counter",
        ]
    )
    for (operation, provider, outcome), value in sorted(provider_calls_total.items()):
        lines.append(
            (
                f'bgrmv_provider_calls_total{{operation="{_escape_label(operation)}",'
                f'provider="{_escape_label(provider)}",outcome="{_escape_label(outcome)}"}} {value}'
            )
        )

    lines.extend(
        [
            "# HELP bgrmv_generation_attempts_total Generation attempts including retries.",
            "# TYPE bgrmv_generation_attempts_total counter",
        ]
    )
    for (provider, outcome), value in sorted(generation_attempts_total.items()):
        lines.append(
            (
                f'bgrmv_generation_attempts_total{{provider="{_escape_label(provider)}",'
                f'outcome="{_escape_label(outcome)}"}} {value}'
            )
        )

    lines.extend(
        [
            "# HELP bgrmv_quality_verdicts_total Quality check verdicts by recommendation.",
            "# TYPE bgrmv_quality_verdicts_total counter",
        ]
    )
    for (recommendation, passed), value in sorted(quality_verdicts_total.items()):
        lines.append(
            (
                f'bgrmv_quality_verdicts_total{{recommendation="{_escape_label(recommendation)}",'
                f'passed="{_escape_label(passed)}"}} {value}'
            )
        )

    lines.append("")
    return "\n".join(lines)


def reset_metrics_for_tests() -> None:
    global _started_at
    with _lock:
        _http_requests_total.clear()
        _http_request_duration_sum.clear()
        _http_request_duration_count.clear()
        _rate_limit_block_total.clear()
        _provider_calls_total.clear()
        _generation_attempts_total.clear()
        _quality_verdicts_total.clear()
    _started_at = time.time()
