"""Sentry wiring: one-time init, request scopes, credential scrubbing."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, Optional

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration

from bgrmv.core.config import get_settings
from bgrmv.core.logger import get_logger


# Header names that carry upstream provider credentials.
SENSITIVE_HEADERS = frozenset({"authorization", "api_token", "x-api-key", "cookie"})
_FILTERED = "[Filtered]"

_SENTRY_INITIALIZED = False


def _call_sentry_init(**kwargs: Any) -> None:
    sentry_sdk.init(**kwargs)


def scrub_event(event: Dict[str, Any], hint: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """`before_send` hook: never ship provider keys to Sentry."""

    del hint
    headers = (event.get("request") or {}).get("headers")
    if isinstance(headers, dict):
        for name in list(headers):
            if name.lower() in SENSITIVE_HEADERS:
                headers[name] = _FILTERED
    return event


def init_sentry() -> bool:
    """Initialize Sentry once when SENTRY_DSN is configured."""

    global _SENTRY_INITIALIZED
    if _SENTRY_INITIALIZED:
        return True

    settings = get_settings()
    dsn = settings.sentry_dsn.strip()
    if not dsn:
        return False

    _call_sentry_init(
        dsn=dsn,
        environment=settings.env,
        release=f"{settings.app_name}@{settings.app_version}",
        traces_sample_rate=settings.sentry_traces_sample_rate,
        send_default_pii=False,
        before_send=scrub_event,
        integrations=[FastApiIntegration()],
    )
    _SENTRY_INITIALIZED = True
    get_logger("bgrmv.observability").info(
        "sentry_initialized",
        env=settings.env,
        traces_sample_rate=settings.sentry_traces_sample_rate,
    )
    return True


@contextmanager
def sentry_scope(*, request_id: str | None = None, operation: str | None = None):
    """Isolated scope tagged with the request id and the route being served."""

    if not _SENTRY_INITIALIZED:
        yield
        return

    with sentry_sdk.new_scope() as scope:
        if request_id:
            scope.set_tag("request_id", request_id)
        if operation:
            scope.set_tag("operation", operation)
        scope.set_context("bgrmv", {"request_id": request_id, "operation": operation})
        yield


def capture_exception(exc: BaseException, **tags: str) -> None:
    if not _SENTRY_INITIALIZED:
        return
    with sentry_sdk.new_scope() as scope:
        for key, value in tags.items():
            scope.set_tag(key, value)
        sentry_sdk.capture_exception(exc)


def reset_observability_for_tests() -> None:
    global _SENTRY_INITIALIZED
    _SENTRY_INITIALIZED = False
