"""structlog JSON logging for bgrmv.

Every event carries the service identity (`app`, `env`) plus whatever the
request middleware and provider calls bind through contextvars.
"""

from __future__ import annotations

from contextlib import contextmanager
import logging
from typing import Any, Iterator

import structlog

from bgrmv.core.config import get_settings


_CONFIGURED = False
_SERVICE_CONTEXT: dict[str, str] = {}


def _add_service_context(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    del logger, method_name
    for key, value in _SERVICE_CONTEXT.items():
        event_dict.setdefault(key, value)
    event_dict.setdefault("request_id", None)
    return event_dict


def configure_logging() -> None:
    """Configure structlog once; later calls are no-ops."""

    global _CONFIGURED
    if _CONFIGURED:
        return

    settings = get_settings()
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    _SERVICE_CONTEXT.update(app=settings.app_name, env=settings.env)

    logging.basicConfig(level=level, format="%(message)s")
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            _add_service_context,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.PrintLoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=True,
    )

    _CONFIGURED = True


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    configure_logging()
    return structlog.get_logger(name)


def bind_request_context(request_id: str, path: str | None = None) -> None:
    structlog.contextvars.bind_contextvars(request_id=request_id, path=path)


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()


@contextmanager
def provider_context(*, operation: str, provider: str) -> Iterator[None]:
    """Tag every event logged inside the block with the upstream being called."""

    with structlog.contextvars.bound_contextvars(operation=operation, provider=provider):
        yield
