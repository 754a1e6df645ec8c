"""FastAPI application entrypoint for bgrmv."""

from __future__ import annotations

from time import perf_counter
from typing import Any, Dict
from uuid import uuid4

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse

from bgrmv.core.config import get_settings, primary_credential_name
from bgrmv.core.errors import ApiError
from bgrmv.core.logger import bind_request_context, clear_request_context, get_logger
from bgrmv.core.metrics import record_http_request, record_rate_limit_block, render_prometheus_metrics
from bgrmv.core.observability import init_sentry, sentry_scope
from bgrmv.core.rate_limit import RateLimitDecision, get_ip_rate_limiter, is_rate_limited_path
from bgrmv.media.providers import provider_configuration_status
from bgrmv.media.router import router as media_router


settings = get_settings()
logger = get_logger("bgrmv.api")

app = FastAPI(title=settings.app_name, version=settings.app_version)


def _resolve_client_ip(request: Request) -> str:
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first

    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()

    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def _apply_rate_limit_headers(response: Response, decision: RateLimitDecision) -> None:
    response.headers["x-rate-limit-limit"] = str(decision.limit)
    response.headers["x-rate-limit-remaining"] = str(decision.remaining)
    response.headers["x-rate-limit-reset"] = str(decision.reset_seconds)


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first: Dict[str, Any] = errors[0]
    error_type = str(first.get("type") or "")
    if error_type == "json_invalid":
        return "Invalid JSON body"

    location = [str(part) for part in first.get("loc", ()) if part != "body"]
    field = ".".join(location) or "body"
    if error_type == "missing":
        return f"{field} is required"

    context_error = (first.get("ctx") or {}).get("error")
    if context_error is not None:
        return str(context_error)
    return f"{field}: {first.get('msg', 'invalid value')}"


@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    del request
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    del request
    return JSONResponse(status_code=400, content={"error": _validation_message(exc)})


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    started_at = perf_counter()
    request_id = request.headers.get("x-request-id", str(uuid4()))
    bind_request_context(request_id=request_id, path=request.url.path)

    response = None
    decision = None
    status_code = 500

    try:
        with sentry_scope(request_id=request_id, operation=request.url.path):
            if (
                settings.ip_rate_limit_enabled
                and settings.env.lower() in {"prod", "production"}
                and is_rate_limited_path(request.url.path)
            ):
                limiter = get_ip_rate_limiter()
                decision = limiter.check(ip=_resolve_client_ip(request))
                if not decision.allowed:
                    record_rate_limit_block(kind="ip")
                    response = JSONResponse(
                        status_code=429,
                        content={
                            "error": "Rate limit exceeded",
                            "limit": decision.limit,
                            "remaining": decision.remaining,
                            "reset_seconds": decision.reset_seconds,
                        },
                    )
                else:
                    response = await call_next(request)
            else:
                response = await call_next(request)
        status_code = int(response.status_code)
    finally:
        duration = perf_counter() - started_at
        if settings.metrics_enabled:
            record_http_request(
                method=request.method,
                path=request.url.path,
                status_code=status_code,
                duration_seconds=duration,
            )
        clear_request_context()

    if decision is not None:
        _apply_rate_limit_headers(response, decision)
    response.headers["x-request-id"] = request_id
    return response


@app.on_event("startup")
def on_startup() -> None:
    sentry_enabled = init_sentry()
    credentials = provider_configuration_status()
    logger.info(
        "application_startup",
        env=settings.env,
        version=settings.app_version,
        sentry_enabled=sentry_enabled,
        metrics_enabled=settings.metrics_enabled,
        ip_rate_limit_enabled=settings.ip_rate_limit_enabled,
        primary_provider=settings.generation_primary_provider,
    )
    missing = sorted(name for name, configured in credentials.items() if not configured)
    if missing:
        logger.warning("provider_not_configured", credentials=missing)


@app.get("/health")
def health() -> JSONResponse:
    credentials = provider_configuration_status()
    primary_ok = credentials.get(primary_credential_name(settings), False)
    status = "ok" if primary_ok and all(credentials.values()) else "degraded"

    payload = {
        "status": status,
        "env": settings.env,
        "primary_provider": settings.generation_primary_provider,
        "credentials": credentials,
    }

    return JSONResponse(content=payload, status_code=200 if primary_ok else 503)


@app.get("/version")
def version() -> dict[str, str]:
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "env": settings.env,
    }


@app.get("/metrics")
def metrics() -> PlainTextResponse:
    if not settings.metrics_enabled:
        return PlainTextResponse("metrics disabled\n", status_code=404)

    payload = render_prometheus_metrics(
        app_name=settings.app_name,
        app_version=settings.app_version,
        env=settings.env,
    )
    return PlainTextResponse(
        payload,
        media_type="text/plain; version=0.0.4; charset=utf-8",
    )


app.include_router(media_router)
