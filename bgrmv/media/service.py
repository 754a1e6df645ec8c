"""Media services behind the proxy endpoints."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from functools import lru_cache
from threading import Event
from typing import Any, Callable, Dict, List, Optional, TypeVar

from bgrmv.core.config import get_settings
from bgrmv.core.errors import ApiError
from bgrmv.core.logger import get_logger, provider_context
from bgrmv.core.metrics import record_provider_call, record_quality_verdict
from bgrmv.core.runtime import QualityPolicy, load_runtime_config
from bgrmv.media.generation import GenerationDispatcher, GenerationError, GenerationRequest
from bgrmv.media.images import ImageFetchError, fetch_image_bytes, read_image_meta
from bgrmv.media.providers import (
    ImageProviderError,
    ImageRef,
    UnknownProviderError,
    get_bria_client,
    get_generation_registry,
    get_removal_registry,
    get_upscale_registry,
)
from bgrmv.media.providers.bria_provider import ACTION_PATHS
from bgrmv.media.quality import QualityVerdict, check_quality


logger = get_logger("bgrmv.media.service")

T = TypeVar("T")


@dataclass(frozen=True)
class UpscaleResult:
    result_url: str
    original_width: Optional[int]
    original_height: Optional[int]
    output_width: int
    output_height: int
    scale_applied: int


@lru_cache(maxsize=1)
def get_generation_dispatcher() -> GenerationDispatcher:
    settings = get_settings()
    runtime = load_runtime_config()
    return GenerationDispatcher(
        registry=get_generation_registry(),
        primary_provider=settings.generation_primary_provider.strip().lower(),
        retry_policy=runtime.generation_retry,
        content_policy_markers=settings.content_policy_marker_list(),
    )


def reset_generation_dispatcher() -> None:
    get_generation_dispatcher.cache_clear()


def _call_provider(operation: str, provider: str, call: Callable[[], T]) -> T:
    try:
        with provider_context(operation=operation, provider=provider):
            result = call()
    except ImageProviderError as exc:
        record_provider_call(operation=operation, provider=provider, outcome="failed")
        logger.error("provider_call_failed", operation=operation, provider=provider, error=str(exc))
        raise ApiError(500, str(exc) or f"{operation} failed") from exc
    record_provider_call(operation=operation, provider=provider, outcome="succeeded")
    return result


def generate_images(
    request: GenerationRequest,
    *,
    dispatcher: Optional[GenerationDispatcher] = None,
    cancel_event: Optional[Event] = None,
) -> List[ImageRef]:
    active = dispatcher or get_generation_dispatcher()
    try:
        with provider_context(operation="generate", provider=request.provider):
            images = active.dispatch(request, cancel_event=cancel_event)
    except GenerationError as exc:
        record_provider_call(operation="generate", provider=request.provider, outcome="failed")
        raise ApiError(exc.status_code, exc.message) from exc
    record_provider_call(operation="generate", provider=request.provider, outcome="succeeded")
    return images


def remove_background(*, image_url: str, provider: str, options: Optional[Dict[str, Any]] = None) -> str:
    try:
        remover = get_removal_registry().get(provider)
    except UnknownProviderError as exc:
        raise ApiError(400, str(exc)) from exc

    result_url = _call_provider(
        "remove-background",
        provider,
        lambda: remover.remove_background(image_url=image_url, options=dict(options or {})),
    )
    if not result_url:
        raise ApiError(500, f"No image URL returned by {provider}")
    return result_url


def upscale_image(
    *,
    image_url: str,
    scale: int,
    face_enhance: bool,
    provider: str,
    original_width: Optional[int] = None,
    original_height: Optional[int] = None,
) -> UpscaleResult:
    try:
        upscaler = get_upscale_registry().get(provider)
    except UnknownProviderError as exc:
        raise ApiError(400, str(exc)) from exc

    output = _call_provider(
        "upscale",
        provider,
        lambda: upscaler.upscale(
            image_url=image_url,
            scale=scale,
            face_enhance=face_enhance,
            original_width=original_width,
            original_height=original_height,
        ),
    )
    if not output.url:
        raise ApiError(500, f"No image URL returned by {provider}")

    if output.width and output.height:
        output_width, output_height = output.width, output.height
    else:
        output_width = (original_width or 0) * scale
        output_height = (original_height or 0) * scale

    return UpscaleResult(
        result_url=output.url,
        original_width=original_width,
        original_height=original_height,
        output_width=output_width,
        output_height=output_height,
        scale_applied=scale,
    )


def run_quality_check(
    *,
    original_image_url: str,
    processed_image_url: str,
    policy: Optional[QualityPolicy] = None,
    fetch: Optional[Callable[[str], bytes]] = None,
) -> QualityVerdict:
    """Fetch both images concurrently, then score the processed one against the original."""

    settings = get_settings()
    rules = policy or load_runtime_config().quality
    fetcher = fetch or (lambda url: fetch_image_bytes(url, timeout_seconds=settings.provider_timeout_seconds))

    try:
        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="quality-fetch") as pool:
            original_future = pool.submit(fetcher, original_image_url)
            processed_future = pool.submit(fetcher, processed_image_url)
            original_bytes = original_future.result()
            processed_bytes = processed_future.result()
        original_meta = read_image_meta(original_bytes)
        processed_meta = read_image_meta(processed_bytes)
    except ImageFetchError as exc:
        logger.warning("quality_check_failed", error=str(exc))
        raise ApiError(500, str(exc)) from exc

    verdict = check_quality(original_meta, processed_meta, rules)
    record_quality_verdict(recommendation=verdict.recommendation, passed=verdict.passed)
    logger.info(
        "quality_check_completed",
        passed=verdict.passed,
        quality_ratio=round(verdict.quality_ratio, 4),
        has_transparency=verdict.has_transparency,
        recommendation=verdict.recommendation,
        suggested_scale=verdict.suggested_scale,
    )
    return verdict


def run_bria_action(action: Optional[str], params: Dict[str, Any]) -> Dict[str, Any]:
    if not action or action not in ACTION_PATHS:
        raise ApiError(400, f"Invalid action. Valid: {', '.join(ACTION_PATHS)}")
    client = get_bria_client()
    return _call_provider("bria", action, lambda: client.call(action, params))
