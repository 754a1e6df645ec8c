"""End-to-end processing: generate, remove background, check quality, upscale."""

from __future__ import annotations

from dataclasses import dataclass
from threading import Event
from typing import Any, Dict, Optional

from bgrmv.core.errors import ApiError
from bgrmv.core.logger import get_logger
from bgrmv.media.generation import GenerationRequest
from bgrmv.media.images import ImageFetchError
from bgrmv.media.providers import ImageRef
from bgrmv.media.providers.factory import (
    DEFAULT_GENERATION_PROVIDER,
    DEFAULT_REMOVAL_PROVIDER,
    DEFAULT_UPSCALE_PROVIDER,
)
from bgrmv.media.quality import RECOMMEND_UPSCALE, QualityVerdict
from bgrmv.media import service


logger = get_logger("bgrmv.media.pipeline")


@dataclass(frozen=True)
class ProcessOptions:
    image_url: Optional[str] = None
    prompt: Optional[str] = None
    aspect_ratio: str = "1:1"
    resolution: str = "2K"
    generation_provider: str = DEFAULT_GENERATION_PROVIDER
    seed: Optional[int] = None
    removal_provider: str = DEFAULT_REMOVAL_PROVIDER
    removal_options: Optional[Dict[str, Any]] = None
    upscale_provider: str = DEFAULT_UPSCALE_PROVIDER
    auto_upscale: bool = True
    face_enhance: bool = True


@dataclass(frozen=True)
class ProcessResult:
    source_image: ImageRef
    removed_url: str
    removal_provider: str
    quality: Optional[QualityVerdict]
    final_url: str
    final_width: Optional[int]
    final_height: Optional[int]
    upscaled: bool


def process_image(options: ProcessOptions, *, cancel_event: Optional[Event] = None) -> ProcessResult:
    if options.image_url:
        source = ImageRef(url=options.image_url)
    elif options.prompt:
        images = service.generate_images(
            GenerationRequest(
                prompt=options.prompt,
                aspect_ratio=options.aspect_ratio,
                resolution=options.resolution,
                num_images=1,
                provider=options.generation_provider,
                seed=options.seed,
            ),
            cancel_event=cancel_event,
        )
        source = images[0]
    else:
        raise ApiError(400, "imageUrl or prompt is required")

    removed_url = service.remove_background(
        image_url=source.url,
        provider=options.removal_provider,
        options=options.removal_options,
    )

    verdict: Optional[QualityVerdict] = None
    try:
        verdict = service.run_quality_check(original_image_url=source.url, processed_image_url=removed_url)
    except (ApiError, ImageFetchError) as exc:
        # A failed check never blocks the result.
        logger.warning("quality_check_skipped", error=str(exc))

    final_url = removed_url
    final_width: Optional[int] = verdict.output_width if verdict is not None else (source.width or None)
    final_height: Optional[int] = verdict.output_height if verdict is not None else (source.height or None)
    upscaled = False

    if (
        options.auto_upscale
        and verdict is not None
        and verdict.recommendation == RECOMMEND_UPSCALE
        and verdict.suggested_scale is not None
    ):
        result = service.upscale_image(
            image_url=removed_url,
            scale=verdict.suggested_scale,
            face_enhance=options.face_enhance,
            provider=options.upscale_provider,
            original_width=verdict.output_width or None,
            original_height=verdict.output_height or None,
        )
        final_url = result.result_url
        final_width = result.output_width
        final_height = result.output_height
        upscaled = True

    logger.info(
        "image_processed",
        removal_provider=options.removal_provider,
        recommendation=verdict.recommendation if verdict is not None else None,
        upscaled=upscaled,
    )
    return ProcessResult(
        source_image=source,
        removed_url=removed_url,
        removal_provider=options.removal_provider,
        quality=verdict,
        final_url=final_url,
        final_width=final_width,
        final_height=final_height,
        upscaled=upscaled,
    )
