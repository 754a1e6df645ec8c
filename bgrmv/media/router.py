"""Image proxy API routes."""

from __future__ import annotations

from typing import Callable, TypeVar

from fastapi import APIRouter

from bgrmv.core.errors import ApiError
from bgrmv.core.logger import get_logger
from bgrmv.core.observability import capture_exception
from bgrmv.media import pipeline, service
from bgrmv.media.generation import GenerationRequest
from bgrmv.media.quality import QualityVerdict
from bgrmv.schemas.media import (
    BriaToolRequest,
    BriaToolResponse,
    GenerateRequest,
    GenerateResponse,
    GeneratedImage,
    ImageSize,
    ProcessRequest,
    ProcessResponse,
    QualityCheckRequest,
    QualityCheckResponse,
    RemoveBackgroundRequest,
    RemoveBackgroundResponse,
    UpscaleRequest,
    UpscaleResponse,
)


router = APIRouter(prefix="/api", tags=["media"])
logger = get_logger("bgrmv.media.router")

T = TypeVar("T")


def _guard(operation: str, call: Callable[[], T]) -> T:
    """Run a handler body; anything that is not an ApiError becomes a generic 500."""

    try:
        return call()
    except ApiError:
        raise
    except Exception as exc:
        logger.exception("unhandled_route_error", operation=operation)
        capture_exception(exc, operation=operation)
        raise ApiError(500, f"{operation} failed") from exc


def _quality_response(verdict: QualityVerdict) -> QualityCheckResponse:
    return QualityCheckResponse.model_validate(verdict.as_payload())


@router.post("/generate", response_model=GenerateResponse)
def generate(payload: GenerateRequest) -> GenerateResponse:
    images = _guard(
        "Generation",
        lambda: service.generate_images(
            GenerationRequest(
                prompt=payload.prompt,
                aspect_ratio=payload.aspect_ratio,
                resolution=payload.resolution,
                num_images=payload.num_images,
                provider=payload.provider,
                seed=payload.seed,
            )
        ),
    )
    return GenerateResponse(
        images=[GeneratedImage(url=image.url, width=image.width, height=image.height) for image in images]
    )


@router.post("/remove-background", response_model=RemoveBackgroundResponse)
def remove_background(payload: RemoveBackgroundRequest) -> RemoveBackgroundResponse:
    result_url = _guard(
        "Background removal",
        lambda: service.remove_background(
            image_url=payload.image_url,
            provider=payload.provider,
            options=payload.options,
        ),
    )
    return RemoveBackgroundResponse(result_url=result_url, provider=payload.provider)


@router.post("/upscale", response_model=UpscaleResponse)
def upscale(payload: UpscaleRequest) -> UpscaleResponse:
    result = _guard(
        "Upscaling",
        lambda: service.upscale_image(
            image_url=payload.image_url,
            scale=payload.target_scale,
            face_enhance=payload.face_enhance,
            provider=payload.provider,
            original_width=payload.original_width,
            original_height=payload.original_height,
        ),
    )
    original_size = None
    if result.original_width is not None or result.original_height is not None:
        original_size = ImageSize(width=result.original_width, height=result.original_height)
    return UpscaleResponse(
        result_url=result.result_url,
        original_size=original_size,
        output_size=ImageSize(width=result.output_width, height=result.output_height),
        scale_applied=result.scale_applied,
    )


@router.post("/quality-check", response_model=QualityCheckResponse, response_model_exclude_none=True)
def quality_check(payload: QualityCheckRequest) -> QualityCheckResponse:
    verdict = _guard(
        "Quality check",
        lambda: service.run_quality_check(
            original_image_url=payload.original_image_url,
            processed_image_url=payload.processed_image_url,
        ),
    )
    return _quality_response(verdict)


@router.post("/bria", response_model=BriaToolResponse)
def bria_tool(payload: BriaToolRequest) -> BriaToolResponse:
    result = _guard(
        "Bria API call",
        lambda: service.run_bria_action(payload.action, payload.forwarded_params()),
    )
    return BriaToolResponse(result=result, action=str(payload.action))


@router.post("/process", response_model=ProcessResponse)
def process(payload: ProcessRequest) -> ProcessResponse:
    result = _guard(
        "Processing",
        lambda: pipeline.process_image(
            pipeline.ProcessOptions(
                image_url=payload.image_url,
                prompt=payload.prompt,
                aspect_ratio=payload.aspect_ratio,
                resolution=payload.resolution,
                generation_provider=payload.generation_provider,
                seed=payload.seed,
                removal_provider=payload.removal_provider,
                removal_options=payload.removal_options,
                upscale_provider=payload.upscale_provider,
                auto_upscale=payload.auto_upscale,
                face_enhance=payload.face_enhance,
            )
        ),
    )
    final_size = None
    if result.final_width is not None and result.final_height is not None:
        final_size = ImageSize(width=result.final_width, height=result.final_height)
    return ProcessResponse(
        source_image=GeneratedImage(
            url=result.source_image.url,
            width=result.source_image.width,
            height=result.source_image.height,
        ),
        removed_url=result.removed_url,
        removal_provider=result.removal_provider,
        quality=_quality_response(result.quality) if result.quality is not None else None,
        final_url=result.final_url,
        final_size=final_size,
        upscaled=result.upscaled,
    )
