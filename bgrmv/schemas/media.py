"""Schemas for the image proxy endpoints (camelCase on the wire)."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


ASPECT_RATIOS = ("1:1", "16:9", "9:16", "4:3", "3:4", "3:2", "2:3", "4:5", "5:4", "21:9")
RESOLUTIONS = ("1K", "2K", "4K")
UPSCALE_FACTORS = (2, 4)


def _require_image_reference(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{field_name} is required")
    cleaned = value.strip()
    if not (cleaned.startswith("https://") or cleaned.startswith("http://") or cleaned.startswith("data:")):
        raise ValueError(f"{field_name} must be an http(s) URL or a data URI")
    return cleaned


def _check_aspect_ratio(value: str) -> str:
    if value not in ASPECT_RATIOS:
        raise ValueError(f"aspectRatio must be one of: {', '.join(ASPECT_RATIOS)}")
    return value


def _check_resolution(value: str) -> str:
    normalized = value.strip().upper()
    if normalized not in RESOLUTIONS:
        raise ValueError(f"resolution must be one of: {', '.join(RESOLUTIONS)}")
    return normalized


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class ImageSize(_WireModel):
    width: Optional[int] = None
    height: Optional[int] = None


class GeneratedImage(_WireModel):
    url: str
    width: int = 0
    height: int = 0


class GenerateRequest(_WireModel):
    prompt: str = Field(default="", validate_default=True)
    aspect_ratio: str = Field(default="1:1", alias="aspectRatio")
    resolution: str = "2K"
    num_images: int = Field(default=1, ge=1, le=4, alias="numImages")
    provider: str = "fal"
    seed: Optional[int] = None

    @field_validator("prompt", mode="before")
    @classmethod
    def _require_prompt(cls, value: Any) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValueError("prompt is required")
        return value.strip()

    @field_validator("aspect_ratio")
    @classmethod
    def _known_aspect_ratio(cls, value: str) -> str:
        return _check_aspect_ratio(value)

    @field_validator("resolution")
    @classmethod
    def _known_resolution(cls, value: str) -> str:
        return _check_resolution(value)


class GenerateResponse(_WireModel):
    images: List[GeneratedImage]


class RemoveBackgroundRequest(_WireModel):
    image_url: str = Field(alias="imageUrl")
    provider: str = "birefnet"
    options: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("image_url", mode="before")
    @classmethod
    def _require_image(cls, value: Any) -> str:
        return _require_image_reference(value, "imageUrl")


class RemoveBackgroundResponse(_WireModel):
    result_url: str = Field(alias="resultUrl")
    provider: str


class UpscaleRequest(_WireModel):
    image_url: str = Field(alias="imageUrl")
    target_scale: int = Field(default=2, alias="targetScale")
    face_enhance: bool = Field(default=True, alias="faceEnhance")
    provider: str = "real-esrgan"
    original_width: Optional[int] = Field(default=None, ge=0, alias="originalWidth")
    original_height: Optional[int] = Field(default=None, ge=0, alias="originalHeight")

    @field_validator("image_url", mode="before")
    @classmethod
    def _require_image(cls, value: Any) -> str:
        return _require_image_reference(value, "imageUrl")

    @field_validator("target_scale")
    @classmethod
    def _supported_scale(cls, value: int) -> int:
        if value not in UPSCALE_FACTORS:
            raise ValueError("targetScale must be 2 or 4")
        return value


class UpscaleResponse(_WireModel):
    result_url: str = Field(alias="resultUrl")
    original_size: Optional[ImageSize] = Field(default=None, alias="originalSize")
    output_size: ImageSize = Field(alias="outputSize")
    scale_applied: int = Field(alias="scaleApplied")


class QualityCheckRequest(_WireModel):
    original_image_url: str = Field(alias="originalImageUrl")
    processed_image_url: str = Field(alias="processedImageUrl")

    @field_validator("original_image_url", mode="before")
    @classmethod
    def _require_original(cls, value: Any) -> str:
        return _require_image_reference(value, "originalImageUrl")

    @field_validator("processed_image_url", mode="before")
    @classmethod
    def _require_processed(cls, value: Any) -> str:
        return _require_image_reference(value, "processedImageUrl")


class QualityCheckResponse(_WireModel):
    passed: bool
    quality_ratio: float = Field(alias="qualityRatio")
    has_transparency: bool = Field(alias="hasTransparency")
    recommendation: str
    suggested_scale: Optional[int] = Field(default=None, alias="suggestedScale")
    original_size: ImageSize = Field(alias="originalSize")
    output_size: ImageSize = Field(alias="outputSize")


class BriaToolRequest(_WireModel):
    """Generic Bria action; every field besides `action` is forwarded upstream."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    action: Optional[str] = None

    def forwarded_params(self) -> Dict[str, Any]:
        return dict(self.model_extra or {})


class BriaToolResponse(_WireModel):
    result: Dict[str, Any]
    action: str


class ProcessRequest(_WireModel):
    image_url: Optional[str] = Field(default=None, alias="imageUrl")
    prompt: Optional[str] = None
    aspect_ratio: str = Field(default="1:1", alias="aspectRatio")
    resolution: str = "2K"
    generation_provider: str = Field(default="fal", alias="generationProvider")
    seed: Optional[int] = None
    removal_provider: str = Field(default="birefnet", alias="removalProvider")
    removal_options: Dict[str, Any] = Field(default_factory=dict, alias="removalOptions")
    upscale_provider: str = Field(default="real-esrgan", alias="upscaleProvider")
    auto_upscale: bool = Field(default=True, alias="autoUpscale")
    face_enhance: bool = Field(default=True, alias="faceEnhance")

    @field_validator("image_url", mode="before")
    @classmethod
    def _optional_image(cls, value: Any) -> Optional[str]:
        if value is None or (isinstance(value, str) and not value.strip()):
            return None
        return _require_image_reference(value, "imageUrl")

    @field_validator("prompt", mode="before")
    @classmethod
    def _optional_prompt(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        if not isinstance(value, str):
            raise ValueError("prompt must be a string")
        return value.strip() or None

    @field_validator("aspect_ratio")
    @classmethod
    def _known_aspect_ratio(cls, value: str) -> str:
        return _check_aspect_ratio(value)

    @field_validator("resolution")
    @classmethod
    def _known_resolution(cls, value: str) -> str:
        return _check_resolution(value)


class ProcessResponse(_WireModel):
    source_image: GeneratedImage = Field(alias="sourceImage")
    removed_url: str = Field(alias="removedUrl")
    removal_provider: str = Field(alias="removalProvider")
    quality: Optional[QualityCheckResponse] = None
    final_url: str = Field(alias="finalUrl")
    final_size: Optional[ImageSize] = Field(default=None, alias="finalSize")
    upscaled: bool = False
