"""Background-removal quality heuristic.

Compares the metadata of an original image with its processed
(background-removed) counterpart and decides whether the output is usable,
should be upscaled, or should be retried with another provider.

The verdict is a pure function of the two metadata records and the policy
thresholds; nothing is cached or persisted.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from bgrmv.core.runtime import QualityPolicy


RECOMMEND_OK = "ok"
RECOMMEND_RETRY = "retry"
RECOMMEND_UPSCALE = "upscale"


@dataclass(frozen=True)
class ImageMeta:
    width: int
    height: int
    has_alpha: bool
    channel_count: int
    byte_length: int

    @property
    def pixels(self) -> int:
        return max(self.width, 0) * max(self.height, 0)


@dataclass(frozen=True)
class QualityVerdict:
    passed: bool
    quality_ratio: float
    has_transparency: bool
    recommendation: str
    original_width: int
    original_height: int
    output_width: int
    output_height: int
    suggested_scale: Optional[int] = None

    def as_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "passed": self.passed,
            "qualityRatio": self.quality_ratio,
            "hasTransparency": self.has_transparency,
            "recommendation": self.recommendation,
            "originalSize": {"width": self.original_width, "height": self.original_height},
            "outputSize": {"width": self.output_width, "height": self.output_height},
        }
        if self.suggested_scale is not None:
            payload["suggestedScale"] = self.suggested_scale
        return payload


def suggested_scale(width: int, height: int, policy: Optional[QualityPolicy] = None) -> int:
    limit = (policy or QualityPolicy()).small_image_max_dimension
    return 4 if max(width, height) < limit else 2


def check_quality(
    original: ImageMeta,
    processed: ImageMeta,
    policy: Optional[QualityPolicy] = None,
) -> QualityVerdict:
    rules = policy or QualityPolicy()

    original_pixels = original.pixels
    processed_pixels = processed.pixels
    # Missing original dimensions skip the resolution check.
    quality_ratio = processed_pixels / original_pixels if original_pixels > 0 else 1.0

    has_transparency = processed.has_alpha and processed.channel_count == 4

    min_expected_bytes = processed_pixels * rules.min_bytes_per_pixel
    file_size_ok = processed.byte_length >= min_expected_bytes

    ratio_ok = quality_ratio >= rules.min_quality_ratio
    passed = ratio_ok and has_transparency and file_size_ok

    if not file_size_ok:
        recommendation = RECOMMEND_RETRY
    elif not ratio_ok:
        recommendation = RECOMMEND_UPSCALE
    elif not has_transparency:
        recommendation = RECOMMEND_RETRY
    else:
        recommendation = RECOMMEND_OK

    scale = None
    if recommendation == RECOMMEND_UPSCALE:
        scale = suggested_scale(processed.width, processed.height, rules)

    return QualityVerdict(
        passed=passed,
        quality_ratio=quality_ratio,
        has_transparency=has_transparency,
        recommendation=recommendation,
        original_width=original.width,
        original_height=original.height,
        output_width=processed.width,
        output_height=processed.height,
        suggested_scale=scale,
    )
